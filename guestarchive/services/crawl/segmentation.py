"""Split a free-text description into (guest name, role) pairs.

Descriptions come in a few recognisable shapes:

1. blocks introduced by marker glyphs ("▶️ Jean DUPONT, économiste"),
2. a list introduced by a phrase such as "avec :",
3. a single guest written inline ("Jean Dupont, économiste, répond ..."),
4. anything else, which carries no guest structure.

Names inside blocks and lists are recognised by their casing: capitalised
given name(s) followed by an upper-case surname.
"""

from __future__ import annotations

import logging
import re
from typing import List, Optional

from guestarchive.models.sources import SegmenterConfig

from .base import GuestPair


logger = logging.getLogger(__name__)

_UPPER = "A-ZÀ-ÖØ-ÞŒŸ"
_LOWER = "a-zß-öø-ÿœ"

GIVEN_NAME = rf"[{_UPPER}][{_LOWER}'’]+(?:-[{_UPPER}][{_LOWER}'’]+)?"
SURNAME = rf"[{_UPPER}'’\-]{{2,}}"

# A line holding nothing but a name ("Jean DUPONT"); its role sits on the next line.
NAME_ONLY_RE = re.compile(rf"^(?:{GIVEN_NAME}\s+)*{SURNAME}(?:\s+{SURNAME}){{0,2}}$")

# Lines of an "avec :" list must start like a name.
GUEST_LINE_RE = re.compile(rf"^(?:{GIVEN_NAME}\s+)*[{_UPPER}]{{2,}}")

# Name/role boundary: one or more given names then one or more upper-case surnames.
NAME_BOUNDARY_RE = re.compile(
    rf"(?P<name>{GIVEN_NAME}(?:\s+{GIVEN_NAME})*(?:\s+{SURNAME})+)(?![{_LOWER}{_UPPER}'’\-])"
)

_LEADING_SEPARATORS = " \t\n,;:-–—"


def split_name_role(text: str) -> Optional[GuestPair]:
    """Split "Jean DUPONT, économiste" into name and role, or None if no name."""
    m = NAME_BOUNDARY_RE.search(text or "")
    if not m:
        return None
    name = m.group("name").strip()
    role = text[m.end():].lstrip(_LEADING_SEPARATORS).strip() or None
    return GuestPair(name=name, role=role, origin="")


class DescriptionSegmenter:
    def __init__(self, config: Optional[SegmenterConfig] = None) -> None:
        self.config = config or SegmenterConfig()
        markers = sorted(self.config.block_markers, key=len, reverse=True)
        self._marker_re = re.compile("|".join(re.escape(m) for m in markers)) if markers else None
        self._prefix_res = [re.compile(re.escape(p), re.IGNORECASE) for p in self.config.prefix_phrases]
        self._inline_res = [re.compile(p) for p in self.config.inline_patterns]

    def segment(self, description: Optional[str]) -> List[GuestPair]:
        if not description or not description.strip():
            return []
        if self._marker_re is not None and self._marker_re.search(description):
            pairs = self._blocks(description)
        elif any(r.search(description) for r in self._prefix_res):
            pairs = self._prefixed(description)
        else:
            pairs = self._inline(description)
        pairs = [p for p in pairs if self._plausible(p.name)]
        if not pairs:
            logger.debug("No guest structure in description: %.80r", description)
        return pairs

    # --- Shapes ---
    def _blocks(self, description: str) -> List[GuestPair]:
        blocks = self._marker_re.split(description)[1:]
        out: List[GuestPair] = []
        for block in blocks:
            # Variation selectors can survive the marker split.
            lines = [ln.strip() for ln in block.lstrip("\ufe0e\ufe0f").split("\n")]
            lines = [ln for ln in lines if ln]
            if not lines:
                continue
            text = lines[0]
            if len(lines) >= 2 and NAME_ONLY_RE.match(lines[0]):
                text = f"{lines[0]} {lines[1]}"
            pair = split_name_role(text)
            if pair is not None:
                out.append(GuestPair(name=pair.name, role=pair.role, origin="blocks"))
        return out

    def _prefixed(self, description: str) -> List[GuestPair]:
        after = None
        for r in self._prefix_res:
            parts = r.split(description, maxsplit=1)
            if len(parts) == 2:
                after = parts[1]
                break
        if not after:
            return []
        out: List[GuestPair] = []
        for line in after.split("\n"):
            if len(line) <= self.config.min_line_length:
                continue
            line = line.strip()
            if not GUEST_LINE_RE.match(line):
                continue
            pair = split_name_role(line)
            if pair is not None:
                out.append(GuestPair(name=pair.name, role=pair.role, origin="prefix"))
        return out

    def _inline(self, description: str) -> List[GuestPair]:
        for r in self._inline_res:
            m = r.search(description)
            if not m:
                continue
            name = (m.group("name") or "").strip()
            role = m.groupdict().get("role")
            role = (role or "").strip().rstrip(",").strip() or None
            if name:
                return [GuestPair(name=name, role=role, origin="inline")]
        return []

    def _plausible(self, name: Optional[str]) -> bool:
        if not name:
            return False
        n = len(name)
        return self.config.min_name_length <= n <= self.config.max_name_length
