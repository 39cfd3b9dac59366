from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

import dateparser

from guestarchive.models.sources import NormalizerConfig

from .base import GuestEntry, GuestPair, RawItem


logger = logging.getLogger(__name__)

_ISO_RE = re.compile(r"\b(\d{4})([-/])(\d{2})\2(\d{2})(?=\b|T)")
_TEXT_DATE_RE = re.compile(r"\b(\d{1,2})(?:er)?\s+([^\W\d_]+)\.?\s+(\d{4})\b")
_NUMERIC_DATE_RE = re.compile(r"\b(\d{1,2})[/.\-](\d{1,2})[/.\-](\d{4})\b")
_PLACEHOLDER_RE = re.compile(r"-{3,}|—{2,}|_{3,}")
_WS_RE = re.compile(r"\s+")

_EDGE_PUNCT = ",;:-–— \t\n"

# Absolute dates only: "aujourd'hui" or a bare "06h00" must not become today.
DATEPARSER_SETTINGS: Dict[str, Any] = {
    "REQUIRE_PARTS": ["day", "month", "year"],
    "PARSERS": ["absolute-time"],
    "DATE_ORDER": "DMY",
    "RETURN_AS_TIMEZONE_AWARE": False,
}


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _dateparser_date(text: str, day: int, year: int) -> Optional[date]:
    parsed = dateparser.parse(text, languages=["fr"], settings=DATEPARSER_SETTINGS)
    if parsed is None:
        return None
    # A shifted day or year means the text was not read as written.
    if parsed.day != day or parsed.year != year:
        return None
    return parsed.date()


def _date_candidates(text: str) -> List[Tuple[int, str, re.Match]]:
    found = []
    for kind, pattern in (("iso", _ISO_RE), ("text", _TEXT_DATE_RE), ("numeric", _NUMERIC_DATE_RE)):
        for m in pattern.finditer(text):
            found.append((m.start(), kind, m))
    found.sort(key=lambda c: c[0])
    return found


def parse_date(text: Optional[str], *, corrections: Optional[Mapping[str, str]] = None) -> Optional[date]:
    """Reduce a date text to a calendar date, or None when it cannot be read.

    Accepted shapes: ISO dates/timestamps (the calendar date as written is
    kept), yyyy/mm/dd URL segments, French day-month-year text ("ce lundi
    3 mars 2024", "1er mars 2024", "Publié le 3 mars 2024 à 18h00") and
    numeric dd/mm/yyyy. When several dates appear, the first readable one
    in the text wins ("Publié le ..., mis à jour le ..." gives publication).
    Nothing is guessed: an unknown month or an impossible day gives None.
    """
    if not text:
        return None
    t = text.strip()
    if corrections:
        for wrong, right in corrections.items():
            if wrong in t:
                t = t.replace(wrong, right)

    for _, kind, m in _date_candidates(t):
        if kind == "iso":
            parsed = _safe_date(int(m.group(1)), int(m.group(3)), int(m.group(4)))
        elif kind == "text":
            day, year = int(m.group(1)), int(m.group(3))
            parsed = _dateparser_date(f"{day} {m.group(2)} {year}", day, year)
        else:
            day, year = int(m.group(1)), int(m.group(3))
            parsed = _dateparser_date(f"{day}/{int(m.group(2))}/{year}", day, year)
        if parsed is not None:
            return parsed
    return None


def rewrite_description(text: Optional[str], rewrites: Mapping[str, str]) -> Optional[str]:
    """Apply literal substring rewrites in order (used before segmentation)."""
    if not text or not rewrites:
        return text
    for wrong, right in rewrites.items():
        text = text.replace(wrong, right)
    return text


def collapse_ws(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def clean_role(role: Optional[str]) -> Optional[str]:
    if not role:
        return None
    r = collapse_ws(_PLACEHOLDER_RE.sub(" ", role))
    r = r.lstrip(_EDGE_PUNCT).rstrip(",; ")
    return r or None


def clean_name(name: Optional[str], *, strip_punctuation: bool = False) -> Optional[str]:
    if not name:
        return None
    n = collapse_ws(_PLACEHOLDER_RE.sub(" ", name))
    if strip_punctuation:
        n = n.replace(",", "").replace(":", "")
        n = collapse_ws(n)
    n = n.strip(_EDGE_PUNCT)
    return n or None


@dataclass
class NormalizedItem:
    item: RawItem
    canonical_date: Optional[date]
    kept: bool = True
    entries: List[GuestEntry] = field(default_factory=list)

    def placeholder(self) -> GuestEntry:
        """The guest-less row used by one-row-per-item tables."""
        return GuestEntry(
            source=self.item.source,
            item_id=self.item.item_id,
            title=self.item.get("title"),
            canonical_date=self.canonical_date,
            guest_name=None,
            guest_role_text=None,
            raw_description=self.item.get("description"),
        )


class Normalizer:
    """Turn a RawItem plus its guest pairs into GuestEntry rows."""

    def __init__(
        self,
        config: Optional[NormalizerConfig] = None,
        *,
        corrections: Optional[Mapping[str, str]] = None,
        name_bounds: Optional[Tuple[int, int]] = None,
    ) -> None:
        self.config = config or NormalizerConfig()
        self.corrections = dict(corrections or {})
        self.name_bounds = name_bounds
        self._reject = [re.compile(p, re.IGNORECASE) for p in self.config.reject_patterns]

    def normalize(self, item: RawItem, pairs: List[GuestPair]) -> NormalizedItem:
        date_text = item.get("date")
        canonical = parse_date(date_text, corrections=self.config.date_corrections)
        if date_text and canonical is None:
            logger.debug("[%s] unreadable date %r on %s", item.source, date_text, item.item_id)
        result = NormalizedItem(item=item, canonical_date=canonical)

        if not self.in_window(canonical):
            result.kept = False
            return result

        title = item.get("title")
        description = item.get("description")
        for pair in pairs:
            name, role = self.clean_pair(pair)
            if not name:
                continue
            result.entries.append(
                GuestEntry(
                    source=item.source,
                    item_id=item.item_id,
                    title=title,
                    canonical_date=canonical,
                    guest_name=name,
                    guest_role_text=role,
                    raw_description=description,
                )
            )
        return result

    def in_window(self, day: Optional[date]) -> bool:
        cfg = self.config
        if day is None:
            return not cfg.require_date
        if cfg.valid_from is not None and day <= cfg.valid_from:
            return False
        if cfg.valid_until is not None and day > cfg.valid_until:
            return False
        return True

    def clean_pair(self, pair: GuestPair) -> Tuple[Optional[str], Optional[str]]:
        """Cleaned (name, role); name is None when the pair must be dropped."""
        cfg = self.config
        name = clean_name(pair.name, strip_punctuation=cfg.strip_name_punctuation)
        role = clean_role(pair.role)
        if not name and role and cfg.name_fallback_from_role:
            name = clean_name(role.split(",", 1)[0], strip_punctuation=cfg.strip_name_punctuation)
        if not name and not role:
            return None, None
        if not name:
            return None, role
        for r in self._reject:
            if r.search(name) or (role and r.search(role)):
                return None, role
        if self.name_bounds is not None:
            low, high = self.name_bounds
            if not low <= len(name) <= high:
                return None, role
        return self.corrections.get(name, name), role
