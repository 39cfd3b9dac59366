from __future__ import annotations

from typing import Iterable, List, Set, Tuple

from .base import GuestEntry
from .normalize import NormalizedItem


class Deduplicator:
    """Merge normalized items into the final table.

    Entries are unique on (item_id, guest_name, guest_role_text); the first
    one seen is kept. Input order is the discovery order and is preserved.
    """

    def __init__(self, emit_empty_items: bool = False) -> None:
        self.emit_empty_items = emit_empty_items

    def merge(self, items: Iterable[NormalizedItem]) -> List[GuestEntry]:
        out: List[GuestEntry] = []
        seen: Set[Tuple] = set()
        for normalized in items:
            if not normalized.kept:
                continue
            entries = normalized.entries
            if not entries and self.emit_empty_items:
                entries = [normalized.placeholder()]
            for entry in entries:
                if entry.dedupe_key in seen:
                    continue
                seen.add(entry.dedupe_key)
                out.append(entry)
        return out
