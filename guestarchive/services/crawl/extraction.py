from __future__ import annotations

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from guestarchive.models.sources import Chains, SourceConfig, Strategy, field_order

from .base import Document, FieldValue, GuestPair, RawItem


logger = logging.getLogger(__name__)

_SKIP_TAGS = {"script", "style", "noscript", "template"}


def _clean(text: Optional[str]) -> Optional[str]:
    if text is None:
        return None
    t = str(text).strip()
    return t or None


def _node_text(node: Any) -> Optional[str]:
    if node is None:
        return None
    return _clean(node.text(deep=True))


def _element_children(node: Any) -> Iterable[Any]:
    child = node.child
    while child is not None:
        if child.tag and child.tag[0].isalpha():
            yield child
        child = child.next


class FieldExtractor:
    """Apply a source's strategy chains to a document.

    Each field is read by trying its strategies in order; the first non-empty
    trimmed value wins and remembers the index of the strategy that produced
    it. A field nobody can read is simply absent.
    """

    def __init__(self, source: SourceConfig) -> None:
        self.source = source
        self._patterns: Dict[str, re.Pattern] = {}

    # --- Public API ---
    def extract(self, document: Document, item_id: str) -> RawItem:
        """Extract an item page."""
        item = RawItem(item_id=item_id, source=self.source.name)
        self._apply_chains(item, document, self.source.fields)
        item.guests = self.read_guests(document)
        return item

    def extract_card(self, card: Document, item_id: str) -> RawItem:
        """Extract an inline listing card (or a JSON playlist entry)."""
        item = RawItem(item_id=item_id, source=self.source.name)
        self._apply_chains(item, card, self.source.card_fields)
        if card.tree is not None:
            item.guests = self.read_guests(card)
        return item

    def missing_detail_fields(self, item: RawItem) -> List[str]:
        return [name for name in self.source.detail_fields if item.get(name) is None]

    def complete_from_page(self, item: RawItem, document: Document) -> RawItem:
        """Fill card fields listed in `detail_fields` from the item page.

        Page strategies rank after the card strategies in the field's chain,
        so their provenance index continues where the card chain stopped.
        """
        missing = set(self.missing_detail_fields(item))
        if not missing:
            return item
        chains = {name: chain for name, chain in self.source.fields.items() if name in missing}
        offsets = {name: len(self.source.card_fields.get(name, [])) for name in chains}
        self._apply_chains(item, document, chains, offsets=offsets)
        if not item.guests:
            item.guests = self.read_guests(document)
        return item

    def read_guests(self, document: Document) -> List[GuestPair]:
        if document.tree is None:
            return []
        guests: List[GuestPair] = []
        try:
            if self.source.guest_rows is not None:
                guests = self._guest_rows(document)
            if not guests and self.source.guest_section is not None:
                guests = self._guest_section(document)
        except Exception as exc:
            logger.warning("[%s] guest markup unreadable on %s: %s", self.source.name, document.url, exc)
            return []
        return guests

    def apply(self, strategy: Strategy, document: Document, known: Dict[str, FieldValue]) -> Optional[str]:
        """Run one strategy; None when it finds nothing."""
        if strategy.kind == "css":
            return self._css(strategy, document)
        if strategy.kind == "anchor":
            return self._anchor(strategy, document)
        if strategy.kind == "regex":
            return self._regex(strategy, document, known)
        if strategy.kind == "key":
            return self._key(strategy, document)
        return None

    # --- Internals ---
    def _apply_chains(
        self,
        item: RawItem,
        document: Document,
        chains: Chains,
        *,
        offsets: Optional[Dict[str, int]] = None,
    ) -> None:
        for name in field_order(chains):
            if name in item.fields:
                continue
            offset = (offsets or {}).get(name, 0)
            for idx, strategy in enumerate(chains[name]):
                try:
                    value = _clean(self.apply(strategy, document, item.fields))
                except Exception as exc:
                    logger.debug("[%s] %s strategy %d failed on %s: %s", self.source.name, name, idx, document.url, exc)
                    value = None
                if value:
                    item.fields[name] = FieldValue(value=value, strategy=offset + idx)
                    break

    def _css(self, strategy: Strategy, document: Document) -> Optional[str]:
        if document.tree is None:
            return None
        nodes = document.tree.css(strategy.selector)
        if not nodes:
            return None
        try:
            node = nodes[strategy.index]
        except IndexError:
            return None
        if strategy.attr:
            return node.attributes.get(strategy.attr)
        return _node_text(node)

    def _anchor(self, strategy: Strategy, document: Document) -> Optional[str]:
        """First text node containing the anchor phrase.

        Prefers the innermost element that still holds the whole phrase, so a
        wrapper around the editorial banner does not drag unrelated text in.
        """
        if document.tree is None:
            return None
        phrase = strategy.anchor
        first_hit: Optional[str] = None
        for node in document.tree.css(strategy.selector or "*"):
            if node.tag in _SKIP_TAGS:
                continue
            text = _node_text(node)
            if not text or phrase not in text:
                continue
            if first_hit is None:
                first_hit = text
            if not any(phrase in (_node_text(child) or "") for child in _element_children(node)):
                return text
        return first_hit

    def _regex(self, strategy: Strategy, document: Document, known: Dict[str, FieldValue]) -> Optional[str]:
        if strategy.source:
            fv = known.get(strategy.source)
            text = fv.value if fv else None
        else:
            text = document.text()
        if not text:
            return None
        compiled = self._compiled(strategy.pattern)
        m = compiled.search(text)
        if not m:
            return None
        group = strategy.group
        if group is None:
            group = 1 if compiled.groups else 0
        return m.group(group)

    def _key(self, strategy: Strategy, document: Document) -> Optional[str]:
        cur: Any = document.payload
        for part in strategy.key.split("."):
            if not isinstance(cur, dict):
                return None
            cur = cur.get(part)
        if cur is None or isinstance(cur, (dict, list)):
            return None
        return str(cur)

    def _compiled(self, pattern: str) -> re.Pattern:
        compiled = self._patterns.get(pattern)
        if compiled is None:
            compiled = self._patterns[pattern] = re.compile(pattern)
        return compiled

    def _guest_rows(self, document: Document) -> List[GuestPair]:
        layout = self.source.guest_rows
        out: List[GuestPair] = []
        for row in document.tree.css(layout.row_selector) or []:
            name = _node_text(row.css_first(layout.name_selector))
            role = _node_text(row.css_first(layout.role_selector)) if layout.role_selector else None
            if not name and not role:
                continue
            out.append(GuestPair(name=name, role=role, origin="rows"))
        return out

    def _guest_section(self, document: Document) -> List[GuestPair]:
        layout = self.source.guest_section
        heading_re = self._compiled(f"(?i){layout.heading_pattern}")
        heading = None
        for node in document.tree.css(layout.heading_selector) or []:
            if heading_re.search(node.text(deep=True) or ""):
                heading = node
                break
        if heading is None:
            return []
        out: List[GuestPair] = []
        seen = 0
        sibling = heading.next
        while sibling is not None and seen < layout.max_paragraphs:
            if sibling.tag == layout.paragraph_tag:
                seen += 1
                pair = self._paragraph_guest(sibling, layout.name_selector)
                if pair is not None:
                    out.append(pair)
            sibling = sibling.next
        return out

    @staticmethod
    def _paragraph_guest(paragraph: Any, name_selector: str) -> Optional[GuestPair]:
        text = _node_text(paragraph)
        if not text:
            return None
        name = _node_text(paragraph.css_first(name_selector))
        role = text
        if name and text.startswith(name):
            role = text[len(name):]
        return GuestPair(name=name, role=_clean(role), origin="section")
