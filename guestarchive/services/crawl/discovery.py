from __future__ import annotations

import logging
import re
from collections import deque
from typing import Iterable, List, Optional, Set, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

from guestarchive.models.sources import SourceConfig

from .base import DiscoveredItem, DiscoveryResult, Document, ExtractionFailure, FetchFailure, ListingPage


logger = logging.getLogger(__name__)


class LinkDiscoverer:
    """Enumerate the items of an HTML archive.

    Listing pages are visited breadth-first from the configured roots. Each
    page contributes item links (matching `item_pattern`), inline cards
    (matching `card_selector`) and continuation pages (pagination links).
    Items are keyed by their URL with the variant suffix removed; the first
    variant seen wins and discovery order is kept.
    """

    def __init__(self, fetcher, source: SourceConfig) -> None:
        self.fetcher = fetcher
        self.source = source
        self.listing = source.listing
        self.base_url = self.listing.base_url or self._origin(self.listing.roots[0])
        self._item_re = re.compile(self.listing.item_pattern) if self.listing.item_pattern else None
        self._pagination_re = re.compile(self.listing.pagination_pattern) if self.listing.pagination_pattern else None
        self._variant_re = re.compile(self.listing.variant_pattern) if self.listing.variant_pattern else None

    # --- Public API ---
    def discover(self) -> DiscoveryResult:
        result = DiscoveryResult()
        seen_keys: Set[str] = set()
        visited: Set[str] = set()
        queue = deque(self.resolve(u) for u in self.listing.roots)

        while queue and len(visited) < self.listing.max_listing_pages:
            url = queue.popleft()
            if not url or url in visited:
                continue
            visited.add(url)
            doc = self.fetcher.fetch(url)
            if isinstance(doc, FetchFailure):
                logger.warning("[%s] listing page lost: %s (%s)", self.source.name, url, doc.reason)
                result.failures.append(ExtractionFailure(url=url, stage="listing", reason=doc.reason))
                continue
            page = self.parse_listing(doc)
            result.pages.append(page)
            for cont in page.continuation_urls:
                if cont not in visited:
                    queue.append(cont)
            for item_url in page.item_urls:
                self._admit(result, seen_keys, DiscoveredItem(item_id=item_url, url=item_url))
            for idx, card in enumerate(page.cards):
                link = self._card_link(card)
                item_id = link or f"{page.url}#{idx}"
                self._admit(result, seen_keys, DiscoveredItem(item_id=item_id, url=link, card=card))
            if self._full(result):
                break

        skipped = self._dedupe(u for u in queue if u not in visited)
        if skipped and not self._full(result):
            logger.warning(
                "[%s] max_listing_pages=%d reached, %d listing pages not visited (first: %s)",
                self.source.name, self.listing.max_listing_pages, len(skipped), skipped[0],
            )
            result.failures.append(
                ExtractionFailure(
                    url=skipped[0],
                    stage="listing",
                    reason=f"max_listing_pages reached: {len(skipped)} pages not visited",
                )
            )

        if self.listing.max_items is not None:
            del result.items[self.listing.max_items:]
        logger.info(
            "[%s] discovered %d items on %d listing pages (%d lost)",
            self.source.name, len(result.items), len(result.pages), len(result.failures),
        )
        return result

    def parse_listing(self, doc: Document) -> ListingPage:
        """Read item links, cards and continuation links from one listing page."""
        hrefs = self._hrefs(doc.tree.css("a"))
        items = self._dedupe(self.resolve(h) for h in hrefs if self._is_item_href(h))
        continuation: List[str] = []
        if self.listing.pagination_selector:
            continuation.extend(self.resolve(h) for h in self._hrefs(doc.tree.css(self.listing.pagination_selector)))
        if self._pagination_re is not None:
            continuation.extend(self.resolve(h) for h in hrefs if self._pagination_re.search(h))
        continuation = [u for u in self._dedupe(continuation) if u != doc.url]
        cards: Tuple[Document, ...] = ()
        if self.listing.card_selector:
            cards = tuple(Document(url=doc.url, tree=node) for node in doc.tree.css(self.listing.card_selector))
        return ListingPage(url=doc.url, item_urls=tuple(items), continuation_urls=tuple(continuation), cards=cards)

    def canonical_key(self, url: str) -> str:
        if self._variant_re is not None:
            return self._variant_re.sub("", url)
        return url

    def resolve(self, href: str) -> Optional[str]:
        """Absolute URL for href, or None when it leaves the source's origin."""
        href = (href or "").strip()
        if not href or href.startswith(("javascript:", "mailto:", "#")):
            return None
        url, _ = urldefrag(urljoin(self.base_url, href))
        if urlparse(url).netloc.lower() != urlparse(self.base_url).netloc.lower():
            return None
        return url

    # --- Internals ---
    def _admit(self, result: DiscoveryResult, seen_keys: Set[str], item: DiscoveredItem) -> None:
        if self._full(result):
            return
        key = self.canonical_key(item.item_id)
        if key in seen_keys:
            return
        seen_keys.add(key)
        result.items.append(item)

    def _full(self, result: DiscoveryResult) -> bool:
        return self.listing.max_items is not None and len(result.items) >= self.listing.max_items

    def _is_item_href(self, href: str) -> bool:
        if self._item_re is None:
            return False
        if self._item_re.search(href):
            return True
        # Absolute links to the same origin are matched on their path as well.
        p = urlparse(href)
        if p.netloc and p.netloc.lower() == urlparse(self.base_url).netloc.lower():
            path = p.path + (f"?{p.query}" if p.query else "")
            return bool(self._item_re.search(path))
        return False

    def _card_link(self, card: Document) -> Optional[str]:
        selector = self.listing.card_link_selector
        if not selector:
            return None
        node = card.tree.css_first(selector)
        if node is None:
            return None
        return self.resolve(node.attributes.get("href") or "")

    @staticmethod
    def _hrefs(nodes: Iterable) -> List[str]:
        out: List[str] = []
        for node in nodes or []:
            href = node.attributes.get("href")
            if href:
                out.append(href.strip())
        return out

    @staticmethod
    def _dedupe(urls: Iterable[Optional[str]]) -> List[str]:
        seen: Set[str] = set()
        out: List[str] = []
        for u in urls:
            if not u or u in seen:
                continue
            seen.add(u)
            out.append(u)
        return out

    @staticmethod
    def _origin(url: str) -> str:
        p = urlparse(url)
        return f"{p.scheme or 'https'}://{p.netloc}"
