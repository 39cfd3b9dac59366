from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field, asdict
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from selectolax.parser import HTMLParser


def canonical_json(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":"))


def sha256_hexdigest(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Document:
    """A fetched page (parsed HTML tree or node) or a JSON payload."""

    url: str
    tree: Any = None
    payload: Optional[Dict[str, Any]] = None

    def text(self) -> str:
        if self.tree is not None:
            root = self.tree
            if isinstance(root, HTMLParser):
                root = root.body or root.root
            return root.text(separator=" ") if root is not None else ""
        if self.payload is not None:
            return " ".join(_iter_strings(self.payload))
        return ""


def _iter_strings(obj: Any) -> Iterable[str]:
    if isinstance(obj, str):
        yield obj
    elif isinstance(obj, dict):
        for v in obj.values():
            yield from _iter_strings(v)
    elif isinstance(obj, list):
        for v in obj:
            yield from _iter_strings(v)


@dataclass(frozen=True)
class FetchFailure:
    url: str
    reason: str


@dataclass(frozen=True)
class ListingPage:
    url: str
    item_urls: Tuple[str, ...] = ()
    continuation_urls: Tuple[str, ...] = ()
    cards: Tuple[Document, ...] = ()


@dataclass(frozen=True)
class FieldValue:
    value: str
    strategy: int  # 0 = primary, 1 = first fallback, ...


@dataclass(frozen=True)
class GuestPair:
    name: Optional[str]
    role: Optional[str]
    origin: str  # rows | section | blocks | prefix | inline


@dataclass
class RawItem:
    item_id: str
    source: str
    fields: Dict[str, FieldValue] = field(default_factory=dict)
    guests: List[GuestPair] = field(default_factory=list)

    def get(self, name: str) -> Optional[str]:
        fv = self.fields.get(name)
        return fv.value if fv else None

    def provenance(self) -> Dict[str, int]:
        return {k: v.strategy for k, v in self.fields.items()}


@dataclass(frozen=True)
class GuestEntry:
    source: str
    item_id: str
    title: Optional[str]
    canonical_date: Optional[date]
    guest_name: Optional[str]
    guest_role_text: Optional[str]
    raw_description: Optional[str]

    @property
    def dedupe_key(self) -> Tuple[str, Optional[str], Optional[str]]:
        return self.item_id, self.guest_name, self.guest_role_text

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["canonical_date"] = self.canonical_date.isoformat() if self.canonical_date else None
        return d


@dataclass(frozen=True)
class ExtractionFailure:
    url: str
    stage: str  # listing | fetch | extract | segment | normalize
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DiscoveredItem:
    item_id: str
    url: Optional[str]
    card: Optional[Document] = None


@dataclass
class DiscoveryResult:
    pages: List[ListingPage] = field(default_factory=list)
    items: List[DiscoveredItem] = field(default_factory=list)
    failures: List[ExtractionFailure] = field(default_factory=list)

    @property
    def item_urls(self) -> List[str]:
        return [it.url for it in self.items if it.url]
