"""Source definitions for the archive crawler.

A source is pure configuration: where its listings live, how item links are
recognised, and an ordered chain of strategies per field. The crawl services
read these models and never hard-code selectors.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator


FIELD_NAMES = ("title", "link", "date", "description", "banner")

StrategyKind = Literal["css", "anchor", "regex", "key"]


class ConfigurationError(ValueError):
    """A source definition that cannot possibly produce records."""


class Strategy(BaseModel):
    """One way of reading a field from a document.

    kind:
      - css: node number `index` among `selector` matches, text or `attr`
      - anchor: first text node (under `selector`) containing `anchor`
      - regex: `pattern` searched in field `source` (or the whole document text)
      - key: dotted path into a JSON payload
    """

    kind: StrategyKind = "css"
    selector: Optional[str] = Field(None, description="CSS selector")
    attr: Optional[str] = Field(None, description="Attribute to read instead of text")
    index: int = Field(0, description="Which match to use; negative counts from the end")
    anchor: Optional[str] = Field(None, description="Anchor phrase for text scans")
    pattern: Optional[str] = Field(None, description="Regular expression")
    source: Optional[str] = Field(None, description="Field whose text a regex reads")
    group: Union[int, str, None] = Field(None, description="Regex group to return")
    key: Optional[str] = Field(None, description="Dotted path into a JSON payload")

    @model_validator(mode="after")
    def _check_kind(self) -> "Strategy":
        if self.kind == "css" and not self.selector:
            raise ValueError("css strategy requires a selector")
        if self.kind == "anchor" and not self.anchor:
            raise ValueError("anchor strategy requires an anchor phrase")
        if self.kind == "key" and not self.key:
            raise ValueError("key strategy requires a key")
        if self.kind == "regex":
            if not self.pattern:
                raise ValueError("regex strategy requires a pattern")
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid regex {self.pattern!r}: {exc}") from exc
        if self.source is not None and self.source not in FIELD_NAMES:
            raise ValueError(f"unknown source field {self.source!r}")
        return self


def css(selector: str, *, attr: Optional[str] = None, index: int = 0) -> Strategy:
    return Strategy(kind="css", selector=selector, attr=attr, index=index)


def anchor(phrase: str, *, selector: Optional[str] = None) -> Strategy:
    return Strategy(kind="anchor", anchor=phrase, selector=selector)


def regex(pattern: str, *, source: Optional[str] = None, group: Union[int, str, None] = None) -> Strategy:
    return Strategy(kind="regex", pattern=pattern, source=source, group=group)


def key(path: str) -> Strategy:
    return Strategy(kind="key", key=path)


class GuestRowsLayout(BaseModel):
    """Guests published as repeated rows (one name + one role node per row)."""

    row_selector: str
    name_selector: str
    role_selector: Optional[str] = None


class GuestSectionLayout(BaseModel):
    """Guests published as paragraphs following a heading like "Les invités"."""

    heading_selector: str
    heading_pattern: str = Field(..., description="Case-insensitive regex the heading text must match")
    paragraph_tag: str = "p"
    name_selector: str = "strong"
    max_paragraphs: int = Field(7, ge=1)

    @field_validator("heading_pattern")
    @classmethod
    def _compiles(cls, v: str) -> str:
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"invalid regex {v!r}: {exc}") from exc
        return v


DEFAULT_BLOCK_MARKERS = ["\u25b6\ufe0f", "\u25b6\ufe0e", "\u25b6", "\U0001f4cc", "\u27a4"]

# Name before the first comma, role up to "répond".
DEFAULT_INLINE_PATTERN = r"^\s*(?P<name>[^,\n]+),\s*(?P<role>.*?)\s*,?\s+r[ée]pond"


class SegmenterConfig(BaseModel):
    block_markers: List[str] = Field(default_factory=lambda: list(DEFAULT_BLOCK_MARKERS))
    prefix_phrases: List[str] = Field(default_factory=lambda: ["avec :"])
    inline_patterns: List[str] = Field(default_factory=lambda: [DEFAULT_INLINE_PATTERN])
    min_line_length: int = Field(5, description="Lines at or below this length are noise")
    min_name_length: int = 4
    max_name_length: int = 60

    @field_validator("inline_patterns")
    @classmethod
    def _named_groups(cls, v: List[str]) -> List[str]:
        for p in v:
            try:
                compiled = re.compile(p)
            except re.error as exc:
                raise ValueError(f"invalid regex {p!r}: {exc}") from exc
            if "name" not in compiled.groupindex:
                raise ValueError(f"inline pattern {p!r} needs a (?P<name>...) group")
        return v

    @model_validator(mode="after")
    def _bounds(self) -> "SegmenterConfig":
        if self.min_name_length > self.max_name_length:
            raise ValueError("min_name_length is greater than max_name_length")
        return self


class NormalizerConfig(BaseModel):
    valid_from: Optional[date] = Field(None, description="Drop records dated on or before this day")
    valid_until: Optional[date] = Field(None, description="Drop records dated after this day")
    require_date: bool = False
    reject_patterns: List[str] = Field(default_factory=list)
    date_corrections: Dict[str, str] = Field(default_factory=dict)
    description_rewrites: Dict[str, str] = Field(default_factory=dict)
    name_fallback_from_role: bool = False
    strip_name_punctuation: bool = False

    @field_validator("reject_patterns")
    @classmethod
    def _compiles(cls, v: List[str]) -> List[str]:
        for p in v:
            try:
                re.compile(p)
            except re.error as exc:
                raise ValueError(f"invalid regex {p!r}: {exc}") from exc
        return v


class ListingConfig(BaseModel):
    kind: Literal["html", "youtube_playlist"] = "html"
    roots: List[str] = Field(default_factory=list, description="Root listing URLs")
    base_url: Optional[str] = Field(None, description="Origin used to resolve relative links")
    pagination_selector: Optional[str] = None
    pagination_pattern: Optional[str] = Field(None, description="Regex on hrefs of continuation pages")
    item_pattern: Optional[str] = Field(None, description="Regex on hrefs of item pages")
    card_selector: Optional[str] = Field(None, description="Items extracted inline from listing cards")
    card_link_selector: Optional[str] = "a"
    variant_pattern: Optional[str] = Field(None, description="Regex removed to compute an item's canonical key")
    max_listing_pages: int = Field(500, ge=1)
    max_items: Optional[int] = Field(None, ge=1)
    playlist_id: Optional[str] = None

    @field_validator("pagination_pattern", "item_pattern", "variant_pattern")
    @classmethod
    def _compiles(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        try:
            re.compile(v)
        except re.error as exc:
            raise ValueError(f"invalid regex {v!r}: {exc}") from exc
        return v

    @model_validator(mode="after")
    def _check_kind(self) -> "ListingConfig":
        if self.kind == "html":
            if not self.roots:
                raise ValueError("html listing requires at least one root URL")
            if not self.item_pattern and not self.card_selector:
                raise ValueError("html listing requires an item_pattern or a card_selector")
        if self.kind == "youtube_playlist" and not self.playlist_id:
            raise ValueError("youtube_playlist listing requires a playlist_id")
        return self


Chains = Dict[str, List[Strategy]]


def field_order(chains: Chains) -> List[str]:
    """Order fields so that a regex reading another field runs after it."""
    order: List[str] = []
    state: Dict[str, int] = {}

    def visit(name: str) -> None:
        mark = state.get(name)
        if mark == 2:
            return
        if mark == 1:
            raise ValueError(f"field dependency cycle through {name!r}")
        state[name] = 1
        for strategy in chains.get(name, []):
            if strategy.source and strategy.source in chains:
                visit(strategy.source)
        state[name] = 2
        order.append(name)

    for name in FIELD_NAMES:
        if name in chains:
            visit(name)
    return order


class SourceConfig(BaseModel):
    """Everything the pipeline needs to know about one archive."""

    name: str = Field(..., min_length=1)
    listing: ListingConfig
    fields: Chains = Field(default_factory=dict, description="Strategy chains applied to item pages")
    card_fields: Chains = Field(default_factory=dict, description="Strategy chains applied to listing cards")
    detail_fields: List[str] = Field(
        default_factory=list, description="Card fields completed from the item page when missing"
    )
    guest_rows: Optional[GuestRowsLayout] = None
    guest_section: Optional[GuestSectionLayout] = None
    segmenter: SegmenterConfig = Field(default_factory=SegmenterConfig)
    normalizer: NormalizerConfig = Field(default_factory=NormalizerConfig)
    emit_empty_items: bool = Field(False, description="Emit one guest-less row for items without guests")

    @model_validator(mode="after")
    def _check_chains(self) -> "SourceConfig":
        for label, chains in (("fields", self.fields), ("card_fields", self.card_fields)):
            for name, chain in chains.items():
                if name not in FIELD_NAMES:
                    raise ValueError(f"{label}: unknown field {name!r}")
            field_order(chains)
        inline = bool(self.listing.card_selector) or self.listing.kind == "youtube_playlist"
        primary = self.card_fields if inline else self.fields
        if not primary.get("title"):
            raise ValueError("the title strategy chain must not be empty")
        for name in self.detail_fields:
            if name not in FIELD_NAMES:
                raise ValueError(f"detail_fields: unknown field {name!r}")
            if not self.fields.get(name):
                raise ValueError(f"detail field {name!r} has no item-page strategy chain")
        return self


def validate_sources(sources: Iterable[Union[SourceConfig, Dict[str, Any]]]) -> List[SourceConfig]:
    """Validate every source up front; raise ConfigurationError on the first bad one."""
    out: List[SourceConfig] = []
    seen = set()
    for s in sources:
        if isinstance(s, SourceConfig):
            cfg = s
        else:
            try:
                cfg = SourceConfig.model_validate(s)
            except ValidationError as exc:
                label = s.get("name") if isinstance(s, dict) else s
                raise ConfigurationError(f"invalid source {label!r}: {exc}") from exc
        if cfg.name in seen:
            raise ConfigurationError(f"duplicate source name {cfg.name!r}")
        seen.add(cfg.name)
        out.append(cfg)
    if not out:
        raise ConfigurationError("no sources configured")
    return out
