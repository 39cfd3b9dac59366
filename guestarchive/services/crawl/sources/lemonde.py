"""Le Monde daily archives (https://www.lemonde.fr/archives-du-monde/dd-mm-yyyy/).

Articles are read inline from the teaser cards of each archive day; there
is no guest structure, so every article yields one guest-less row.
"""

from __future__ import annotations

from datetime import date, timedelta
from typing import List, Optional

from guestarchive.models.sources import (
    ConfigurationError,
    ListingConfig,
    SegmenterConfig,
    SourceConfig,
    css,
    regex,
)


NAME = "lemonde"
BASE_URL = "https://www.lemonde.fr"
MAX_DAYS = 3660
# Upper bound on the paginated river pages of one archive day.
MAX_PAGES_PER_DAY = 30


def daily_urls(start: date, end: date) -> List[str]:
    if end < start:
        raise ConfigurationError(f"{NAME}: end date {end} is before start date {start}")
    days = (end - start).days + 1
    if days > MAX_DAYS:
        raise ConfigurationError(f"{NAME}: {days} archive days requested, at most {MAX_DAYS} allowed")
    return [f"{BASE_URL}/archives-du-monde/{(start + timedelta(d)).strftime('%d-%m-%Y')}/" for d in range(days)]


def build(start: Optional[date] = None, end: Optional[date] = None) -> SourceConfig:
    if start is None and end is None:
        start = end = date.today() - timedelta(days=1)
    start = start or end
    end = end or start
    roots = daily_urls(start, end)
    return SourceConfig(
        name=NAME,
        listing=ListingConfig(
            roots=roots,
            max_listing_pages=len(roots) * MAX_PAGES_PER_DAY,
            base_url=BASE_URL,
            pagination_selector="a.river__pagination.river__pagination--page",
            card_selector="section.teaser",
            card_link_selector="a.teaser__link",
        ),
        card_fields={
            "title": [css("h3.teaser__title"), css(".teaser__title")],
            "link": [css("a.teaser__link", attr="href")],
            "date": [
                css("span.meta__date"),
                # Article URLs carry the publication day: /article/2026/01/30/...
                regex(r"/(\d{4}/\d{2}/\d{2})/", source="link"),
            ],
            "description": [css("p.teaser__desc")],
            "banner": [css("span.meta__author")],
        },
        segmenter=SegmenterConfig(block_markers=[], prefix_phrases=[], inline_patterns=[]),
        emit_empty_items=True,
    )
