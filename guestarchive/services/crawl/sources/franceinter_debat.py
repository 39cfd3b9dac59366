"""France Inter "Le débat du 7-10" podcast pages."""

from __future__ import annotations

from guestarchive.models.sources import (
    GuestRowsLayout,
    ListingConfig,
    SegmenterConfig,
    SourceConfig,
    css,
)


NAME = "franceinter_debat"
BASE_URL = "https://www.radiofrance.fr"
PODCAST_URL = BASE_URL + "/franceinter/podcasts/le-debat-du-7-10"
DEFAULT_PAGES = 22


def build(pages: int = DEFAULT_PAGES) -> SourceConfig:
    roots = [PODCAST_URL] + [f"{PODCAST_URL}?p={p}" for p in range(2, max(1, pages) + 1)]
    return SourceConfig(
        name=NAME,
        listing=ListingConfig(
            roots=roots,
            base_url=BASE_URL,
            item_pattern=r"^/franceinter/podcasts/le-debat-du-7-10/le-debat-du-7-10-du-",
        ),
        fields={
            "title": [css("h1.CoverEpisode-title"), css("h1")],
            "date": [css("p.CoverEpisode-publicationInfo"), css("time", attr="datetime")],
            "description": [css("p.ExpressionSummary-standFirst strong"), css("p.ExpressionSummary-standFirst")],
        },
        guest_rows=GuestRowsLayout(
            row_selector="div.Expression-guests li",
            name_selector="span.qg-st4",
            role_selector="span.Expression-guests-role",
        ),
        segmenter=SegmenterConfig(block_markers=[], prefix_phrases=[], inline_patterns=[]),
    )
