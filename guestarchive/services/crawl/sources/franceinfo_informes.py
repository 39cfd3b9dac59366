"""France Info "Les Informés" replay pages.

Guests are the paragraphs following the "Les invités" heading. Episodes
published on or before 2018-03-02 use a layout whose guest list cannot be
read reliably and are skipped.
"""

from __future__ import annotations

from datetime import date

from guestarchive.models.sources import (
    GuestSectionLayout,
    ListingConfig,
    NormalizerConfig,
    SegmenterConfig,
    SourceConfig,
    css,
)


NAME = "franceinfo_informes"
BASE_URL = "https://www.franceinfo.fr"
LISTING_URL = BASE_URL + "/replay-radio/les-informes-de-france-info/{page}.html"
DEFAULT_PAGES = 14
RELIABLE_AFTER = date(2018, 3, 2)


def build(pages: int = DEFAULT_PAGES) -> SourceConfig:
    return SourceConfig(
        name=NAME,
        listing=ListingConfig(
            roots=[LISTING_URL.format(page=p) for p in range(1, max(1, pages) + 1)],
            base_url=BASE_URL,
            item_pattern=r"^/replay-radio/les-informes-de-france-info/.+_[0-9]+\.html$",
        ),
        fields={
            "title": [css(".rf-player-wrapper__title-text"), css("h1")],
            "date": [css("time", attr="datetime"), css("time")],
        },
        guest_section=GuestSectionLayout(
            heading_selector="h2.bullet",
            heading_pattern="invité|intervenant",
            max_paragraphs=7,
        ),
        segmenter=SegmenterConfig(
            block_markers=[],
            prefix_phrases=[],
            inline_patterns=[],
            min_name_length=4,
            max_name_length=27,
        ),
        normalizer=NormalizerConfig(
            valid_from=RELIABLE_AFTER,
            require_date=True,
            reject_patterns=["intégralité"],
            name_fallback_from_role=True,
            strip_name_punctuation=True,
        ),
    )
