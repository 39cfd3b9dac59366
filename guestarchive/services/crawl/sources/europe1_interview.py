"""Europe 1 "L'interview politique de 8h20" (Sonia Mabrouk).

Episode cards carry title, link and date. Older listing pages dropped the
description from the card, so it is completed from the episode page.
"""

from __future__ import annotations

from guestarchive.models.sources import (
    DEFAULT_INLINE_PATTERN,
    ListingConfig,
    SegmenterConfig,
    SourceConfig,
    anchor,
    css,
)


NAME = "europe1_interview"
BASE_URL = "https://www.europe1.fr"
LISTING_URL = BASE_URL + "/emissions/linterview-politique-de-8h20?page={page}"
DEFAULT_PAGES = 37
# Only the first episodes were broadcast on both Europe 1 and CNews.
SIMULCAST_EPISODES = 356


def build(pages: int = DEFAULT_PAGES) -> SourceConfig:
    return SourceConfig(
        name=NAME,
        listing=ListingConfig(
            roots=[LISTING_URL.format(page=p) for p in range(1, max(1, pages) + 1)],
            base_url=BASE_URL,
            card_selector=".episode-card",
            card_link_selector=".episode-name a",
            max_items=SIMULCAST_EPISODES,
        ),
        card_fields={
            "title": [css(".episode-name a")],
            "link": [css(".episode-name a", attr="href")],
            "date": [css(".episode-details span", index=-1)],
            "description": [css(".episode-description p")],
        },
        fields={
            "description": [
                css("section#about .about__wrapper.rte p:nth-child(3)"),
                anchor("répond", selector="section#about p"),
            ],
        },
        detail_fields=["description"],
        segmenter=SegmenterConfig(
            block_markers=[],
            prefix_phrases=[],
            inline_patterns=[
                DEFAULT_INLINE_PATTERN,
                # No "répond": the guest is still the text before the first comma.
                r"^\s*(?P<name>[^,\n]+),",
            ],
        ),
    )
