"""France 5 "C ce soir" via the uploads playlist of its YouTube channel.

The broadcast date is read from the video title; guests are segmented from
the video description after the bundled casing rewrites turn mixed-case
names into the "Given SURNAME" form the segmenter recognises.
"""

from __future__ import annotations

from typing import Mapping, Optional

from guestarchive.models.sources import (
    ListingConfig,
    NormalizerConfig,
    SegmenterConfig,
    SourceConfig,
    key,
    regex,
)
from guestarchive.services.corrections_service import load_mapping

from ..youtube import uploads_playlist_id


NAME = "ccesoir_youtube"
CHANNEL_ID = "UC1UUvhau_2V8ETvHfwkUQwg"

TITLE_DATE_PATTERN = (
    r"(?i)(?:C ce Soir du |#CCesoir du |C Politique du |C Politique |C ce Soir |#CCesoir "
    r"|C Ce soir  |CCeSoir |En Société du )((?:1er|\d{1,2}) \w+ \d{4})"
)

DATE_CORRECTIONS = {
    "28 mois 2023": "28 novembre 2023",
    "26 mois 2023": "28 novembre 2023",
}


def build(channel_id: str = CHANNEL_ID, rewrites: Optional[Mapping[str, str]] = None) -> SourceConfig:
    if rewrites is None:
        rewrites = load_mapping("ccesoir_description_rewrites")
    return SourceConfig(
        name=NAME,
        listing=ListingConfig(kind="youtube_playlist", playlist_id=uploads_playlist_id(channel_id)),
        card_fields={
            "title": [key("snippet.title")],
            "link": [key("url")],
            "date": [
                regex(TITLE_DATE_PATTERN, source="title"),
                regex(r"\b((?:1er|\d{1,2}) \w+ \d{4})\b", source="title"),
            ],
            "description": [key("snippet.description")],
        },
        segmenter=SegmenterConfig(inline_patterns=[]),
        normalizer=NormalizerConfig(
            date_corrections=DATE_CORRECTIONS,
            description_rewrites=dict(rewrites),
        ),
    )
