"""BFMTV "Face à Duhamel" replay archives.

The archive root links to monthly pages, which link to episodes. Episodes
exist in several variants (_VN-, _EN-, ...); only the _VN- ones are kept
and variants of the same episode collapse to the first one seen.
"""

from __future__ import annotations

from guestarchive.models.sources import (
    ListingConfig,
    SegmenterConfig,
    SourceConfig,
    anchor,
    css,
    regex,
)


NAME = "bfmtv_face_a_duhamel"
BASE_URL = "https://www.bfmtv.com"
ARCHIVE_URL = BASE_URL + "/archives/replay-emissions/face-a-duhamel/"
BANNER_MARKER = "Alain Duhamel, éditorialiste"


def build() -> SourceConfig:
    return SourceConfig(
        name=NAME,
        listing=ListingConfig(
            roots=[ARCHIVE_URL],
            base_url=BASE_URL,
            pagination_pattern=r"/archives/replay-emissions/face-a-duhamel/\d{4}/\d{2}/",
            item_pattern=r"^/replay-emissions/face-a-duhamel/.+_VN-\d+\.html",
            variant_pattern=r"_[A-Z]{2}-\d+\.html",
        ),
        fields={
            "title": [css("h1")],
            "description": [
                css("span.content_description_text"),
                css("div.chapo"),
                anchor(BANNER_MARKER, selector="span"),
            ],
            "date": [regex(r"[Cc]e \w+ \d{1,2} \w+ \d{4}", source="description", group=0)],
            "banner": [regex(r"a débattu avec [^,]+, ([^,]+)", source="description")],
        },
        segmenter=SegmenterConfig(
            block_markers=[],
            prefix_phrases=[],
            inline_patterns=[
                r"a débattu avec (?P<name>[^,]+), (?P<role>[^,]+)",
                r"a débattu avec (?P<name>[^,.]+)",
            ],
        ),
    )
