from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional, Set

from guestarchive.models.sources import SourceConfig

from .base import DiscoveredItem, DiscoveryResult, Document, ExtractionFailure, FetchFailure, ListingPage


logger = logging.getLogger(__name__)

PLAYLIST_ITEMS_URL = "https://www.googleapis.com/youtube/v3/playlistItems"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def uploads_playlist_id(channel_id: str) -> str:
    """The "all uploads" playlist of a channel: UCxxxx -> UUxxxx."""
    if not channel_id.startswith("UC"):
        raise ValueError(f"not a channel id: {channel_id!r}")
    return "UU" + channel_id[2:]


class PlaylistDiscoverer:
    """Enumerate the videos of a YouTube playlist via the Data API v3.

    Pages are followed through `nextPageToken`. Each playlist entry becomes an
    inline card whose payload is the API item plus a `url` key holding the
    watch URL, so sources read it with `key` strategies.
    """

    def __init__(self, fetcher, source: SourceConfig, *, api_key: Optional[str] = None) -> None:
        self.fetcher = fetcher
        self.source = source
        self.listing = source.listing
        self.api_key = api_key if api_key is not None else os.getenv("YOUTUBE_API_KEY")

    def discover(self) -> DiscoveryResult:
        result = DiscoveryResult()
        if not self.api_key:
            logger.warning("[%s] YOUTUBE_API_KEY is not set; the API will likely refuse requests", self.source.name)
        seen_tokens: Set[str] = set()
        seen_urls: Set[str] = set()
        token: Optional[str] = None

        while len(result.pages) < self.listing.max_listing_pages:
            params: Dict[str, Any] = {
                "part": "snippet,contentDetails",
                "maxResults": 50,
                "playlistId": self.listing.playlist_id,
            }
            if token:
                params["pageToken"] = token
            if self.api_key:
                params["key"] = self.api_key
            page_label = f"{PLAYLIST_ITEMS_URL}?playlistId={self.listing.playlist_id}&pageToken={token or ''}"
            doc = self.fetcher.fetch_json(PLAYLIST_ITEMS_URL, params=params)
            if isinstance(doc, FetchFailure):
                logger.warning("[%s] playlist page lost: %s (%s)", self.source.name, page_label, doc.reason)
                result.failures.append(ExtractionFailure(url=page_label, stage="listing", reason=doc.reason))
                break

            cards = []
            for entry in doc.payload.get("items") or []:
                card = self._card(entry)
                if card is None:
                    continue
                video_url = card.payload["url"]
                if video_url in seen_urls:
                    continue
                seen_urls.add(video_url)
                cards.append(card)
                if self.listing.max_items is None or len(result.items) < self.listing.max_items:
                    result.items.append(DiscoveredItem(item_id=video_url, url=None, card=card))
            result.pages.append(ListingPage(url=page_label, cards=tuple(cards)))

            token = doc.payload.get("nextPageToken")
            if not token or token in seen_tokens:
                break
            if self.listing.max_items is not None and len(result.items) >= self.listing.max_items:
                break
            seen_tokens.add(token)

        logger.info(
            "[%s] discovered %d videos on %d playlist pages (%d lost)",
            self.source.name, len(result.items), len(result.pages), len(result.failures),
        )
        return result

    @staticmethod
    def _card(entry: Any) -> Optional[Document]:
        if not isinstance(entry, dict):
            return None
        video_id = (entry.get("contentDetails") or {}).get("videoId") or (
            (entry.get("snippet") or {}).get("resourceId") or {}
        ).get("videoId")
        if not video_id:
            return None
        url = WATCH_URL.format(video_id=video_id)
        return Document(url=url, payload={**entry, "url": url})
