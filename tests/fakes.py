from pathlib import Path
from typing import Dict, List, Optional

from selectolax.parser import HTMLParser

from guestarchive.services.crawl.base import Document, FetchFailure


def read_fixture(name: str) -> str:
    p = Path(__file__).parent / "fixtures" / name
    return p.read_text(encoding="utf-8")


class FakeFetcher:
    """In-memory stand-in for PageFetcher: unknown URLs fail with http_404."""

    def __init__(self, pages: Optional[Dict[str, str]] = None, json_pages: Optional[Dict[str, dict]] = None) -> None:
        self.pages = dict(pages or {})
        self.json_pages = dict(json_pages or {})
        self.calls: List[str] = []

    def fetch(self, url: str):
        self.calls.append(url)
        html = self.pages.get(url)
        if html is None:
            return FetchFailure(url=url, reason="http_404")
        return Document(url=url, tree=HTMLParser(html))

    def fetch_json(self, url: str, params: Optional[dict] = None):
        token = (params or {}).get("pageToken") or ""
        self.calls.append(f"{url}#{token}")
        payload = self.json_pages.get(token)
        if payload is None:
            return FetchFailure(url=url, reason="http_403")
        return Document(url=url, payload=payload)

    def close(self) -> None:
        pass


def html_doc(html: str, url: str = "https://example.org/item") -> Document:
    return Document(url=url, tree=HTMLParser(html))
