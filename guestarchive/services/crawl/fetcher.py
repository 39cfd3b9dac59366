from __future__ import annotations

import logging
import os
import random
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

import httpx
from selectolax.parser import HTMLParser

from .base import Document, FetchFailure


logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "GuestArchive-Crawler/0.1 (academic research)"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", name, raw)
        return default


def _origin(url: str) -> str:
    p = urlparse(url)
    return f"{(p.scheme or 'https').lower()}://{(p.netloc or '').lower()}"


class PageFetcher:
    """httpx-backed fetcher returning a Document or a FetchFailure, never raising.

    A bounded random delay separates consecutive requests to the same origin,
    also when several threads share the fetcher. Connection-level retries are
    delegated to the httpx transport; the crawl pipeline itself never retries.

    Environment:
    - GUESTARCHIVE_USER_AGENT
    - GUESTARCHIVE_TIMEOUT (seconds, default 15)
    - GUESTARCHIVE_DELAY_MIN / GUESTARCHIVE_DELAY_MAX (seconds, default 1..2)
    """

    def __init__(
        self,
        *,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        delay: Optional[Tuple[float, float]] = None,
        retries: int = 1,
        client: Optional[httpx.Client] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        jitter: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.timeout = float(timeout if timeout is not None else _env_float("GUESTARCHIVE_TIMEOUT", 15.0))
        self.headers = headers or {
            "User-Agent": os.getenv("GUESTARCHIVE_USER_AGENT") or DEFAULT_USER_AGENT,
            "Accept-Language": "fr,en;q=0.8",
        }
        if delay is None:
            delay = (_env_float("GUESTARCHIVE_DELAY_MIN", 1.0), _env_float("GUESTARCHIVE_DELAY_MAX", 2.0))
        low, high = delay
        self.delay = (max(0.0, min(low, high)), max(0.0, low, high))
        self._client = client or httpx.Client(
            timeout=self.timeout,
            headers=self.headers,
            follow_redirects=True,
            transport=httpx.HTTPTransport(retries=max(0, int(retries))),
        )
        self._owns_client = client is None
        self._sleep = sleep
        self._clock = clock
        self._jitter = jitter
        self._registry_lock = threading.Lock()
        self._origin_locks: Dict[str, threading.Lock] = {}
        self._last_request: Dict[str, float] = {}

    # --- Public API ---
    def fetch(self, url: str) -> Union[Document, FetchFailure]:
        body = self._get(url)
        if isinstance(body, FetchFailure):
            return body
        text, _ = body
        if not text.strip():
            return FetchFailure(url=url, reason="empty_body")
        try:
            tree = HTMLParser(text)
        except Exception as exc:
            return FetchFailure(url=url, reason=f"parse_error: {exc}")
        return Document(url=url, tree=tree)

    def fetch_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Union[Document, FetchFailure]:
        body = self._get(url, params=params)
        if isinstance(body, FetchFailure):
            return body
        _, resp = body
        try:
            payload = resp.json()
        except ValueError as exc:
            return FetchFailure(url=url, reason=f"invalid_json: {exc}")
        if not isinstance(payload, dict):
            return FetchFailure(url=url, reason="invalid_json: top-level value is not an object")
        return Document(url=url, payload=payload)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "PageFetcher":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # --- Internals ---
    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> Union[Tuple[str, httpx.Response], FetchFailure]:
        self._wait_politely(url)
        try:
            resp = self._client.get(url, params=params)
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("HTTP %s for %s", status, url)
            return FetchFailure(url=url, reason=f"http_{status}")
        except httpx.HTTPError as exc:
            logger.warning("Transport error for %s: %s", url, exc)
            return FetchFailure(url=url, reason=f"transport_error: {exc.__class__.__name__}: {exc}")
        return resp.text, resp

    def _lock_for(self, origin: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._origin_locks.get(origin)
            if lock is None:
                lock = self._origin_locks[origin] = threading.Lock()
            return lock

    def _wait_politely(self, url: str) -> None:
        origin = _origin(url)
        with self._lock_for(origin):
            last = self._last_request.get(origin)
            if last is not None:
                wanted = self._jitter(*self.delay)
                remaining = wanted - (self._clock() - last)
                if remaining > 0:
                    self._sleep(remaining)
            self._last_request[origin] = self._clock()
