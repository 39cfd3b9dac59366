from __future__ import annotations

import argparse
import logging
import os
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from guestarchive.models.sources import ConfigurationError, SourceConfig, validate_sources
from guestarchive.services.corrections_service import load_corrections

from .base import DiscoveredItem, DiscoveryResult, ExtractionFailure, FetchFailure, GuestEntry, GuestPair, RawItem
from .dedupe import Deduplicator
from .discovery import LinkDiscoverer
from .extraction import FieldExtractor
from .fetcher import PageFetcher
from .normalize import NormalizedItem, Normalizer, rewrite_description
from .pipeline import write_csv, write_jsonl
from .segmentation import DescriptionSegmenter
from .sources import available_sources, get_source
from .youtube import PlaylistDiscoverer


logger = logging.getLogger(__name__)

ItemOutcome = Tuple[Optional[NormalizedItem], List[ExtractionFailure]]


@dataclass
class RunResult:
    records: List[GuestEntry] = field(default_factory=list)
    failures: List[ExtractionFailure] = field(default_factory=list)


class SourceRun:
    """Discovery, per-item extraction and merging for one source."""

    def __init__(self, source: SourceConfig, fetcher, *, corrections: Optional[Mapping[str, str]] = None) -> None:
        self.source = source
        self.fetcher = fetcher
        self.extractor = FieldExtractor(source)
        self.segmenter = DescriptionSegmenter(source.segmenter)
        self.normalizer = Normalizer(
            source.normalizer,
            corrections=corrections,
            name_bounds=(source.segmenter.min_name_length, source.segmenter.max_name_length),
        )

    def discover(self) -> DiscoveryResult:
        if self.source.listing.kind == "youtube_playlist":
            return PlaylistDiscoverer(self.fetcher, self.source).discover()
        return LinkDiscoverer(self.fetcher, self.source).discover()

    def process(self, item: DiscoveredItem) -> ItemOutcome:
        """Fetch, extract, segment and normalize one item; never raises."""
        failures: List[ExtractionFailure] = []
        url = item.url or item.item_id
        try:
            if item.card is not None:
                raw = self.extractor.extract_card(item.card, item.item_id)
                if item.url and self.extractor.missing_detail_fields(raw):
                    doc = self.fetcher.fetch(item.url)
                    if isinstance(doc, FetchFailure):
                        # The card alone still makes a usable item.
                        failures.append(ExtractionFailure(url=item.url, stage="fetch", reason=doc.reason))
                    else:
                        self.extractor.complete_from_page(raw, doc)
            else:
                doc = self.fetcher.fetch(item.url)
                if isinstance(doc, FetchFailure):
                    logger.warning("[%s] item lost: %s (%s)", self.source.name, item.url, doc.reason)
                    return None, [ExtractionFailure(url=item.url, stage="fetch", reason=doc.reason)]
                raw = self.extractor.extract(doc, item.item_id)
        except Exception as exc:
            logger.warning("[%s] extraction failed for %s: %s", self.source.name, url, exc)
            return None, failures + [ExtractionFailure(url=url, stage="extract", reason=str(exc))]

        try:
            pairs = self.guest_pairs(raw)
        except Exception as exc:
            logger.warning("[%s] segmentation failed for %s: %s", self.source.name, url, exc)
            failures.append(ExtractionFailure(url=url, stage="segment", reason=str(exc)))
            pairs = []

        try:
            normalized = self.normalizer.normalize(raw, pairs)
        except Exception as exc:
            logger.warning("[%s] normalization failed for %s: %s", self.source.name, url, exc)
            return None, failures + [ExtractionFailure(url=url, stage="normalize", reason=str(exc))]
        return normalized, failures

    def guest_pairs(self, raw: RawItem) -> List[GuestPair]:
        if raw.guests:
            return list(raw.guests)
        description = rewrite_description(raw.get("description"), self.source.normalizer.description_rewrites)
        return self.segmenter.segment(description)

    def run(self, *, max_workers: int = 1) -> RunResult:
        discovery = self.discover()
        items = discovery.items
        if max_workers > 1 and len(items) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as pool:
                # map() yields in submission order, i.e. discovery order.
                outcomes = list(pool.map(self.process, items))
        else:
            outcomes = [self.process(it) for it in items]

        failures = list(discovery.failures)
        normalized: List[NormalizedItem] = []
        for result, item_failures in outcomes:
            failures.extend(item_failures)
            if result is not None:
                normalized.append(result)
        records = Deduplicator(self.source.emit_empty_items).merge(normalized)
        logger.info(
            "[%s] %d items -> %d records, %d failures",
            self.source.name, len(items), len(records), len(failures),
        )
        return RunResult(records=records, failures=failures)


def run(
    sources: Iterable[Union[SourceConfig, Dict[str, Any]]],
    *,
    fetcher=None,
    corrections: Optional[Mapping[str, str]] = None,
    max_workers: int = 1,
) -> RunResult:
    """Run every source and return all records plus every failure.

    Source definitions are validated before anything is fetched; a bad one
    raises ConfigurationError. Per-item problems never interrupt the run.
    """
    configs = validate_sources(sources)
    if corrections is None:
        corrections = load_corrections()
    own_fetcher = fetcher is None
    if own_fetcher:
        fetcher = PageFetcher()
    result = RunResult()
    try:
        for source in configs:
            partial = SourceRun(source, fetcher, corrections=corrections).run(max_workers=max_workers)
            result.records.extend(partial.records)
            result.failures.extend(partial.failures)
    finally:
        if own_fetcher:
            fetcher.close()
    return result


def _iso_date(text: str) -> date:
    try:
        return date.fromisoformat(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO date (YYYY-MM-DD): {text!r}") from exc


def main(argv: Optional[list] = None) -> int:
    parser = argparse.ArgumentParser(description="Collect guest metadata from media archives")
    parser.add_argument("sources", nargs="+", choices=available_sources() + ["all"], help="Sources to crawl")
    default_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "..", ".."))
    default_out = os.path.join(default_root, "data", "scraped", "guests")
    parser.add_argument("--out-dir", default=default_out, help="Output directory")
    parser.add_argument("--format", choices=["jsonl", "csv"], default="jsonl", help="Output file format")
    parser.add_argument("--corrections", help="JSON file mapping observed guest names to corrected ones")
    parser.add_argument("--workers", type=int, default=1, help="Parallel item fetches per source")
    parser.add_argument(
        "--log-level",
        default=os.getenv("GUESTARCHIVE_LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
    )
    parser.add_argument("--from", dest="start", type=_iso_date, help="First archive day (lemonde)")
    parser.add_argument("--to", dest="end", type=_iso_date, help="Last archive day (lemonde)")
    parser.add_argument("--pages", type=int, help="Number of listing pages (paginated sources)")

    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    names = available_sources() if "all" in args.sources else list(dict.fromkeys(args.sources))
    try:
        configs = [get_source(n, start=args.start, end=args.end, pages=args.pages) for n in names]
        result = run(configs, corrections=load_corrections(args.corrections), max_workers=max(1, args.workers))
    except ConfigurationError as exc:
        print(f"configuration error: {exc}", file=sys.stderr)
        return 2

    prefix = "guests-" + "-".join(names) if len(names) <= 3 else "guests-all"
    writer = write_csv if args.format == "csv" else write_jsonl
    print(writer(result.records, out_dir=args.out_dir, filename_prefix=prefix))
    if result.failures:
        print(write_jsonl(result.failures, out_dir=args.out_dir, filename_prefix=prefix.replace("guests-", "failures-", 1)))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
