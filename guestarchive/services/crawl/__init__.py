"""Archive crawling subsystem.

Structure:
- base.py: common types and utilities
- fetcher.py: httpx page/JSON fetcher with per-origin politeness delay
- discovery.py / youtube.py: item enumeration (HTML listings, YouTube playlists)
- extraction.py: strategy-chain field extraction and structured guest lists
- segmentation.py: guest (name, role) pairs from free-text descriptions
- normalize.py / dedupe.py: dates, cleanup, filters and the final merge
- pipeline.py: JSONL and CSV writers
- sources/: per-archive configurations
- runner.py: run() entry point and CLI

Parsing uses selectolax; every source is configuration, not code.
"""
