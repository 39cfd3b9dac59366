from __future__ import annotations

import csv
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Tuple, Union

from .base import ExtractionFailure, GuestEntry, canonical_json, sha256_hexdigest


CSV_COLUMNS = (
    "source",
    "item_id",
    "title",
    "canonical_date",
    "guest_name",
    "guest_role_text",
    "raw_description",
)

Row = Union[GuestEntry, ExtractionFailure, Dict[str, Any]]


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def _as_dict(rec: Row) -> Dict[str, Any]:
    if isinstance(rec, (GuestEntry, ExtractionFailure)):
        return rec.to_dict()
    return dict(rec)


def _record_dedupe_key(rec: Dict[str, Any]) -> Tuple[str, ...]:
    # Guest rows: (item_id, guest_name, guest_role_text); anything else: content hash
    if "item_id" in rec:
        return (str(rec.get("item_id") or ""), str(rec.get("guest_name") or ""), str(rec.get("guest_role_text") or ""))
    return ("", sha256_hexdigest(canonical_json(rec)))


def _stamped_path(out_dir: str, filename_prefix: str, ext: str) -> str:
    ensure_dir(out_dir)
    dt = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    return os.path.join(out_dir, f"{filename_prefix}-{dt}.{ext}")


def write_jsonl(records: Iterable[Row], out_dir: str, filename_prefix: str) -> str:
    """Write records to a timestamped JSONL file with coarse dedupe.

    Guest rows are deduped on their table key, other records (failures) on a
    content hash. Returns the path to the written file; an existing file with
    the same name is appended to.
    """
    path = _stamped_path(out_dir, filename_prefix, "jsonl")
    seen: set = set()
    with open(path, "a", encoding="utf-8") as f:
        for rec in records:
            row = _as_dict(rec)
            key = _record_dedupe_key(row)
            if key in seen:
                continue
            seen.add(key)
            f.write(json.dumps(row, ensure_ascii=False) + "\n")
    return path


def write_csv(records: Iterable[Row], out_dir: str, filename_prefix: str) -> str:
    """Write guest rows to a timestamped UTF-8 CSV file with a fixed header."""
    path = _stamped_path(out_dir, filename_prefix, "csv")
    seen: set = set()
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        for rec in records:
            row = _as_dict(rec)
            key = _record_dedupe_key(row)
            if key in seen:
                continue
            seen.add(key)
            writer.writerow({k: ("" if row.get(k) is None else row.get(k)) for k in CSV_COLUMNS})
    return path
