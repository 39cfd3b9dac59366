from guestarchive.services.crawl.base import ExtractionFailure, GuestEntry
from guestarchive.services.crawl.pipeline import CSV_COLUMNS, write_csv, write_jsonl

import csv
import json
import os
import tempfile
from datetime import date


def sample_entries():
    jean = GuestEntry(
        source="franceinter_debat",
        item_id="https://www.radiofrance.fr/ep-1",
        title="Faut-il taxer les superprofits ?",
        canonical_date=date(2024, 3, 4),
        guest_name="Jean Dupont",
        guest_role_text="Économiste à l'OFCE",
        raw_description=None,
    )
    article = GuestEntry(
        source="lemonde",
        item_id="https://www.lemonde.fr/a.html",
        title="Budget",
        canonical_date=None,
        guest_name=None,
        guest_role_text=None,
        raw_description="Sous-titre",
    )
    return [jean, jean, article]


def test_write_jsonl_dedupes_on_table_key():
    with tempfile.TemporaryDirectory() as tmpdir:
        out = write_jsonl(sample_entries(), out_dir=tmpdir, filename_prefix="guests-test")
        assert os.path.isfile(out)
        assert os.path.basename(out).startswith("guests-test-")
        with open(out, "r", encoding="utf-8") as f:
            lines = [json.loads(l) for l in f if l.strip()]
        assert len(lines) == 2
        assert lines[0]["canonical_date"] == "2024-03-04"
        assert lines[0]["guest_role_text"] == "Économiste à l'OFCE"
        assert lines[1]["canonical_date"] is None


def test_write_jsonl_accepts_failures():
    failures = [
        ExtractionFailure(url="https://www.example.org/5", stage="fetch", reason="http_404"),
        ExtractionFailure(url="https://www.example.org/5", stage="fetch", reason="http_404"),
        ExtractionFailure(url="https://www.example.org/list", stage="listing", reason="http_500"),
    ]
    with tempfile.TemporaryDirectory() as tmpdir:
        out = write_jsonl(failures, out_dir=tmpdir, filename_prefix="failures-test")
        with open(out, "r", encoding="utf-8") as f:
            lines = [json.loads(l) for l in f if l.strip()]
        assert [l["stage"] for l in lines] == ["fetch", "listing"]


def test_write_csv_has_fixed_header_and_blank_absent_values():
    with tempfile.TemporaryDirectory() as tmpdir:
        out = write_csv(sample_entries(), out_dir=tmpdir, filename_prefix="guests-test")
        assert out.endswith(".csv")
        with open(out, "r", encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert tuple(rows[0].keys()) == CSV_COLUMNS
        assert len(rows) == 2
        assert rows[0]["guest_name"] == "Jean Dupont"
        assert rows[1]["guest_name"] == ""
        assert rows[1]["canonical_date"] == ""
