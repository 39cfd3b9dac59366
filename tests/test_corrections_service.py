import json
import os
import tempfile

from guestarchive.services import corrections_service
from guestarchive.services.corrections_service import load_corrections, load_mapping


def test_load_corrections_from_file():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = os.path.join(tmpdir, "corrections.json")
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"Gaspard KEONING": "Gaspard KOENIG", "": "ignored"}, f, ensure_ascii=False)
        assert load_corrections(path) == {"Gaspard KEONING": "Gaspard KOENIG"}


def test_unreadable_or_missing_files_yield_empty_mapping():
    with tempfile.TemporaryDirectory() as tmpdir:
        broken = os.path.join(tmpdir, "broken.json")
        with open(broken, "w", encoding="utf-8") as f:
            f.write("{not json")
        listing = os.path.join(tmpdir, "list.json")
        with open(listing, "w", encoding="utf-8") as f:
            json.dump(["a", "b"], f)
        assert load_corrections(broken) == {}
        assert load_corrections(listing) == {}
        assert load_corrections(os.path.join(tmpdir, "absent.json")) == {}


def test_bundled_mappings():
    assert load_corrections() == {}
    rewrites = load_mapping("ccesoir_description_rewrites")
    assert rewrites["Usul"] == "Vidéaste USUL"
    assert rewrites["Anne Berest"] == "Anne BEREST"
    assert load_mapping("no_such_mapping") == {}


def test_bundled_corrections_are_copied():
    first = load_corrections()
    first["x"] = "y"
    assert "x" not in load_corrections()
    assert "x" not in corrections_service.load_mapping("name_corrections")
