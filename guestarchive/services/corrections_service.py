from __future__ import annotations

import json
import logging
import os
from typing import Dict, Optional


logger = logging.getLogger(__name__)

_MAPPING_CACHE: Dict[str, Dict[str, str]] = {}


def _get_root_dir() -> str:
    """Return the package root (one level up from this file)."""
    return os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))


def _read_mapping(path: str) -> Dict[str, str]:
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable mapping file %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring mapping file %s: top-level value is not an object", path)
        return {}
    return {str(k): str(v) for k, v in data.items() if k and v is not None}


def load_mapping(name: str) -> Dict[str, str]:
    """Load guestarchive/kb/<name>.json as a str->str dict, cached.

    The file is optional; if missing or invalid, an empty dict is returned.
    """
    cached = _MAPPING_CACHE.get(name)
    if cached is not None:
        return cached
    path = os.path.join(_get_root_dir(), "kb", f"{name}.json")
    mapping = _read_mapping(path)
    _MAPPING_CACHE[name] = mapping
    return mapping


def load_corrections(path: Optional[str] = None) -> Dict[str, str]:
    """Exact-match guest name corrections.

    Reads `path` when given, else the bundled kb/name_corrections.json.
    """
    if path:
        return _read_mapping(path)
    return dict(load_mapping("name_corrections"))
