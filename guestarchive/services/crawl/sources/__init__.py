"""Built-in source definitions, one module per archive.

Each module exposes `NAME` and a `build(...)` function returning a validated
SourceConfig; keyword options (date range, page count) vary per source.
"""

from __future__ import annotations

import inspect
from typing import Any, Callable, Dict, List

from pydantic import ValidationError

from guestarchive.models.sources import ConfigurationError, SourceConfig

from . import (
    bfmtv_face_a_duhamel,
    ccesoir_youtube,
    europe1_interview,
    franceinfo_informes,
    franceinter_debat,
    lemonde,
)


SOURCE_BUILDERS: Dict[str, Callable[..., SourceConfig]] = {
    m.NAME: m.build
    for m in (
        lemonde,
        europe1_interview,
        bfmtv_face_a_duhamel,
        franceinter_debat,
        franceinfo_informes,
        ccesoir_youtube,
    )
}


def available_sources() -> List[str]:
    return list(SOURCE_BUILDERS)


def get_source(name: str, **options: Any) -> SourceConfig:
    """Build a named source; options the builder does not take are ignored."""
    builder = SOURCE_BUILDERS.get(name)
    if builder is None:
        raise ConfigurationError(f"unknown source {name!r}")
    accepted = inspect.signature(builder).parameters
    kwargs = {k: v for k, v in options.items() if v is not None and k in accepted}
    try:
        return builder(**kwargs)
    except ValidationError as exc:
        raise ConfigurationError(f"invalid source {name!r}: {exc}") from exc
