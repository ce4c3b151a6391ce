"""Base models for shiptrack.

Provider payloads inherit from :class:`WireModel` which provides:

* ``alias_generator=to_camel`` so camelCase wire keys map
  automatically to snake_case fields.
* A ``model_validator(mode="before")`` that strips sentinel
  values (``""``, ``"--"``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.

Domain records (events, registrations, usage) inherit from
:class:`TrackBaseModel`: frozen, strict about unknown fields.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from shiptrack.ingestion.normalize import parse_reader_time

# Sentinel strings providers use for "not available".
_SENTINELS = frozenset({"", "--", "NaN", "nan", "null"})


def _coerce_timestamp(value: Any) -> datetime | None:
    if value is None:
        return None
    parsed = parse_reader_time(value)
    if parsed is None:
        raise ValueError(f"unparsable timestamp: {value!r}")
    return parsed


UtcTimestamp = Annotated[datetime, BeforeValidator(_coerce_timestamp)]
"""Datetime coerced to aware UTC from provider strings or epoch numbers."""


class TrackBaseModel(BaseModel):
    """Base for domain records."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )


class WireModel(BaseModel):
    """Base for provider response records."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original provider record."""

    @staticmethod
    def _clean_dict(values: dict[str, Any]) -> dict[str, Any]:
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and value.strip() in _SENTINELS:
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        return cleaned

    @model_validator(mode="before")
    @classmethod
    def _clean_wire_values(cls, values: Any) -> Any:
        """Strip sentinel values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        original = dict(values)
        cleaned = WireModel._clean_dict(original)
        # Keep an explicitly passed raw= (kwargs construction).
        if "raw" not in values:
            cleaned["raw"] = original
        return cleaned
