"""Pure helpers that normalize request payloads before they are persisted."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime, timedelta
from typing import Any

PERIOD_DAYS = {
    "days": 1,
    "weeks": 7,
    "months": 30,
    "years": 365,
}


def lowercase_fields(data: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    normalized = dict(data)
    for field in fields:
        value = normalized.get(field)
        if isinstance(value, str):
            normalized[field] = value.strip().lower()
    return normalized


def uppercase_fields(data: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    normalized = dict(data)
    for field in fields:
        value = normalized.get(field)
        if isinstance(value, str):
            normalized[field] = value.strip().upper()
    return normalized


def strip_fields(data: Mapping[str, Any], fields: Iterable[str]) -> dict[str, Any]:
    normalized = dict(data)
    for field in fields:
        value = normalized.get(field)
        if isinstance(value, str):
            normalized[field] = value.strip()
    return normalized


def add_period(start: date | datetime | None, duration: int | None, period: str | None):
    """Return ``start`` shifted by ``duration`` units of ``period``.

    Months count as 30 days and years as 365, matching how special prices
    have always been scheduled. Returns None when any input is missing.
    """
    if start is None or not duration or not period:
        return None
    try:
        days_per_unit = PERIOD_DAYS[period]
    except KeyError:
        raise ValueError(f"Unsupported period: {period}") from None
    return start + timedelta(days=days_per_unit * int(duration))

