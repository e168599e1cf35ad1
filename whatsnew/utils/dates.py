#!/usr/bin/env python3
"""Timestamp parsing for release dates and date-range queries."""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple, Union

DateInput = Union[str, date, datetime]

# Year or year-month, expanded to the first day
PARTIAL_DATE = re.compile(r"^(\d{4})(?:-(\d{2}))?$")
DAY_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def parse_timestamp(value: DateInput) -> datetime:
    """Timezone-aware datetime from an ISO 8601 string, date or datetime.

    Naive values are taken as UTC; a bare date means midnight UTC, and
    ``2024`` or ``2024-06`` mean the first day of that year or month.

    Raises:
        ValueError: If a string is not ISO 8601
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = (value or "").strip()
        partial = PARTIAL_DATE.match(text)
        if partial:
            text = f"{partial.group(1)}-{partial.group(2) or '01'}-01"
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Invalid date: {value!r} (expected ISO 8601, e.g. 2024-01-31)")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def normalize_date_range(since: DateInput, until: Optional[DateInput] = None) -> Tuple[datetime, datetime]:
    """``(since, until)`` as aware datetimes; ``until`` defaults to now.

    A day-precision ``until`` such as ``2024-06-30`` includes that whole day.

    Raises:
        ValueError: On an unparsable date or when ``since`` is after ``until``
    """
    start = parse_timestamp(since)
    end = parse_timestamp(until) if until is not None else datetime.now(timezone.utc)
    if _is_whole_day(until):
        end += timedelta(days=1, microseconds=-1)
    if start > end:
        raise ValueError(f"Range start {start.isoformat()} is after its end {end.isoformat()}")
    return start, end


def _is_whole_day(value: Optional[DateInput]) -> bool:
    if isinstance(value, datetime):
        return False
    if isinstance(value, date):
        return True
    return bool(value) and bool(DAY_ONLY.match(value.strip()))
