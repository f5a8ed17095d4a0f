"""Interval intersection for event time ranges."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from dateutil.parser import isoparse

from hangouts.domain.models import Event, Overlap

logger = logging.getLogger(__name__)

Timestamp = datetime | str


def _coerce(value: Timestamp) -> datetime:
    parsed = isoparse(value) if isinstance(value, str) else value
    if not isinstance(parsed, datetime):
        raise TypeError(f"not a timestamp: {value!r}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def find_overlap(
    first_start: Timestamp,
    first_end: Timestamp,
    second_start: Timestamp,
    second_end: Timestamp,
) -> Overlap | None:
    """Return the intersection of two time ranges, or None when they are disjoint.

    Overlap rule: max(starts) <= min(ends). Unlike scheduling conflicts, an
    exact boundary touch (first_end == second_start) IS an overlap, of zero
    length. Naive datetimes are read as UTC.

    Malformed timestamps give None and a warning instead of raising.
    """
    try:
        starts = (_coerce(first_start), _coerce(second_start))
        ends = (_coerce(first_end), _coerce(second_end))
    except (ValueError, TypeError, OverflowError) as exc:
        logger.warning(
            "Unparseable timestamp in overlap check (%s, %s) vs (%s, %s): %s",
            first_start,
            first_end,
            second_start,
            second_end,
            exc,
        )
        return None

    start = max(starts)
    end = min(ends)
    if start <= end:
        return Overlap(start=start, end=end)
    return None


def event_overlap(first: Event, second: Event) -> Overlap | None:
    return find_overlap(first.start_time, first.end_time, second.start_time, second.end_time)
