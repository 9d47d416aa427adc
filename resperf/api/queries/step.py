"""
Query step resolution and range parameters.

Picks the query_range step from the selected date range and decides whether
the range end should follow the wall clock. "now" is always a parameter so
callers and tests control the clock.
"""

import logging
import re
from datetime import date, datetime, timezone
from typing import Optional, Tuple, Union

import pandas as pd

from ..schemas import QueryRangeParams
from .constants import DEFAULT_STEP, MAX_GRAPH_POINTS, STEP_LADDER

logger = logging.getLogger("resperf.queries")

DateLike = Union[str, datetime, date, pd.Timestamp, None]

_STEP_PATTERN = re.compile(r"^(\d+)([smhdw])$")
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600, "d": 86400, "w": 7 * 86400}


def parse_timestamp(value: DateLike) -> Optional[pd.Timestamp]:
    """
    Parse an ISO string or datetime into a UTC-aware Timestamp.

    Returns None for None, "" and unparseable input such as "Invalid Date".
    Naive values are taken as UTC.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        logger.debug(f"Unparseable date: {value!r}")
        return None
    if pd.isna(ts):
        return None
    if ts.tzinfo is None:
        return ts.tz_localize("UTC")
    return ts.tz_convert("UTC")


def step_to_seconds(step: str) -> int:
    """Convert a step string such as '5m' or '1h' to seconds."""
    match = _STEP_PATTERN.match(step or "")
    if not match:
        return dict(STEP_LADDER)[DEFAULT_STEP]
    return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]


def get_step_from_range(start: DateLike, end: DateLike) -> str:
    """
    Pick the finest step keeping the number of points within MAX_GRAPH_POINTS.

    Longer ranges never get a finer step. Missing or unparseable bounds give DEFAULT_STEP.

    Examples:
        >>> get_step_from_range('2025-06-01T00:00:00Z', '2025-06-10T00:00:00Z')
        '1h'
        >>> get_step_from_range(None, '2025-06-10T00:00:00Z')
        '1h'
    """
    start_ts = parse_timestamp(start)
    end_ts = parse_timestamp(end)
    if start_ts is None or end_ts is None:
        return DEFAULT_STEP

    range_seconds = max((end_ts - start_ts).total_seconds(), 0)
    for step, seconds in STEP_LADDER:
        if range_seconds / seconds <= MAX_GRAPH_POINTS:
            return step
    return STEP_LADDER[-1][0]


def current_time() -> datetime:
    """Wall clock in the local timezone."""
    return datetime.now().astimezone()


def is_end_today(end: DateLike, now: Optional[datetime] = None) -> bool:
    """True if `end` falls on the same calendar day as `now`, in the timezone of `now`."""
    end_ts = parse_timestamp(end)
    if end_ts is None:
        return False
    now = now or current_time()
    if now.tzinfo is None:
        now = now.astimezone()
    return end_ts.to_pydatetime().astimezone(now.tzinfo).date() == now.date()


def to_iso(moment: datetime) -> str:
    """UTC ISO-8601 with milliseconds and a Z suffix, e.g. 2025-06-10T12:34:56.789Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def create_query_params(
    query: str,
    start: Optional[str],
    end: Optional[str],
    step: str,
    now: Optional[datetime] = None,
) -> QueryRangeParams:
    """
    Build query_range parameters.

    If `end` is today the range follows the wall clock and `end` becomes `now`;
    otherwise `end` is passed through as given, including None and "".
    """
    now = now or current_time()
    resolved_end = to_iso(now) if is_end_today(end, now) else end
    return QueryRangeParams(query=query, start=start, end=resolved_end, step=step)


def normalize_date_range(
    date_range: Tuple[DateLike, DateLike],
    tz: str = "UTC",
) -> Tuple[Optional[str], Optional[str]]:
    """
    Turn a selected [first day, last day] pair into ISO start/end strings.

    The start is midnight of the first day and the end is the last millisecond
    of the last day, both in `tz`. A missing side stays None.
    """
    first, last = date_range
    start_ts = _localize(first, tz)
    end_ts = _localize(last, tz)

    start_iso = to_iso(start_ts.normalize().to_pydatetime()) if start_ts is not None else None
    end_iso = None
    if end_ts is not None:
        end_of_day = end_ts.normalize() + pd.Timedelta(days=1) - pd.Timedelta(milliseconds=1)
        end_iso = to_iso(end_of_day.to_pydatetime())
    return start_iso, end_iso


def default_date_range(now: Optional[datetime] = None, tz: str = "UTC") -> Tuple[str, str]:
    """One month back from `now` (from midnight) up to `now`."""
    now_ts = pd.Timestamp(now or current_time())
    now_ts = now_ts.tz_localize(tz) if now_ts.tzinfo is None else now_ts.tz_convert(tz)
    start_ts = (now_ts - pd.DateOffset(months=1)).normalize()
    return to_iso(start_ts.to_pydatetime()), to_iso(now_ts.to_pydatetime())


def _localize(value: DateLike, tz: str) -> Optional[pd.Timestamp]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(ts):
        return None
    return ts.tz_localize(tz) if ts.tzinfo is None else ts.tz_convert(tz)
