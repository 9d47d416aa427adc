"""
Time-series response parsing and merging.

Turns query_range responses into per-chart point lists and merges several
device-type series into stacked chart rows.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from pydantic import ValidationError

from ..schemas import APIPromQL, APIPromQLSingle, PromQLSample, PromQLSeries
from .step import DateLike, parse_timestamp, step_to_seconds

logger = logging.getLogger("resperf.queries")

ParsedPoint = Dict[str, Any]
MergedRow = Dict[str, Any]

# Fixed per-locale date patterns, so identical input always renders identically
LOCALE_DATE_FORMATS = {
    "en": "%m/%d/%Y %H:%M",
    "ja": "%Y/%m/%d %H:%M",
}
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M"

# Epoch seconds that fit datetime64[ns] with room for any display timezone
_MIN_EPOCH = pd.Timestamp("1678-01-02", tz="UTC").timestamp()
_MAX_EPOCH = pd.Timestamp("2262-04-10", tz="UTC").timestamp()
_EPOCH = pd.Timestamp(0, tz="UTC")


def date_format_for(locale: Optional[str]) -> str:
    """strftime pattern for a locale tag such as 'en', 'en-US' or 'ja_JP'."""
    language = (locale or "").replace("_", "-").split("-")[0].lower()
    return LOCALE_DATE_FORMATS.get(language, DEFAULT_DATE_FORMAT)


def to_range_response(response: Union[APIPromQL, Mapping, None]) -> Optional[APIPromQL]:
    """Validate a raw query_range payload; None if missing or malformed."""
    if response is None or isinstance(response, APIPromQL):
        return response
    try:
        return APIPromQL.model_validate(response)
    except ValidationError as e:
        logger.warning(f"Malformed query_range response: {e.error_count()} validation errors")
        return None


def to_single_response(response: Union[APIPromQLSingle, Mapping, None]) -> Optional[APIPromQLSingle]:
    """Validate a raw instant query payload; None if missing or malformed."""
    if response is None or isinstance(response, APIPromQLSingle):
        return response
    try:
        return APIPromQLSingle.model_validate(response)
    except ValidationError as e:
        logger.warning(f"Malformed query response: {e.error_count()} validation errors")
        return None


def find_series(response: Optional[APIPromQL], data_label: str) -> Optional[PromQLSeries]:
    if response is None:
        return None
    for series in response.data.result:
        if series.metric.data_label == data_label:
            return series
    return None


def find_samples(response: Optional[APIPromQLSingle], data_label: str) -> List[PromQLSample]:
    """All instant samples carrying `data_label`."""
    if response is None:
        return []
    return [sample for sample in response.data.result if sample.metric.data_label == data_label]


def series_to_frame(series: PromQLSeries) -> pd.DataFrame:
    """
    Convert series values into a DataFrame with UTC `timestamp` and float `value`.

    Non-numeric and infinite values become 0.0.
    """
    df = pd.DataFrame(series.values, columns=["timestamp", "value"])
    if df.empty:
        return pd.DataFrame({
            "timestamp": pd.Series([], dtype="datetime64[ns, UTC]"),
            "value": pd.Series([], dtype=float),
        })
    # Unrenderable epochs are dropped
    epochs = pd.to_numeric(df["timestamp"], errors="coerce")
    df = df[epochs.between(_MIN_EPOCH, _MAX_EPOCH)].copy()
    df["timestamp"] = pd.to_datetime(epochs[df.index], unit="s", utc=True, errors="coerce")
    df = df.dropna(subset=["timestamp"])
    values = pd.to_numeric(df["value"], errors="coerce").astype(float)
    df["value"] = values.replace([np.inf, -np.inf], np.nan).fillna(0.0)
    return df.sort_values("timestamp", kind="stable").reset_index(drop=True)


def _align(df: pd.DataFrame, start_ts: Optional[pd.Timestamp], end_ts: Optional[pd.Timestamp], step: str) -> pd.DataFrame:
    """Reindex onto start, start+step, ... within the bounds, filling gaps with 0.0."""
    first = start_ts if start_ts is not None else (df["timestamp"].iloc[0] if not df.empty else None)
    last = end_ts if end_ts is not None else (df["timestamp"].iloc[-1] if not df.empty else None)
    if first is None or last is None or first > last:
        return df

    axis = pd.date_range(first, last, freq=pd.Timedelta(seconds=step_to_seconds(step)))
    aligned = (
        df.drop_duplicates("timestamp", keep="last")
        .set_index("timestamp")["value"]
        .reindex(axis, fill_value=0.0)
    )
    return pd.DataFrame({"timestamp": aligned.index, "value": aligned.to_numpy(dtype=float)})


def parse_graph_data(
    response: Union[APIPromQL, Mapping, None],
    data_label: str,
    locale: Optional[str],
    start: DateLike = None,
    end: DateLike = None,
    step: Optional[str] = None,
    tz: str = "UTC",
) -> Optional[List[ParsedPoint]]:
    """
    Extract the series labelled `data_label` as chart points.

    Args:
        response: query_range response (model or raw dict)
        data_label: label injected by the query builder, e.g. 'CPU_energy'
        locale: language tag selecting the date pattern
        start, end: clip bounds; a missing bound does not clip
        step: when given, align onto the step axis and fill gaps with 0.0
        tz: timezone the dates are rendered in

    Returns:
        List of {"date", "value", "timestamp"} points (timestamp in epoch
        seconds), or None when there is no such series
    """
    series = find_series(to_range_response(response), data_label)
    if series is None:
        return None

    df = series_to_frame(series)
    start_ts = parse_timestamp(start)
    end_ts = parse_timestamp(end)
    if start_ts is not None:
        df = df[df["timestamp"] >= start_ts]
    if end_ts is not None:
        df = df[df["timestamp"] <= end_ts]
    if step:
        df = _align(df, start_ts, end_ts, step)
    if df.empty:
        return []

    dates = df["timestamp"].dt.tz_convert(tz).dt.strftime(date_format_for(locale))
    epochs = (df["timestamp"] - _EPOCH) / pd.Timedelta(seconds=1)
    return [
        {"date": date, "value": float(value), "timestamp": float(epoch)}
        for date, value, epoch in zip(dates.tolist(), df["value"].tolist(), epochs.tolist())
    ]


def _union_dates(series_list: Sequence[List[ParsedPoint]]) -> List[str]:
    """
    Union of dates keeping each series' own order.

    A new date is placed right after the previous date of its series (or before
    its first already known date). Series sharing no date are appended.
    """
    order: List[str] = []
    placed = set()
    for points in series_list:
        dates = [point["date"] for point in points]
        known = [date for date in dates if date in placed]
        anchor = order.index(known[0]) - 1 if known else len(order) - 1
        for date in dates:
            if date in placed:
                anchor = order.index(date)
                continue
            anchor += 1
            order.insert(anchor, date)
            placed.add(date)
    return order


def _read_back_dates(dates: Sequence[str]) -> Optional[List[pd.Timestamp]]:
    """Parse rendered dates with the first known pattern matching all of them."""
    for fmt in [*LOCALE_DATE_FORMATS.values(), DEFAULT_DATE_FORMAT]:
        times = pd.to_datetime(pd.Series(list(dates), dtype=object), format=fmt, errors="coerce")
        if not times.isna().any():
            return times.tolist()
    return None


def _row_keys(series_list: Sequence[List[ParsedPoint]]) -> Tuple[List[Any], str]:
    """Row keys in ascending time order and the point field they come from."""
    if all("timestamp" in point for points in series_list for point in points):
        return sorted({point["timestamp"] for points in series_list for point in points}), "timestamp"

    # Points built without a timestamp are ordered by their rendered date
    dates = _union_dates(series_list)
    times = _read_back_dates(dates)
    if times is not None:
        dates = [date for _, date in sorted(zip(times, dates), key=lambda pair: pair[0])]
    return dates, "date"


def merge_multi_graph_data(
    series: Union[Sequence[Optional[List[ParsedPoint]]], Mapping[str, Optional[List[ParsedPoint]]]],
    types: Optional[Sequence[Any]] = None,
) -> List[MergedRow]:
    """
    Merge per-type point lists into rows of {"date", <type>: value, ...}.

    Columns are named by `types` (or the mapping keys) exactly as given. Rows
    are in ascending time order, one per sample timestamp. A timestamp missing
    from a series gets no key for that series.
    """
    if isinstance(series, Mapping):
        names = [str(name) for name in series.keys()]
        series_list = list(series.values())
    else:
        series_list = list(series)
        names = [str(t) for t in types] if types is not None else [str(i) for i in range(len(series_list))]
        if len(names) != len(series_list):
            raise ValueError(f"Got {len(series_list)} series for {len(names)} column names")

    present = [(name, points) for name, points in zip(names, series_list) if points]
    if not present:
        return []

    keys, field = _row_keys([points for _, points in present])
    rows: Dict[Any, MergedRow] = {}
    for name, points in present:
        for point in points:
            row = rows.setdefault(point[field], {"date": point["date"]})
            row[name] = point["value"]
    return [rows[key] for key in keys]
