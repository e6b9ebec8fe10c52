#!/usr/bin/env python3
"""
Chart Series
Time-series normalization and weekly OHLC candles
"""

from typing import Any, Dict, Iterable, List, Optional

from .models import Candle, SeriesPoint
from .normalizer import first_match, key_path
from .utils import to_ms, to_num

MS_PER_DAY = 86_400_000

# Candidate keys seen across DefiLlama chart payloads
TIME_EXTRACTORS = [key_path("date"), key_path("timestamp"), key_path("time"), key_path("t"), key_path(0)]
TVL_EXTRACTORS = [key_path("tvl"), key_path("totalLiquidityUSD"), key_path("value"), key_path("v"), key_path(1)]
VOLUME_EXTRACTORS = [
    key_path("totalVolume"),
    key_path("volume"),
    key_path("value"),
    key_path("dailyVolume"),
    key_path("v"),
    key_path(1),
]

VOLUME_SERIES_KEYS = [
    ["totalDataChart", "totalDataChartBreakdown"],
    ["chart", "chartData", "data", "volumeChart", "totalVolumeChart"],
]


def week_start_ms(t_ms: int) -> int:
    """Monday 00:00 UTC of the week containing t_ms"""
    day = t_ms // MS_PER_DAY
    # 1970-01-01 was a Thursday (weekday 3)
    monday = day - (day + 3) % 7
    return monday * MS_PER_DAY


def normalize_series(raw: Iterable[Any], value_extractors=None) -> List[SeriesPoint]:
    """Rows of dicts or [ts, value] pairs -> time-sorted points; bad rows skipped"""
    value_extractors = value_extractors or TVL_EXTRACTORS
    points = []
    for row in raw or []:
        t = to_ms(first_match(row, TIME_EXTRACTORS))
        v = to_num(first_match(row, value_extractors))
        if t is not None and v is not None:
            points.append(SeriesPoint(t=t, v=v))
    points.sort(key=lambda point: point.t)
    return points


def pick_series(payload: Any, keys: List[str]) -> Optional[list]:
    """First non-empty list under payload[key] or payload['data'][key]"""
    for key in keys:
        value = first_match(payload, [key_path(key), key_path("data", key)])
        if isinstance(value, list) and value:
            return value
    return None


def find_volume_series(payload: Any) -> Optional[list]:
    if isinstance(payload, list):
        return payload or None
    for keys in VOLUME_SERIES_KEYS:
        series = pick_series(payload, keys)
        if series is not None:
            return series
    return None


def to_weekly_candles(points: Iterable[SeriesPoint]) -> List[Candle]:
    """
    Group points into Monday-anchored UTC weeks.

    open/close are the chronologically first/last point of the week and
    high/low its extremes. Weeks without points are skipped, not zero-filled.
    """
    buckets: Dict[int, List[SeriesPoint]] = {}
    for point in points:
        buckets.setdefault(week_start_ms(point.t), []).append(point)

    candles = []
    for week in sorted(buckets):
        week_points = sorted(buckets[week], key=lambda point: point.t)
        values = [point.v for point in week_points]
        candles.append(Candle(
            t=week,
            o=week_points[0].v,
            h=max(values),
            l=min(values),
            c=week_points[-1].v,
        ))
    return candles
