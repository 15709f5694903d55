"""Live WPM sampling.

The sampler keeps no state between ticks: every sample is a projection of the
session's start time and how much has been typed, taken at ``now``. The series
itself belongs to the session and only ever gains one point per elapsed second,
however often the timer fires.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass

from metrics import words_per_minute


@dataclass(frozen=True)
class WpmPoint:
    time: int
    wpm: int
    raw: int
    errors: int

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class LiveMetrics:
    elapsed_seconds: int
    wpm: int


def live_metrics(started_at: float, now: float, typed_len: int) -> LiveMetrics:
    elapsed = max(now - started_at, 0.0)
    return LiveMetrics(
        elapsed_seconds=int(math.floor(elapsed)),
        wpm=words_per_minute(typed_len, elapsed),
    )


def take_sample(started_at: float, now: float, typed_len: int) -> WpmPoint:
    metrics = live_metrics(started_at, now, typed_len)
    return WpmPoint(time=metrics.elapsed_seconds, wpm=metrics.wpm, raw=metrics.wpm, errors=0)


def append_point(series: list[WpmPoint], point: WpmPoint) -> bool:
    """Append ``point`` unless the series already has a point for that second."""
    if series and series[-1].time >= point.time:
        return False
    series.append(point)
    return True
