# dashaforecast/core/windows.py
from __future__ import annotations

"""
Signal → window detector.

Contract:
    detect(points, threshold=0.55, min_span=5, max_span=28) -> list[Window]

A window is a run of consecutive days whose signal is >= threshold, clamped
to [min_span, max_span] days from the day the run starts (a short spike is
padded forward with whatever days follow it; the end of the series always
wins over min_span). Each window is scored as the rounded mean signal ×100
over its clamped days and explained by the facts of its peak day.
Scanning resumes after the clamped range, so windows never overlap.
Output is sorted by score, highest first; ties keep chronological order.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Sequence, Tuple

from dashaforecast.core.constants import DEFAULT_MAX_SPAN, DEFAULT_MIN_SPAN, DEFAULT_THRESHOLD
from dashaforecast.core.errors import InvalidInput, err

__all__ = ["SignalPoint", "Window", "detect", "score_of"]

_DAY_START = time(0, 0, 0, tzinfo=timezone.utc)
_DAY_END = time(23, 59, 59, tzinfo=timezone.utc)


@dataclass(frozen=True)
class SignalPoint:
    date: date
    signal: float
    facts: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Window:
    start: datetime
    end: datetime
    score: int
    why: Tuple[str, ...] = ()

    @property
    def days(self) -> int:
        return (self.end.date() - self.start.date()).days + 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start.isoformat().replace("+00:00", "Z"),
            "end": self.end.isoformat().replace("+00:00", "Z"),
            "score": self.score,
            "why": list(self.why),
        }


def _clamp01(x: float) -> float:
    return 0.0 if x < 0.0 else 1.0 if x > 1.0 else x


def score_of(signals: Sequence[float]) -> int:
    """Mean signal as an integer percentage, rounded half-up."""
    avg = _clamp01(math.fsum(signals) / len(signals))
    return int((Decimal(repr(avg)) * 100).to_integral_value(rounding=ROUND_HALF_UP))


def _check(points: Sequence[SignalPoint], threshold: float, min_span: int, max_span: int) -> None:
    errors: List[Dict[str, Any]] = []
    if isinstance(threshold, bool) or not isinstance(threshold, (int, float)) \
            or not math.isfinite(threshold) or not 0.0 <= threshold <= 1.0:
        errors.append(err("threshold", "threshold must be a number in [0, 1]", "value_error.range"))
    for key, v in (("min_span", min_span), ("max_span", max_span)):
        if isinstance(v, bool) or not isinstance(v, int) or v < 1:
            errors.append(err(key, f"{key} must be a positive integer", "value_error.range"))
    if not errors and min_span > max_span:
        errors.append(err(["min_span", "max_span"], "min_span must not exceed max_span", "value_error.range"))

    prev: date | None = None
    for i, p in enumerate(points):
        if not isinstance(p, SignalPoint):
            errors.append(err(["points", i], "must be a SignalPoint", "type_error"))
            break
        if not isinstance(p.signal, (int, float)) or not math.isfinite(p.signal):
            errors.append(err(["points", i, "signal"], "signal must be a finite number", "value_error.finite"))
            break
        if prev is not None and p.date <= prev:
            errors.append(err(["points", i, "date"], "dates must be strictly increasing", "value_error.order"))
            break
        prev = p.date

    if errors:
        raise InvalidInput(errors)


def detect(
    points: Sequence[SignalPoint],
    threshold: float = DEFAULT_THRESHOLD,
    min_span: int = DEFAULT_MIN_SPAN,
    max_span: int = DEFAULT_MAX_SPAN,
) -> List[Window]:
    _check(points, threshold, min_span, max_span)

    n = len(points)
    found: List[Window] = []
    i = 0
    while i < n:
        if points[i].signal < threshold:
            i += 1
            continue

        run_start = run_end = peak = i
        while run_end + 1 < n and points[run_end + 1].signal >= threshold:
            run_end += 1
            if points[run_end].signal > points[peak].signal:
                peak = run_end

        raw = run_end - run_start + 1
        effective = max(min_span, min(max_span, raw))
        last = min(run_start + effective, n) - 1

        taken = points[run_start:last + 1]
        found.append(Window(
            start=datetime.combine(taken[0].date, _DAY_START),
            end=datetime.combine(taken[-1].date, _DAY_END),
            score=score_of([p.signal for p in taken]),
            why=tuple(points[peak].facts),
        ))
        i = last + 1

    # sorted() is stable: equal scores stay in discovery (chronological) order
    return sorted(found, key=lambda w: -w.score)
