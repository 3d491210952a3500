# dashaforecast/core/dasha.py
"""
Vimshottari dasha engine.

Public API:
    build_timeline(birth, position, horizon)         -> list[Span]   (MD level)
    subdivide(parent)                                -> list[Span]   (level + 1)
    materialize_levels(birth, position, horizon, n)  -> {"MD": [...], "AD": [...], ...}
    active_periods(when, md_spans, depth=3)          -> [MD, AD, PD] containing `when`

All functions are pure: they allocate and return fresh lists and never keep
state between calls. Instants are timezone-aware UTC datetimes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from dashaforecast.core.constants import (
    CYCLE_YEARS,
    LEVEL_NAMES,
    RULERS,
    Ruler,
    ruler_for_mansion,
    years_to_duration,
)
from dashaforecast.core.errors import InvalidInput, err
from dashaforecast.core.nakshatra import NakshatraPosition

log = logging.getLogger(__name__)

__all__ = [
    "Span",
    "build_timeline",
    "subdivide",
    "materialize_levels",
    "active_periods",
    "rotated_rulers",
    "as_utc",
]

MAX_LEVELS = 3


@dataclass(frozen=True)
class Span:
    ruler: Ruler
    level: int
    start: datetime
    end: datetime
    parent: Optional["Span"] = field(default=None, compare=False, repr=False)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def level_name(self) -> str:
        return LEVEL_NAMES.get(self.level, f"L{self.level}")

    def contains(self, when: datetime) -> bool:
        return self.start <= when < self.end

    def lineage(self) -> List["Span"]:
        """Ancestors from MD down to this span."""
        chain: List[Span] = []
        cur: Optional[Span] = self
        while cur is not None:
            chain.append(cur)
            cur = cur.parent
        return chain[::-1]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "ruler": self.ruler.name,
            "level": self.level_name,
            "start": _iso(self.start),
            "end": _iso(self.end),
        }
        if self.parent is not None:
            out["parent"] = self.parent.ruler.name
        return out


# ───────────────────────────── helpers ─────────────────────────────
def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def as_utc(dt: Any, loc: str = "birth") -> datetime:
    if not isinstance(dt, datetime):
        raise InvalidInput(err(loc, "must be a datetime", "type_error.datetime"))
    if dt.tzinfo is None or dt.utcoffset() is None:
        raise InvalidInput(err(loc, "must be timezone-aware", "value_error.naive_datetime"))
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError:
        raise InvalidInput(err(loc, "instant is outside the supported date range", "value_error.datetime")) from None


def rotated_rulers(first: Ruler) -> List[Ruler]:
    i = RULERS.index(first)
    return list(RULERS[i:] + RULERS[:i])


def _us(td: timedelta) -> int:
    return (td.days * 86_400 + td.seconds) * 1_000_000 + td.microseconds


def _shift(t: datetime, by: timedelta) -> datetime:
    try:
        return t + by
    except OverflowError:
        raise InvalidInput(err("horizon", "timeline runs past the supported date range (year 9999)",
                               "value_error.horizon")) from None


# ───────────────────────────── MD timeline ─────────────────────────────
def build_timeline(birth: datetime, position: NakshatraPosition, horizon: timedelta) -> List[Span]:
    """
    Mahadasha sequence from birth. The first span is the birth ruler's
    unexpired balance; every later span is a full allotment. Generation stops
    once a span would start at or after birth + horizon, so the final span may
    run past the horizon.
    """
    start = as_utc(birth)
    if not isinstance(position, NakshatraPosition):
        raise InvalidInput(err("position", "must be a NakshatraPosition", "type_error"))
    if not isinstance(horizon, timedelta) or horizon <= timedelta(0):
        raise InvalidInput(err("horizon", "horizon must be a positive duration", "value_error.horizon"))

    limit = _shift(start, horizon)
    order = rotated_rulers(ruler_for_mansion(position.index))

    spans: List[Span] = []
    k = 0
    while start < limit:
        ruler = order[k % len(order)]
        if k == 0:
            dur = years_to_duration((1.0 - position.fraction_elapsed) * ruler.years)
        else:
            dur = years_to_duration(ruler.years)
        if dur <= timedelta(0):
            # birth exactly at the end of a mansion: nothing left of this ruler
            k += 1
            continue
        end = _shift(start, dur)
        spans.append(Span(ruler=ruler, level=1, start=start, end=end))
        start = end
        k += 1

    log.debug("built %d MD spans from %s (horizon=%s)", len(spans), _iso(as_utc(birth)), horizon)
    return spans


# ───────────────────────────── sub-periods ─────────────────────────────
def subdivide(parent: Span) -> List[Span]:
    """
    Split `parent` into its 9 sub-periods, starting with the parent's own
    ruler. Shares are years/120 of the parent, computed in whole microseconds;
    the last child ends exactly at parent.end.
    """
    if not isinstance(parent, Span):
        raise InvalidInput(err("parent", "must be a Span", "type_error"))
    total = _us(parent.duration)
    if total <= 0:
        raise InvalidInput(err("parent", "span duration must be positive", "value_error.duration"))

    order = rotated_rulers(parent.ruler)
    children: List[Span] = []
    cursor = parent.start
    for k, ruler in enumerate(order):
        if k == len(order) - 1:
            end = parent.end
        else:
            end = cursor + timedelta(microseconds=total * ruler.years // CYCLE_YEARS)
        children.append(Span(ruler=ruler, level=parent.level + 1, start=cursor, end=end, parent=parent))
        cursor = end
    return children


def materialize_levels(
    birth: datetime,
    position: NakshatraPosition,
    horizon: timedelta,
    levels: int = 2,
) -> Dict[str, List[Span]]:
    """
    MD timeline plus `levels - 1` nested levels. Lower levels keep only spans
    that start before birth + horizon.
    """
    if isinstance(levels, bool) or not isinstance(levels, int) or not 1 <= levels <= MAX_LEVELS:
        raise InvalidInput(err("levels", f"levels must be an integer in 1..{MAX_LEVELS}", "value_error.range"))

    md = build_timeline(birth, position, horizon)
    limit = as_utc(birth) + horizon
    out: Dict[str, List[Span]] = {LEVEL_NAMES[1]: md}
    above = md
    for level in range(2, levels + 1):
        below: List[Span] = []
        for span in above:
            below.extend(c for c in subdivide(span) if c.start < limit)
        out[LEVEL_NAMES[level]] = below
        above = below
    return out


def active_periods(when: datetime, md_spans: List[Span], depth: int = MAX_LEVELS) -> List[Span]:
    """Chain of spans (MD first) that contain `when`; [] outside the timeline."""
    t = as_utc(when, "when")
    if isinstance(depth, bool) or not isinstance(depth, int) or depth < 1:
        raise InvalidInput(err("depth", "depth must be a positive integer", "value_error.range"))

    chain: List[Span] = []
    candidates = md_spans
    while candidates and len(chain) < depth:
        hit = next((s for s in candidates if s.contains(t)), None)
        if hit is None:
            break
        chain.append(hit)
        candidates = subdivide(hit) if len(chain) < depth else []
    return chain
