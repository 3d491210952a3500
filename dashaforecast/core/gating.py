# dashaforecast/core/gating.py
from __future__ import annotations
from datetime import datetime, time, timezone
from typing import Dict, FrozenSet, List, Sequence

from dashaforecast.core.dasha import Span, active_periods
from dashaforecast.core.windows import SignalPoint

__all__ = ["SUPPORTIVE_RULERS", "GATE_MIN", "GATE_MAX", "dasha_gate", "gate_signals"]

# Rulers whose MD/AD lend support to a topic
SUPPORTIVE_RULERS: Dict[str, FrozenSet[str]] = {
    "vehicle":      frozenset({"Venus", "Jupiter", "Mercury"}),
    "property":     frozenset({"Jupiter", "Venus", "Saturn"}),
    "job":          frozenset({"Saturn", "Jupiter", "Mercury"}),
    "wealth":       frozenset({"Jupiter", "Venus", "Mercury"}),
    "health":       frozenset({"Sun", "Mars", "Jupiter", "Moon"}),
    "relationship": frozenset({"Venus", "Moon", "Jupiter"}),
}
NODES = frozenset({"Rahu", "Ketu"})

GATE_BASE = 0.90
GATE_MD_BONUS = 0.15
GATE_AD_BONUS = 0.10
GATE_NODE_PENALTY = 0.05
GATE_MIN, GATE_MAX = 0.75, 1.0

_MIDDAY = time(12, 0, 0, tzinfo=timezone.utc)


def dasha_gate(when: datetime, md_spans: Sequence[Span], topic: str) -> float:
    """Soft multiplier in [0.75, 1.0]; neutral (1.0) outside the timeline."""
    chain = active_periods(when, list(md_spans), depth=2)
    if not chain:
        return 1.0
    supportive = SUPPORTIVE_RULERS.get((topic or "").strip().lower(), frozenset())

    factor = GATE_BASE
    md = chain[0].ruler.name
    if md in supportive:
        factor += GATE_MD_BONUS
    if len(chain) > 1 and chain[1].ruler.name in supportive:
        factor += GATE_AD_BONUS
    if md in NODES:
        factor -= GATE_NODE_PENALTY
    return min(GATE_MAX, max(GATE_MIN, factor))


def gate_signals(points: Sequence[SignalPoint], md_spans: Sequence[Span], topic: str) -> List[SignalPoint]:
    """New points with each signal scaled by the gate at that day's midday UTC."""
    return [
        SignalPoint(
            date=p.date,
            signal=p.signal * dasha_gate(datetime.combine(p.date, _MIDDAY), md_spans, topic),
            facts=p.facts,
        )
        for p in points
    ]
