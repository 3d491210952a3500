# tests/test_gating.py
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from dashaforecast.core.constants import YEAR_DAYS
from dashaforecast.core.dasha import build_timeline
from dashaforecast.core.gating import GATE_MAX, GATE_MIN, dasha_gate, gate_signals
from dashaforecast.core.nakshatra import locate
from dashaforecast.core.windows import SignalPoint

UTC = timezone.utc


@pytest.fixture()
def md_spans(regression_birth, regression_longitude):
    return build_timeline(regression_birth, locate(regression_longitude), timedelta(days=120 * YEAR_DAYS))


def test_outside_timeline_is_neutral(md_spans) -> None:
    assert dasha_gate(datetime(1950, 1, 1, tzinfo=UTC), md_spans, "wealth") == 1.0


def test_unknown_topic_gets_base_factor(md_spans) -> None:
    # 2000-06-01 falls in the Moon MD: no bonus, no node penalty
    assert dasha_gate(datetime(2000, 6, 1, tzinfo=UTC), md_spans, "astrology") == pytest.approx(0.90)


def test_node_mahadasha_is_penalised(md_spans) -> None:
    when = datetime(2020, 1, 1, tzinfo=UTC)  # Rahu MD
    assert dasha_gate(when, md_spans, "astrology") == pytest.approx(0.85)


def test_supportive_md_and_ad_are_capped(md_spans) -> None:
    # Venus MD / Venus AD right after birth; 0.9 + 0.15 + 0.10 caps at 1.0
    when = datetime(1984, 2, 1, tzinfo=UTC)
    assert dasha_gate(when, md_spans, "relationship") == GATE_MAX


def test_topic_is_case_insensitive(md_spans) -> None:
    when = datetime(1984, 2, 1, tzinfo=UTC)
    assert dasha_gate(when, md_spans, "  Wealth ") == dasha_gate(when, md_spans, "wealth")


def test_gate_always_within_bounds(md_spans) -> None:
    start = md_spans[0].start
    for topic in ("vehicle", "property", "job", "wealth", "health", "relationship", "other"):
        for k in range(0, 120 * 365, 97):
            g = dasha_gate(start + timedelta(days=k), md_spans, topic)
            assert GATE_MIN <= g <= GATE_MAX


def test_gate_signals_scales_and_keeps_facts(md_spans) -> None:
    pts = [
        SignalPoint(date=date(2020, 1, 1), signal=0.8, facts=("x",)),
        SignalPoint(date=date(2020, 1, 2), signal=0.4),
    ]
    out = gate_signals(pts, md_spans, "astrology")
    assert [p.date for p in out] == [p.date for p in pts]
    assert out[0].facts == ("x",)
    assert out[0].signal == pytest.approx(0.8 * 0.85)
    assert out[1].signal == pytest.approx(0.4 * 0.85)
    # inputs untouched
    assert pts[0].signal == 0.8


def test_gate_signals_without_timeline_is_identity() -> None:
    pts = [SignalPoint(date=date(2020, 1, 1), signal=0.7)]
    assert gate_signals(pts, [], "job") == pts
