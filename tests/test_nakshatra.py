# tests/test_nakshatra.py
from __future__ import annotations

import math
import pytest
from hypothesis import given, strategies as st

from dashaforecast.core.constants import MANSION_SPAN_DEG
from dashaforecast.core.errors import InvalidInput
from dashaforecast.core.nakshatra import locate, wrap360

FINITE = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)


def test_zero_is_ashwini_first_pada() -> None:
    p = locate(0.0)
    assert (p.index, p.pada, p.fraction_elapsed) == (0, 1, 0.0)
    assert p.name == "Ashwini"
    assert p.ruler.name == "Ketu"


def test_regression_longitude_is_purva_phalguni(regression_longitude) -> None:
    p = locate(regression_longitude)
    assert p.index == 10
    assert p.name == "Purva Phalguni"
    assert p.ruler.name == "Venus"
    assert p.pada == 3
    assert p.fraction_elapsed == pytest.approx(0.6233748255, abs=1e-9)


def test_negative_wraps_forward() -> None:
    p = locate(-1.0)
    assert p.index == 26
    assert p.name == "Revati"
    assert p.pada == 4
    assert p == locate(359.0)


def test_full_circle_is_start() -> None:
    assert locate(360.0) == locate(0.0)
    assert locate(720.0).index == 0


def test_mansion_boundary_starts_next_mansion() -> None:
    p = locate(40.0 + 1e-9)  # Krittika ends, Rohini begins
    assert p.index == 3
    assert p.pada == 1
    assert p.fraction_elapsed == pytest.approx(0.0, abs=1e-9)


def test_just_below_360_snaps_to_start() -> None:
    assert locate(math.nextafter(360.0, 0.0)) == locate(0.0)
    p = locate(360.0 - 1e-6)
    assert (p.index, p.pada) == (26, 4)
    assert 0.0 <= p.fraction_elapsed <= 1.0


@pytest.mark.parametrize("lon", [0.1, 141.64499767356253, 359.9, 13.3333, 200.0])
def test_full_turns_give_identical_positions(lon) -> None:
    base = locate(lon)
    for k in (-2, -1, 1, 2, 5):
        assert locate(lon + 360.0 * k) == base


def test_to_dict_shape() -> None:
    d = locate(100.0).to_dict()
    assert set(d) == {"index", "name", "pada", "fraction_elapsed", "ruler"}
    assert d["name"] == "Pushya"
    assert d["ruler"] == "Saturn"


@pytest.mark.parametrize("bad", [float("nan"), float("inf"), float("-inf"), "north", None, True])
def test_rejects_non_finite_and_non_numeric(bad) -> None:
    with pytest.raises(InvalidInput) as ei:
        locate(bad)
    assert ei.value.errors()[0]["loc"] == ["longitude"]


def test_numeric_strings_are_accepted() -> None:
    assert locate("141.64499767356253") == locate(141.64499767356253)


# ─────────────────────────────────────────────────────────────────────────────
# Properties
# ─────────────────────────────────────────────────────────────────────────────

@given(FINITE)
def test_ranges_hold_for_any_longitude(lon: float) -> None:
    p = locate(lon)
    assert 0 <= p.index <= 26
    assert 1 <= p.pada <= 4
    assert 0.0 <= p.fraction_elapsed <= 1.0


@given(FINITE)
def test_position_reconstructs_longitude(lon: float) -> None:
    p = locate(lon)
    rebuilt = p.index * MANSION_SPAN_DEG + p.fraction_elapsed * MANSION_SPAN_DEG
    w = wrap360(lon)
    diff = abs(rebuilt - w)
    assert min(diff, 360.0 - diff) < 1e-7


@given(st.integers(min_value=-360_000_000, max_value=720_000_000), st.integers(min_value=-3, max_value=3))
def test_adding_a_full_turn_changes_nothing(micro_deg: int, turns: int) -> None:
    lon = micro_deg / 1e6
    assert locate(lon + 360.0 * turns) == locate(lon)
