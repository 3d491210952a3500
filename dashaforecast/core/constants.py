# dashaforecast/core/constants.py
# -*- coding: utf-8 -*-
"""
Vimshottari core constants

Purpose
-------
Single source of truth for:
- the 9 rulers, their cyclic order and year allotments (sum = 120)
- the 27 nakshatra names and mansion/pada arc sizes
- the year length used for every years -> elapsed-time conversion
- window-detector default tunables

Design
------
- Pure-Python, no external dependencies.
- Rulers are immutable records; the order of RULERS is the dasha cycle and
  must never be re-sorted.

Notes
-----
- YEAR_DAYS is the Julian year (365.25 d). It is applied at every
  level (MD, AD, PD, ...) so that sub-period sums and sibling contiguity hold.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Tuple

__all__ = [
    # rulers
    "Ruler", "RULERS", "CYCLE_YEARS",
    # mansions
    "NAKSHATRA_COUNT", "NAKSHATRA_NAMES", "MANSION_SPAN_DEG", "PADA_SPAN_DEG",
    # time
    "YEAR_DAYS", "years_to_duration",
    # levels
    "LEVEL_NAMES",
    # window tunables
    "DEFAULT_THRESHOLD", "DEFAULT_MIN_SPAN", "DEFAULT_MAX_SPAN",
    # helpers
    "ruler_for_mansion",
]


# ── rulers ────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Ruler:
    name: str
    years: int

    def __str__(self) -> str:
        return self.name


RULERS: Tuple[Ruler, ...] = (
    Ruler("Ketu", 7),
    Ruler("Venus", 20),
    Ruler("Sun", 6),
    Ruler("Moon", 10),
    Ruler("Mars", 7),
    Ruler("Rahu", 18),
    Ruler("Jupiter", 16),
    Ruler("Saturn", 19),
    Ruler("Mercury", 17),
)


CYCLE_YEARS: int = sum(r.years for r in RULERS)  # 120

# ── mansions ─────────────────────────────────────────────────────────────────
NAKSHATRA_COUNT: int = 27
MANSION_SPAN_DEG: float = 360.0 / NAKSHATRA_COUNT   # 13°20'
PADA_SPAN_DEG: float = 360.0 / (NAKSHATRA_COUNT * 4)  # 3°20'

NAKSHATRA_NAMES: Tuple[str, ...] = (
    "Ashwini", "Bharani", "Krittika", "Rohini", "Mrigashira", "Ardra",
    "Punarvasu", "Pushya", "Ashlesha", "Magha", "Purva Phalguni",
    "Uttara Phalguni", "Hasta", "Chitra", "Swati", "Vishakha", "Anuradha",
    "Jyeshtha", "Mula", "Purva Ashadha", "Uttara Ashadha", "Shravana",
    "Dhanishta", "Shatabhisha", "Purva Bhadrapada", "Uttara Bhadrapada",
    "Revati",
)

# ── time ─────────────────────────────────────────────────────────────────────
YEAR_DAYS: float = 365.25


def years_to_duration(years: float) -> timedelta:
    """Ruler-years -> elapsed time, microsecond resolution."""
    return timedelta(days=years * YEAR_DAYS)


# ── levels ───────────────────────────────────────────────────────────────────
LEVEL_NAMES: Dict[int, str] = {1: "MD", 2: "AD", 3: "PD"}

# ── window detector defaults ─────────────────────────────────────────────────
DEFAULT_THRESHOLD: float = 0.55
DEFAULT_MIN_SPAN: int = 5
DEFAULT_MAX_SPAN: int = 28


# ── helpers ──────────────────────────────────────────────────────────────────
def ruler_for_mansion(index: int) -> Ruler:
    return RULERS[int(index) % len(RULERS)]
