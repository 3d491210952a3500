# dashaforecast/core/nakshatra.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict

from dashaforecast.core.constants import (
    MANSION_SPAN_DEG,
    NAKSHATRA_COUNT,
    NAKSHATRA_NAMES,
    PADA_SPAN_DEG,
    Ruler,
    ruler_for_mansion,
)
from dashaforecast.core.errors import InvalidInput, err

__all__ = ["NakshatraPosition", "locate", "wrap360", "LONGITUDE_DECIMALS"]

# 1e-9 deg (~3.6 micro-arcsec): absorbs the float noise of L + 360k so
# every turn of the same longitude lands on the same position
LONGITUDE_DECIMALS = 9


@dataclass(frozen=True)
class NakshatraPosition:
    index: int              # 0..26
    pada: int               # 1..4
    fraction_elapsed: float  # 0..1 of the mansion already traversed

    @property
    def name(self) -> str:
        return NAKSHATRA_NAMES[self.index]

    @property
    def ruler(self) -> Ruler:
        return ruler_for_mansion(self.index)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "name": self.name,
            "pada": self.pada,
            "fraction_elapsed": self.fraction_elapsed,
            "ruler": self.ruler.name,
        }


def wrap360(x: float) -> float:
    v = float(x) % 360.0
    # -1e-17 % 360 == 360.0 in floats
    return 0.0 if v >= 360.0 else v


def locate(longitude_deg: Any) -> NakshatraPosition:
    """
    Map a sidereal longitude (degrees) to its nakshatra, pada and the
    fraction of the mansion already elapsed.

    Any finite input is accepted, wrapped into [0, 360) and snapped to
    LONGITUDE_DECIMALS places; NaN/inf raise.
    """
    if isinstance(longitude_deg, bool):
        raise InvalidInput(err("longitude", "longitude must be a number", "type_error.float"))
    try:
        lon = float(longitude_deg)
    except (TypeError, ValueError):
        raise InvalidInput(err("longitude", "longitude must be a number", "type_error.float")) from None
    except OverflowError:
        raise InvalidInput(err("longitude", "longitude must be finite", "value_error.finite")) from None
    if not math.isfinite(lon):
        raise InvalidInput(err("longitude", "longitude must be finite", "value_error.finite"))

    lon = wrap360(round(wrap360(lon), LONGITUDE_DECIMALS))
    idx = min(max(int(lon // MANSION_SPAN_DEG), 0), NAKSHATRA_COUNT - 1)
    within = lon - idx * MANSION_SPAN_DEG
    frac = min(max(within / MANSION_SPAN_DEG, 0.0), 1.0)
    pada = min(max(int(within // PADA_SPAN_DEG) + 1, 1), 4)
    return NakshatraPosition(index=idx, pada=pada, fraction_elapsed=frac)
