# dashaforecast/core/providers.py
from __future__ import annotations
from datetime import datetime
from typing import Protocol, runtime_checkable

__all__ = ["LongitudeProvider"]


@runtime_checkable
class LongitudeProvider(Protocol):
    """Ephemeris seam: sidereal Moon longitude (degrees) at a UTC instant."""

    def moon_sidereal_longitude(self, instant: datetime) -> float: ...
