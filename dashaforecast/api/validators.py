# dashaforecast/api/validators.py
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo

from dashaforecast.core.errors import InvalidInput, err
from dashaforecast.core.windows import SignalPoint

__all__ = [
    "DashaRequest",
    "WindowsRequest",
    "parse_dasha_payload",
    "parse_windows_payload",
    "MAX_HORIZON_YEARS",
    "MAX_POINTS",
]

MAX_HORIZON_YEARS = 240.0
MAX_POINTS = 3660  # ~10 years of daily samples
MAX_FACTS = 32


# ───────────────────────── records ─────────────────────────

@dataclass(frozen=True)
class DashaRequest:
    birth_utc: datetime
    longitude: Optional[float]   # None -> ask the injected provider
    horizon_years: float
    levels: int
    at: Optional[datetime] = None

@dataclass(frozen=True)
class WindowsRequest:
    points: Tuple[SignalPoint, ...]
    threshold: float
    min_span: int
    max_span: int
    topic: Optional[str] = None
    dasha: Optional[DashaRequest] = None


# ───────────────────────── atomic parsers ─────────────────────────

_INT_RE = re.compile(r"-?\d+")
_TIME_RE = re.compile(r"^\s*(?P<h>\d{1,2}):(?P<m>\d{2})(?::(?P<s>\d{2}))?\s*$")

def _as_finite(v: Any, loc: List[Any]) -> float:
    if isinstance(v, bool) or not isinstance(v, (int, float, str)):
        raise InvalidInput(err(loc, "must be a number", "type_error.float"))
    try:
        x = float(v)
    except OverflowError:
        raise InvalidInput(err(loc, "must be finite", "value_error.finite")) from None
    except ValueError:
        raise InvalidInput(err(loc, "must be a number", "type_error.float")) from None
    if not math.isfinite(x):
        raise InvalidInput(err(loc, "must be finite", "value_error.finite"))
    return x

def _as_int(v: Any, loc: List[Any]) -> int:
    if isinstance(v, bool):
        raise InvalidInput(err(loc, "must be an integer", "type_error.integer"))
    if isinstance(v, float) and v.is_integer():
        return int(v)
    if isinstance(v, int):
        return v
    if isinstance(v, str) and _INT_RE.fullmatch(v.strip()):
        try:
            return int(v.strip())
        except ValueError:  # beyond the int string-length limit
            raise InvalidInput(err(loc, "integer is too long", "value_error.integer")) from None
    raise InvalidInput(err(loc, "must be an integer", "type_error.integer"))

def _parse_date(s: Any, loc: List[Any]) -> date:
    if not isinstance(s, str):
        raise InvalidInput(err(loc, "must be 'YYYY-MM-DD'", "value_error.date"))
    try:
        return date.fromisoformat(s.strip())
    except ValueError:
        raise InvalidInput(err(loc, "must be 'YYYY-MM-DD'", "value_error.date")) from None

def _parse_time(s: Any, loc: List[Any]) -> time:
    m = _TIME_RE.match(s) if isinstance(s, str) else None
    if not m:
        raise InvalidInput(err(loc, "must be 'HH:MM' or 'HH:MM:SS'", "value_error.time"))
    hh, mm, ss = int(m.group("h")), int(m.group("m")), int(m.group("s") or 0)
    if not (0 <= hh <= 23 and 0 <= mm <= 59 and 0 <= ss <= 59):
        raise InvalidInput(err(loc, "time fields out of range", "value_error.time"))
    return time(hh, mm, ss)

def _parse_tz(s: Any, loc: List[Any]) -> ZoneInfo:
    if not isinstance(s, str) or not s.strip():
        raise InvalidInput(err(loc, "must be a valid IANA zone like 'Asia/Kolkata'", "value_error.timezone"))
    try:
        return ZoneInfo(s.strip())
    except Exception:
        raise InvalidInput(err(loc, "must be a valid IANA zone like 'Asia/Kolkata'", "value_error.timezone")) from None

def _parse_instant(s: Any, loc: List[Any]) -> datetime:
    if not isinstance(s, str) or not s.strip():
        raise InvalidInput(err(loc, "must be an ISO-8601 datetime with offset", "value_error.datetime"))
    raw = s.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        raise InvalidInput(err(loc, "must be an ISO-8601 datetime with offset", "value_error.datetime")) from None
    if dt.tzinfo is None:
        raise InvalidInput(err(loc, "must include a UTC offset", "value_error.naive_datetime"))
    return _to_utc(dt, loc)

def _to_utc(dt: datetime, loc: List[Any]) -> datetime:
    try:
        return dt.astimezone(timezone.utc)
    except OverflowError:
        raise InvalidInput(err(loc, "instant is outside the supported date range", "value_error.datetime")) from None

def _parse_birth(body: Dict[str, Any], loc: List[Any]) -> datetime:
    if "birth_utc" in body:
        return _parse_instant(body["birth_utc"], loc + ["birth_utc"])
    birth = body.get("birth")
    if not isinstance(birth, dict):
        raise InvalidInput(err(loc + ["birth"], "provide 'birth' {date, time, tz} or 'birth_utc'", "value_error.missing"))
    for key in ("date", "time", "tz"):
        if key not in birth:
            raise InvalidInput(err(loc + ["birth", key], "field required", "value_error.missing"))
    d = _parse_date(birth["date"], loc + ["birth", "date"])
    t = _parse_time(birth["time"], loc + ["birth", "time"])
    tz = _parse_tz(birth["tz"], loc + ["birth", "tz"])
    return _to_utc(datetime.combine(d, t).replace(tzinfo=tz), loc + ["birth"])


# ───────────────────────── payloads ─────────────────────────

def parse_dasha_payload(body: Any, defaults: Dict[str, Any], loc: Optional[List[Any]] = None) -> DashaRequest:
    """
    Normalize /api/dasha inputs.

    - birth: {date, time, tz} (local civil time) or birth_utc (ISO with offset)
    - moon_longitude: sidereal degrees; optional only when the host has a provider
    - horizon_years: (0, 240], default from config
    - levels: 1..3, default from config
    - at: optional ISO instant used for the 'current' periods (default: now)
    """
    loc = loc or []
    if not isinstance(body, dict):
        raise InvalidInput(err(loc, "payload must be an object", "type_error.dict"))

    birth_utc = _parse_birth(body, loc)

    lon: Optional[float] = None
    if body.get("moon_longitude") is not None:
        lon = _as_finite(body["moon_longitude"], loc + ["moon_longitude"])

    horizon = _as_finite(body.get("horizon_years", defaults["horizon_years"]), loc + ["horizon_years"])
    if not 0.0 < horizon <= MAX_HORIZON_YEARS:
        raise InvalidInput(err(loc + ["horizon_years"], f"must be in (0, {MAX_HORIZON_YEARS:g}]", "value_error.range"))

    levels = _as_int(body.get("levels", defaults["levels"]), loc + ["levels"])
    if not 1 <= levels <= 3:
        raise InvalidInput(err(loc + ["levels"], "must be 1, 2 or 3", "value_error.range"))

    at = _parse_instant(body["at"], loc + ["at"]) if body.get("at") is not None else None

    return DashaRequest(birth_utc=birth_utc, longitude=lon, horizon_years=horizon, levels=levels, at=at)


def _parse_point(raw: Any, i: int) -> SignalPoint:
    loc: List[Any] = ["points", i]
    if not isinstance(raw, dict):
        raise InvalidInput(err(loc, "must be an object", "type_error.dict"))
    if "date" not in raw or "signal" not in raw:
        raise InvalidInput(err(loc, "each point needs 'date' and 'signal'", "value_error.missing"))
    d = _parse_date(raw["date"], loc + ["date"])
    sig = _as_finite(raw["signal"], loc + ["signal"])
    facts_raw = raw.get("facts") or []
    if not isinstance(facts_raw, list) or not all(isinstance(f, str) for f in facts_raw):
        raise InvalidInput(err(loc + ["facts"], "must be an array of strings", "type_error.list"))
    if len(facts_raw) > MAX_FACTS:
        raise InvalidInput(err(loc + ["facts"], f"at most {MAX_FACTS} facts per point", "value_error.too_long"))
    return SignalPoint(date=d, signal=sig, facts=tuple(facts_raw))


def parse_windows_payload(body: Any, defaults: Dict[str, Any], dasha_defaults: Dict[str, Any]) -> WindowsRequest:
    """
    Normalize /api/windows inputs. Span/threshold range checks are left to the
    detector so the API and library report identical errors.
    """
    if not isinstance(body, dict):
        raise InvalidInput(err([], "payload must be an object", "type_error.dict"))

    pts_raw = body.get("points")
    if not isinstance(pts_raw, list):
        raise InvalidInput(err("points", "must be an array of {date, signal, facts?}", "type_error.list"))
    if len(pts_raw) > MAX_POINTS:
        raise InvalidInput(err("points", f"at most {MAX_POINTS} points", "value_error.too_long"))
    points = tuple(_parse_point(p, i) for i, p in enumerate(pts_raw))

    threshold = _as_finite(body.get("threshold", defaults["threshold"]), ["threshold"])
    min_span = _as_int(body.get("min_span", defaults["min_span"]), ["min_span"])
    max_span = _as_int(body.get("max_span", defaults["max_span"]), ["max_span"])

    topic = body.get("topic")
    if topic is not None and (not isinstance(topic, str) or not topic.strip()):
        raise InvalidInput(err("topic", "must be a non-empty string", "value_error"))

    dasha = None
    if body.get("dasha") is not None:
        dasha = parse_dasha_payload(body["dasha"], dasha_defaults, ["dasha"])

    return WindowsRequest(
        points=points,
        threshold=threshold,
        min_span=min_span,
        max_span=max_span,
        topic=topic.strip().lower() if topic else None,
        dasha=dasha,
    )
