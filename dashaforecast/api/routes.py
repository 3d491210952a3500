# dashaforecast/api/routes.py
"""
Forecast API routes
- Dasha timeline (MD / AD / PD) from a birth instant + sidereal Moon longitude
- Signal windows from a per-day favorability series (optionally dasha-gated)
- Ops: /api/config

Notes:
- Every failure is reported as {"ok": false, "error": ...}; bad input is 422.
- Results are memoized in the app-owned TTL cache (app.extensions), never in
  the core modules.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

from flask import Blueprint, current_app, jsonify, request
from prometheus_client import Counter
from werkzeug.exceptions import BadRequest

from dashaforecast.api.validators import (
    DashaRequest,
    parse_dasha_payload,
    parse_windows_payload,
)
from dashaforecast.core.constants import YEAR_DAYS
from dashaforecast.core.dasha import Span, active_periods, materialize_levels
from dashaforecast.core.errors import InvalidInput, err
from dashaforecast.core.gating import gate_signals
from dashaforecast.core.nakshatra import NakshatraPosition, locate
from dashaforecast.core.providers import LongitudeProvider
from dashaforecast.core.windows import detect
from dashaforecast.utils.cache import TTLCache, make_cache_key, series_digest
from dashaforecast.version import VERSION

log = logging.getLogger(__name__)
api = Blueprint("api", __name__)

EXTENSION_KEY = "dashaforecast"

MET_OUTCOMES = Counter("forecast_requests_outcome_total", "Forecast requests by outcome", ["route", "outcome"])
MET_CACHE = Counter("forecast_cache_total", "Result cache lookups", ["kind", "outcome"])


@dataclass
class ForecastState:
    config: Any
    cache: TTLCache
    provider: Optional[LongitudeProvider] = None


# ───────────────────────── helpers ─────────────────────────
def _state() -> ForecastState:
    return current_app.extensions[EXTENSION_KEY]


def _json_error(code: str, details: Any = None, http: int = 400):
    out: Dict[str, Any] = {"ok": False, "error": code}
    if details is not None:
        out["details"] = details
    return jsonify(out), http


def _body_json() -> Dict[str, Any]:
    data = request.get_json(force=True, silent=False)
    if not isinstance(data, dict):
        raise BadRequest("JSON body must be an object")
    return data


def _iso(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _resolve_longitude(req: DashaRequest, provider: Optional[LongitudeProvider], loc: List[Any]) -> float:
    if req.longitude is not None:
        return req.longitude
    if provider is None:
        raise InvalidInput(err(loc + ["moon_longitude"], "field required (no ephemeris provider configured)",
                               "value_error.missing"))
    lon = provider.moon_sidereal_longitude(req.birth_utc)
    log.debug("moon longitude from provider: %s -> %.6f", _iso(req.birth_utc), lon)
    return lon


def _timeline(req: DashaRequest, state: ForecastState, loc: List[Any]) -> Tuple[float, NakshatraPosition, Dict[str, List[Span]]]:
    lon = _resolve_longitude(req, state.provider, loc)
    key = make_cache_key("dasha", [_iso(req.birth_utc), lon, req.horizon_years, req.levels])
    hit = state.cache.get(key)
    if hit is not None:
        MET_CACHE.labels(kind="dasha", outcome="hit").inc()
        log.debug("dasha cache hit %s", key)
        return hit
    MET_CACHE.labels(kind="dasha", outcome="miss").inc()

    position = locate(lon)
    horizon = timedelta(days=req.horizon_years * YEAR_DAYS)
    levels = materialize_levels(req.birth_utc, position, horizon, req.levels)
    result = (lon, position, levels)
    state.cache.set(key, result)
    return result


# ───────────────────────── endpoints ─────────────────────────
@api.post("/api/dasha")
def dasha_endpoint():
    state = _state()
    body = _body_json()
    try:
        req = parse_dasha_payload(body, state.config.dasha)
        lon, position, levels = _timeline(req, state, [])
        at = req.at or datetime.now(timezone.utc)
        current = active_periods(at, levels["MD"], depth=req.levels)
    except InvalidInput as e:
        MET_OUTCOMES.labels(route="/api/dasha", outcome="invalid_input").inc()
        log.warning("dasha: invalid input %s", e.errors())
        return _json_error("invalid_input", e.errors(), 422)

    MET_OUTCOMES.labels(route="/api/dasha", outcome="ok").inc()
    return jsonify({
        "ok": True,
        "birth_utc": _iso(req.birth_utc),
        "moon_longitude": lon,
        "position": position.to_dict(),
        "horizon_years": req.horizon_years,
        "levels": {name: [s.to_dict() for s in spans] for name, spans in levels.items()},
        "current": {
            "at": _iso(at),
            "spans": [s.to_dict() for s in current],
            "label": " / ".join(f"{s.ruler.name} {s.level_name}" for s in current),
        },
        "meta": {"year_days": YEAR_DAYS, "version": VERSION},
    }), 200


@api.post("/api/windows")
def windows_endpoint():
    state = _state()
    body = _body_json()
    try:
        req = parse_windows_payload(body, state.config.windows, state.config.dasha)
        if req.dasha is not None and not req.topic:
            raise InvalidInput(err("topic", "topic is required when 'dasha' is given", "value_error.missing"))

        points = req.points
        dasha_parts: Optional[List[Any]] = None
        md: List[Span] = []
        if req.dasha is not None:
            lon, _pos, levels = _timeline(req.dasha, state, ["dasha"])
            md = levels["MD"]
            dasha_parts = [_iso(req.dasha.birth_utc), lon, req.dasha.horizon_years]

        key = make_cache_key("windows", [
            series_digest(points), req.threshold, req.min_span, req.max_span, req.topic, dasha_parts,
        ])
        found = state.cache.get(key)
        if found is not None:
            MET_CACHE.labels(kind="windows", outcome="hit").inc()
        else:
            MET_CACHE.labels(kind="windows", outcome="miss").inc()
            if md:
                points = tuple(gate_signals(points, md, req.topic))
            found = detect(points, req.threshold, req.min_span, req.max_span)
            state.cache.set(key, found)
    except InvalidInput as e:
        MET_OUTCOMES.labels(route="/api/windows", outcome="invalid_input").inc()
        log.warning("windows: invalid input %s", e.errors())
        return _json_error("invalid_input", e.errors(), 422)

    MET_OUTCOMES.labels(route="/api/windows", outcome="ok").inc()
    return jsonify({
        "ok": True,
        "windows": [w.to_dict() for w in found],
        "count": len(found),
        "params": {
            "threshold": req.threshold,
            "min_span": req.min_span,
            "max_span": req.max_span,
            "topic": req.topic,
            "gated": bool(md),
        },
    }), 200


@api.get("/api/config")
def config_endpoint():
    state = _state()
    return jsonify({
        "ok": True,
        "version": VERSION,
        "windows": dict(state.config.windows),
        "dasha": dict(state.config.dasha),
        "cache": {"enabled": state.cache.enabled, "ttl_seconds": state.cache.ttl, "capacity": state.cache.capacity},
        "year_days": YEAR_DAYS,
        "ephemeris_provider": state.provider is not None,
    }), 200
