# dashaforecast/main.py
"""
WSGI entry point for the dasha-forecast service.

create_app() wires one Flask app around an explicit ForecastState
(config, result cache, optional Moon-longitude provider). Module import
builds the default `app` that gunicorn serves (see gunicorn.conf.py).
"""
from __future__ import annotations

import hmac
import logging
import os
import traceback
from time import perf_counter
from typing import Any, Final, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, Counter, Gauge, Histogram, generate_latest
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

from dashaforecast.api.routes import EXTENSION_KEY, ForecastState, api
from dashaforecast.core.errors import InvalidInput
from dashaforecast.core.providers import LongitudeProvider
from dashaforecast.utils.cache import TTLCache
from dashaforecast.utils.config import load_config
from dashaforecast.version import VERSION

log = logging.getLogger(__name__)

MET_REQUESTS: Final = Counter("forecast_api_requests_total", "API requests", ["route"])
GAUGE_APP_UP: Final = Gauge("forecast_app_up", "1 if app is running")
REQ_LATENCY: Final = Histogram("forecast_request_seconds", "API request latency", ["route"])

_TRACKED = ("/", "/health", "/healthz", "/api/dasha", "/api/windows", "/api/config")
_T0_KEY = "forecast.t0"


def _configure_logging(app: Flask) -> None:
    # under gunicorn, share its handlers/level so app and access logs interleave
    gunicorn_log = logging.getLogger("gunicorn.error")
    if not gunicorn_log.handlers:
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
        return
    app.logger.handlers = gunicorn_log.handlers
    app.logger.setLevel(gunicorn_log.level)
    logging.getLogger("dashaforecast").setLevel(gunicorn_log.level)


def _register_errors(app: Flask) -> None:
    @app.errorhandler(InvalidInput)
    def _invalid(e: InvalidInput):
        # routes translate their own; this catches anything raised outside them
        log.warning("invalid input at %s: %s", request.path, e.errors())
        return jsonify(ok=False, error="invalid_input", details=e.errors()), 422

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        log.warning("%s %s -> %s %s", request.method, request.path, e.code, e.description)
        return jsonify(ok=False, error="http_error", code=e.code, name=e.name,
                       message=e.description, path=request.path), e.code

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        log.error("unhandled %s on %s %s\n%s", type(e).__name__, request.method, request.path,
                  traceback.format_exc())
        return jsonify(ok=False, error="internal_error", type=type(e).__name__, path=request.path), 500


def _register_health(app: Flask) -> None:
    @app.get("/")
    def index():
        return jsonify(ok=True, service="dasha-forecast", version=VERSION,
                       endpoints=["/api/dasha", "/api/windows", "/api/config"]), 200

    @app.get("/health")
    @app.get("/healthz")
    def health():
        state: ForecastState = app.extensions[EXTENSION_KEY]
        return jsonify(ok=True, status="ok", cache_entries=len(state.cache)), 200


def _metrics_authorized() -> bool:
    user, pw = os.getenv("METRICS_USER", ""), os.getenv("METRICS_PASS", "")
    if not (user and pw):
        return False
    auth = request.authorization
    if auth is None or auth.type != "basic":
        return False
    return hmac.compare_digest(auth.username or "", user) and hmac.compare_digest(auth.password or "", pw)


def _register_metrics(app: Flask) -> None:
    for route in _TRACKED:
        MET_REQUESTS.labels(route=route).inc(0)
    GAUGE_APP_UP.set(1.0)

    @app.before_request
    def _start_timer():
        if request.path in _TRACKED:
            MET_REQUESTS.labels(route=request.path).inc()
            request.environ[_T0_KEY] = perf_counter()

    @app.after_request
    def _observe(resp):
        t0 = request.environ.get(_T0_KEY)
        if t0 is not None:
            REQ_LATENCY.labels(route=request.path).observe(perf_counter() - t0)
        return resp

    @app.get("/metrics")
    def metrics():
        if not _metrics_authorized():
            return Response("Unauthorized", 401, {"WWW-Authenticate": 'Basic realm="metrics"'})
        return Response(generate_latest(REGISTRY), mimetype=CONTENT_TYPE_LATEST)


def create_app(
    config: Optional[Any] = None,
    cache: Optional[TTLCache] = None,
    longitude_provider: Optional[LongitudeProvider] = None,
) -> Flask:
    """
    Build the Flask app.

    config             -- AttrDict from load_config(); default reads FORECAST_CONFIG
    cache              -- result cache; default sized from config.cache
    longitude_provider -- optional ephemeris used when requests omit moon_longitude
    """
    app = Flask(__name__)
    app.json.sort_keys = False
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_port=1)  # type: ignore
    _configure_logging(app)

    cfg = config if config is not None else load_config(os.environ.get("FORECAST_CONFIG", "config/defaults.yaml"))
    if cache is None:
        cache = TTLCache(capacity=int(cfg.cache.capacity), ttl_seconds=float(cfg.cache.ttl_seconds))
    app.extensions[EXTENSION_KEY] = ForecastState(config=cfg, cache=cache, provider=longitude_provider)

    _register_metrics(app)
    _register_health(app)
    _register_errors(app)
    app.register_blueprint(api)

    CORS(
        app,
        resources={r"/api/*": {"origins": os.environ.get("CORS_ALLOW_ORIGIN") or "*"}},
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
        max_age=600,
    )

    log.info("dasha-forecast %s ready (cache ttl=%ss cap=%d, provider=%s)",
             VERSION, cache.ttl, cache.capacity,
             type(longitude_provider).__name__ if longitude_provider else "none")
    return app


app = create_app()

if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
