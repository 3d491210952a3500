# tests/conftest.py
"""
Shared fixtures for the dasha-forecast suite.

Hypothesis runs the `dev` profile locally and `ci` when CI/GITHUB_ACTIONS
is set (or whatever HYPOTHESIS_PROFILE names). The regression chart below
is the one every timeline test anchors on.
"""
from __future__ import annotations

import os
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest
from hypothesis import HealthCheck, settings

_SLOW_OK = [HealthCheck.too_slow]
settings.register_profile("dev", deadline=None, max_examples=60, suppress_health_check=_SLOW_OK)
settings.register_profile("ci", deadline=None, max_examples=250, suppress_health_check=_SLOW_OK,
                          print_blob=True)

HYPOTHESIS_PROFILE = "ci" if (os.getenv("CI") or os.getenv("GITHUB_ACTIONS")) \
    else os.getenv("HYPOTHESIS_PROFILE", "dev")
settings.load_profile(HYPOTHESIS_PROFILE)


def pytest_report_header(config: pytest.Config) -> str:
    return f"hypothesis profile={HYPOTHESIS_PROFILE}"


@pytest.fixture(scope="session", autouse=True)
def utc_process_tz():
    # every zone the code touches is passed explicitly; local TZ must not leak in
    saved = os.environ.get("TZ")
    os.environ["TZ"] = "UTC"
    yield
    if saved is None:
        os.environ.pop("TZ", None)
    else:
        os.environ["TZ"] = saved


# ───────────────────────── app ─────────────────────────

@pytest.fixture()
def app_config():
    from dashaforecast.utils.config import load_config
    return load_config(None)


@pytest.fixture()
def make_app(app_config):
    """Factory: fresh app per call with its own small cache."""
    from dashaforecast.main import create_app
    from dashaforecast.utils.cache import TTLCache

    def _make(**kwargs):
        kwargs.setdefault("config", app_config)
        kwargs.setdefault("cache", TTLCache(capacity=64, ttl_seconds=300))
        app = create_app(**kwargs)
        app.testing = True
        return app

    return _make


@pytest.fixture()
def client(make_app):
    return make_app().test_client()


# ───────────────────────── regression chart ─────────────────────────
# 1984-01-21 23:35 Asia/Kolkata, sidereal Moon 141.645° (Purva Phalguni, pada 3)

@pytest.fixture(scope="session")
def regression_longitude() -> float:
    return 141.64499767356253


@pytest.fixture(scope="session")
def regression_birth() -> datetime:
    return datetime(1984, 1, 21, 23, 35, tzinfo=ZoneInfo("Asia/Kolkata"))
