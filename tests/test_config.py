# tests/test_config.py
from __future__ import annotations

import pytest

from dashaforecast.utils.config import ENV_OVERRIDES, load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_when_no_file(tmp_path) -> None:
    cfg = load_config(str(tmp_path / "missing.yaml"))
    assert cfg.windows.threshold == 0.55
    assert cfg.windows["min_span"] == 5
    assert cfg.windows.max_span == 28
    assert cfg.dasha.horizon_years == 60
    assert cfg.cache.ttl_seconds == 3600


def test_yaml_merges_over_defaults(tmp_path) -> None:
    p = tmp_path / "forecast.yaml"
    p.write_text("windows:\n  threshold: 0.6\ncache:\n  capacity: 16\n", encoding="utf-8")
    cfg = load_config(str(p))
    assert cfg.windows.threshold == 0.6
    assert cfg.windows.min_span == 5  # untouched sibling survives the merge
    assert cfg.cache.capacity == 16
    assert cfg.cache.ttl_seconds == 3600


def test_shipped_defaults_file_matches_builtins() -> None:
    from pathlib import Path
    shipped = Path(__file__).resolve().parent.parent / "config" / "defaults.yaml"
    assert load_config(str(shipped)) == load_config(None)


def test_env_overrides_win(tmp_path, monkeypatch) -> None:
    p = tmp_path / "forecast.yaml"
    p.write_text("windows:\n  min_span: 3\n", encoding="utf-8")
    monkeypatch.setenv("FORECAST_MIN_SPAN", "7")
    monkeypatch.setenv("FORECAST_CACHE_TTL", "0")
    cfg = load_config(str(p))
    assert cfg.windows.min_span == 7
    assert cfg.cache.ttl_seconds == 0.0


def test_blank_env_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("FORECAST_THRESHOLD", "  ")
    assert load_config(None).windows.threshold == 0.55


def test_bad_env_value_names_the_variable(monkeypatch) -> None:
    monkeypatch.setenv("FORECAST_LEVELS", "two")
    with pytest.raises(ValueError, match="FORECAST_LEVELS"):
        load_config(None)


def test_non_mapping_yaml_is_rejected(tmp_path) -> None:
    p = tmp_path / "bad.yaml"
    p.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(str(p))


def test_missing_attribute_raises_attribute_error() -> None:
    with pytest.raises(AttributeError):
        load_config(None).nope
