# dashaforecast/utils/config.py
import copy
import os
import yaml

DEFAULTS = {
    "windows": {"threshold": 0.55, "min_span": 5, "max_span": 28},
    "dasha": {"horizon_years": 60, "levels": 2},
    "cache": {"ttl_seconds": 3600, "capacity": 1024},
}

# env var -> (section, key, cast)
ENV_OVERRIDES = {
    "FORECAST_THRESHOLD": ("windows", "threshold", float),
    "FORECAST_MIN_SPAN": ("windows", "min_span", int),
    "FORECAST_MAX_SPAN": ("windows", "max_span", int),
    "FORECAST_HORIZON_YEARS": ("dasha", "horizon_years", float),
    "FORECAST_LEVELS": ("dasha", "levels", int),
    "FORECAST_CACHE_TTL": ("cache", "ttl_seconds", float),
    "FORECAST_CACHE_CAPACITY": ("cache", "capacity", int),
}

class AttrDict(dict):
    """Dict that also supports attribute access: cfg.windows and cfg['windows'] both work."""
    def __getattr__(self, item):
        try:
            return self[item]
        except KeyError as e:
            raise AttributeError(item) from e
    def __setattr__(self, key, value):
        self[key] = value

def _to_attr(obj):
    if isinstance(obj, dict):
        return AttrDict({k: _to_attr(v) for k, v in obj.items()})
    if isinstance(obj, list):
        return [_to_attr(x) for x in obj]
    return obj

def _merge(base: dict, extra: dict) -> dict:
    out = dict(base)
    for k, v in (extra or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out

def load_config(path: str | None = None):
    """
    Load YAML config from `path` (missing file -> built-in defaults) and apply
    FORECAST_* env overrides on top. Returns an AttrDict.
    """
    data = copy.deepcopy(DEFAULTS)
    if path and os.path.exists(path):
        with open(path, "r", encoding="utf-8") as f:
            loaded = yaml.safe_load(f) or {}
        if not isinstance(loaded, dict):
            raise ValueError(f"config file {path} must contain a mapping")
        data = _merge(data, loaded)

    for env, (section, key, cast) in ENV_OVERRIDES.items():
        raw = os.getenv(env)
        if raw is None or raw.strip() == "":
            continue
        try:
            data[section][key] = cast(raw)
        except ValueError as e:
            raise ValueError(f"{env}={raw!r} is not a valid {cast.__name__}") from e

    return _to_attr(data)
