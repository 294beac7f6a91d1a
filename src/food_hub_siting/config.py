# src/food_hub_siting/config.py
"""
Defaults plus run settings.

Settings resolve in this order (highest priority wins):
1) CLI flags (applied by the caller through ``overrides``)
2) Environment variables (FOOD_HUB_*)
3) config.yaml at the repo root, or the file named by FOOD_HUB_CONFIG
4) The defaults below
"""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError
from .schema import ATLAS_METRICS, HEALTH_MEASURES

# ---------- Clustering (KMeans over lat/lon) ----------
KMEANS_K_DEFAULT = 5          # proposed hub count
KMEANS_SEED_DEFAULT = 42
KMEANS_MAX_ITER = 300
KMEANS_N_INIT = 10

# ---------- Thresholds ----------
ACCESS_QUANTILE_DEFAULT = 0.75    # "high access" = at or above the in-state 75th pct
NEED_QUANTILE_DEFAULT = 0.75
NEED_COLUMN_DEFAULT = "PCT_LACCESS_LOWI15"  # low-income, low-access population share
PERCENTILE_MIN_COUNT = 2

# Donor-access filter: "nested" = grocery | (convenience & farmers market)
#                      "flat"   = (grocery | convenience) & farmers market
PRECEDENCE_CHOICES = ("nested", "flat")
PRECEDENCE_DEFAULT = "nested"

# ---------- Siting scope / engagement ----------
TARGET_STATE_DEFAULT = "New York"
ENGAGEMENT_RATE_DEFAULT = 0.05    # share of food-insecure residents expected to engage

# ---------- Join ----------
DUPLICATE_POLICIES = ("reject", "fanout")

# ---------- Export ----------
EXPORT_FORMATS = ("csv", "json")

ENV_PREFIX = "FOOD_HUB_"
REPO_ROOT = Path(__file__).resolve().parents[2]


@dataclass(frozen=True)
class Settings:
    places_path: Path = REPO_ROOT / "data" / "sample" / "places_tracts.csv"
    atlas_path: Path = REPO_ROOT / "data" / "sample" / "atlas_county_long.csv"
    output_dir: Path = REPO_ROOT / "outputs"
    state: str = TARGET_STATE_DEFAULT
    k: int = KMEANS_K_DEFAULT
    seed: int = KMEANS_SEED_DEFAULT
    max_iter: int = KMEANS_MAX_ITER
    access_quantile: float = ACCESS_QUANTILE_DEFAULT
    need_quantile: float = NEED_QUANTILE_DEFAULT
    need_column: str = NEED_COLUMN_DEFAULT
    precedence: str = PRECEDENCE_DEFAULT
    engagement_rate: float = ENGAGEMENT_RATE_DEFAULT
    duplicates: str = "reject"
    export_format: str = "csv"


_PATH_FIELDS = {"places_path", "atlas_path", "output_dir"}
_INT_FIELDS = {"k", "seed", "max_iter"}
_FLOAT_FIELDS = {"access_quantile", "need_quantile", "engagement_rate"}


def cfg_get(cfg: Dict[str, Any], dotted_key: str, default: Any = None) -> Any:
    cur: Any = cfg
    for part in dotted_key.split("."):
        if not isinstance(cur, dict) or part not in cur:
            return default
        cur = cur[part]
    return cur


def resolve_repo_path(repo_root: Path, p: Any) -> Path:
    """Resolve a repo-relative path from config/env into an absolute Path."""
    path = Path(str(p).strip())
    if not path.is_absolute():
        path = repo_root / path
    return path


def load_config_file(repo_root: Path = REPO_ROOT, path: Optional[Path] = None) -> Dict[str, Any]:
    """Load config.yaml (or FOOD_HUB_CONFIG / explicit path). Missing default file -> {}."""
    explicit = path is not None or os.environ.get(ENV_PREFIX + "CONFIG", "").strip()
    if path is None:
        env_path = os.environ.get(ENV_PREFIX + "CONFIG", "").strip()
        path = resolve_repo_path(repo_root, env_path) if env_path else repo_root / "config.yaml"
    path = Path(path)
    if not path.exists():
        if explicit:
            raise FileNotFoundError(f"Config file not found: {path}")
        return {}
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def env_or_cfg(env_key: str, cfg: Dict[str, Any], cfg_key: str, default: Any = None) -> Any:
    """Return env var if set, else cfg value if present, else default."""
    if str(os.environ.get(env_key, "")).strip() != "":
        return os.environ.get(env_key)
    v = cfg_get(cfg, cfg_key, None)
    return default if v is None else v


def _as_int(value: Any) -> int:
    """Whole numbers only: 3, 3.0 and "3" pass, 2.5 does not."""
    if isinstance(value, bool):
        raise TypeError("boolean is not a count")
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"{value!r} is not a whole number")
    return int(number)


def _coerce(name: str, value: Any, repo_root: Path) -> Any:
    try:
        if name in _PATH_FIELDS:
            return resolve_repo_path(repo_root, value)
        if name in _INT_FIELDS:
            return _as_int(value)
        if name in _FLOAT_FIELDS:
            return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from exc
    return str(value).strip()


def load_settings(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
    repo_root: Path = REPO_ROOT,
) -> Settings:
    """Build Settings from defaults, config file, env vars and explicit overrides (in that order)."""
    cfg = load_config_file(repo_root, config_path)
    defaults = Settings()
    values: Dict[str, Any] = {}
    for f in fields(Settings):
        raw = env_or_cfg(ENV_PREFIX + f.name.upper(), cfg, f.name, None)
        if raw is not None:
            values[f.name] = _coerce(f.name, raw, repo_root)
    for name, raw in (overrides or {}).items():
        if raw is None:
            continue
        if name not in {f.name for f in fields(Settings)}:
            raise ConfigError(f"Unknown setting: {name}")
        values[name] = _coerce(name, raw, repo_root)
    return replace(defaults, **values)


def validate_settings(settings: Settings) -> Settings:
    """Fail fast on bad paths or out-of-range parameters."""
    for label, p in (("places_path", settings.places_path), ("atlas_path", settings.atlas_path)):
        if not Path(p).is_file():
            raise FileNotFoundError(f"{label} does not exist: {p}")
    if settings.k <= 0:
        raise ConfigError(f"k must be positive, got {settings.k}")
    if settings.max_iter <= 0:
        raise ConfigError(f"max_iter must be positive, got {settings.max_iter}")
    for label, q in (("access_quantile", settings.access_quantile),
                     ("need_quantile", settings.need_quantile)):
        if not 0.0 <= q <= 1.0:
            raise ConfigError(f"{label} must be in [0, 1], got {q}")
    if not 0.0 <= settings.engagement_rate <= 1.0:
        raise ConfigError(f"engagement_rate must be in [0, 1], got {settings.engagement_rate}")
    if settings.precedence not in PRECEDENCE_CHOICES:
        raise ConfigError(f"precedence must be one of {PRECEDENCE_CHOICES}, got {settings.precedence!r}")
    if settings.duplicates not in DUPLICATE_POLICIES:
        raise ConfigError(f"duplicates must be one of {DUPLICATE_POLICIES}, got {settings.duplicates!r}")
    if settings.export_format not in EXPORT_FORMATS:
        raise ConfigError(f"export_format must be one of {EXPORT_FORMATS}, got {settings.export_format!r}")
    if settings.need_column not in ATLAS_METRICS + HEALTH_MEASURES:
        raise ConfigError(f"need_column must be an atlas metric or health measure, got {settings.need_column!r}")
    if not settings.state:
        raise ConfigError("state must be a non-empty state name")
    return settings
