"""
config.py — SafeRoute configuration
====================================
Options are read from environment variables (a local .env file is honoured)
and validated once, so a bad margin ratio fails at startup rather than in the
middle of a selection.

  SAFEROUTE_ALTERNATIVES   how many candidates to request      (default 10)
  SAFEROUTE_MARGIN_RATIO   max distance ratio for "safest"     (default 1.2)
  SAFEROUTE_TRAVEL_MODE    drive | foot | bike                  (default drive)
  SAFEROUTE_TIMEOUT        per-call deadline in seconds         (default 10)
  SAFEROUTE_MAX_WORKERS    scoring thread pool size             (default 8)
  GEOAPIFY_API_KEY         Geoapify key for geocoding + routing
  GEOAPIFY_BASE_URL        default https://api.geoapify.com
"""

import math
import os
from dataclasses import dataclass

from dotenv import load_dotenv

from errors import ConfigError

TRAVEL_MODES = ("drive", "foot", "bike")

DEFAULT_ALTERNATIVES  = 10
DEFAULT_MARGIN_RATIO  = 1.2
DEFAULT_TRAVEL_MODE   = "drive"
DEFAULT_TIMEOUT       = 10.0
DEFAULT_MAX_WORKERS   = 8
DEFAULT_BASE_URL      = "https://api.geoapify.com"


@dataclass(frozen=True)
class RouteConfig:
    alternatives_count: int   = DEFAULT_ALTERNATIVES
    safety_margin_ratio: float = DEFAULT_MARGIN_RATIO
    travel_mode: str          = DEFAULT_TRAVEL_MODE
    request_timeout: float    = DEFAULT_TIMEOUT
    max_workers: int          = DEFAULT_MAX_WORKERS
    api_key: str | None       = None
    base_url: str             = DEFAULT_BASE_URL

    def __post_init__(self):
        validate_margin_ratio(self.safety_margin_ratio)
        if self.travel_mode not in TRAVEL_MODES:
            raise ConfigError(
                f"travel_mode must be one of {', '.join(TRAVEL_MODES)}, got {self.travel_mode!r}."
            )
        if self.alternatives_count < 1:
            raise ConfigError("alternatives_count must be at least 1.")
        if self.request_timeout <= 0:
            raise ConfigError("request_timeout must be positive.")
        if self.max_workers < 1:
            raise ConfigError("max_workers must be at least 1.")

    @property
    def geocode_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/geocode/search"

    @property
    def routing_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/v1/routing"


def validate_margin_ratio(ratio: float) -> float:
    """
    The "safest" filter keeps routes up to ratio × fastest distance.
    Below 1.0 the fastest route would fail its own filter, so reject it.
    """
    if math.isnan(ratio) or ratio < 1.0:
        raise ConfigError(f"safety_margin_ratio must be >= 1.0, got {ratio}.")
    return ratio


def _env_number(env, name: str, default, cast):
    raw = env.get(name)
    if raw is None or not str(raw).strip():
        return default
    try:
        return cast(str(raw).strip())
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}.")


def load_config(env=None) -> RouteConfig:
    """Build a RouteConfig from `env` (defaults to os.environ after loading .env)."""
    if env is None:
        load_dotenv()
        env = os.environ

    return RouteConfig(
        alternatives_count=_env_number(env, "SAFEROUTE_ALTERNATIVES", DEFAULT_ALTERNATIVES, int),
        safety_margin_ratio=_env_number(env, "SAFEROUTE_MARGIN_RATIO", DEFAULT_MARGIN_RATIO, float),
        travel_mode=(env.get("SAFEROUTE_TRAVEL_MODE") or DEFAULT_TRAVEL_MODE).strip().lower(),
        request_timeout=_env_number(env, "SAFEROUTE_TIMEOUT", DEFAULT_TIMEOUT, float),
        max_workers=_env_number(env, "SAFEROUTE_MAX_WORKERS", DEFAULT_MAX_WORKERS, int),
        api_key=env.get("GEOAPIFY_API_KEY") or None,
        base_url=env.get("GEOAPIFY_BASE_URL") or DEFAULT_BASE_URL,
    )
