"""
Environment-driven defaults for map ranking requests.

Values are read once at import (after load_dotenv) and only seed the
defaults of ScoringThresholds / ScoringWeights. Per-request overrides
always win. A malformed value fails fast at startup.
"""

import os

from dotenv import load_dotenv

load_dotenv()


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from exc


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from exc


# --- Thresholds ---
DEFAULT_MAX_PAST_HOURS: float = _env_float("MAP_RANKING_MAX_PAST_HOURS", 24.0)
DEFAULT_MAX_FUTURE_DAYS: float = _env_float("MAP_RANKING_MAX_FUTURE_DAYS", 30.0)
DEFAULT_MAX_DISTANCE_KM: float = _env_float("MAP_RANKING_MAX_DISTANCE_KM", 50.0)
DEFAULT_MIN_CLUSTER_DISTANCE_KM: float = _env_float("MAP_RANKING_MIN_CLUSTER_DISTANCE_KM", 0.5)
DEFAULT_MAX_RESULTS: int = _env_int("MAP_RANKING_MAX_RESULTS", 50)

# --- Weights ---
# Time proximity dominates; distance and popularity share second place.
DEFAULT_WEIGHT_TIME: float = _env_float("MAP_RANKING_WEIGHT_TIME", 0.35)
DEFAULT_WEIGHT_DISTANCE: float = _env_float("MAP_RANKING_WEIGHT_DISTANCE", 0.20)
DEFAULT_WEIGHT_POPULARITY: float = _env_float("MAP_RANKING_WEIGHT_POPULARITY", 0.20)
DEFAULT_WEIGHT_RECENCY: float = _env_float("MAP_RANKING_WEIGHT_RECENCY", 0.15)
DEFAULT_WEIGHT_CONFIDENCE: float = _env_float("MAP_RANKING_WEIGHT_CONFIDENCE", 0.10)

LOG_LEVEL: str = os.getenv("MAP_RANKING_LOG_LEVEL", "INFO").upper()
