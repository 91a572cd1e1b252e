"""
Per-request scoring context.

Everything the pipeline needs to know about the request lives in one frozen
ScoringContext, built and validated by build_scoring_context() before any
candidate is touched. Stages never read the wall clock or the environment;
they read the context.
"""

from __future__ import annotations

import dataclasses
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Real
from typing import Mapping, Optional, Union

from implementation.classes.enums import InvalidCandidatePolicy
from implementation.classes.event import Coordinates
from implementation.misc.helpers import ensure_utc
from ranking import settings
from ranking.errors import InputValidationError


@dataclass(frozen=True, slots=True)
class Viewport:
    """Axis-aligned lat/lng bounding box of the visible map."""
    north: float
    south: float
    east: float
    west: float

    def contains(self, point: Coordinates) -> bool:
        """Inclusive box containment; no projection correction."""
        latitude, longitude = point
        return (
            self.south <= latitude <= self.north
            and self.west <= longitude <= self.east
        )

    @property
    def centroid(self) -> Coordinates:
        return Coordinates(
            latitude=(self.north + self.south) / 2.0,
            longitude=(self.east + self.west) / 2.0,
        )


@dataclass(frozen=True, slots=True)
class ScoringWeights:
    """
    Relative importance of each component score.

    Weights need not sum to 1. The aggregator uses them as-is; the relative
    normalizer only depends on ranks and on raw / max_raw ratios, so any
    uniform scale factor cancels out.
    """
    time: float = settings.DEFAULT_WEIGHT_TIME
    distance: float = settings.DEFAULT_WEIGHT_DISTANCE
    popularity: float = settings.DEFAULT_WEIGHT_POPULARITY
    recency: float = settings.DEFAULT_WEIGHT_RECENCY
    confidence: float = settings.DEFAULT_WEIGHT_CONFIDENCE

    @property
    def total(self) -> float:
        return self.time + self.distance + self.popularity + self.recency + self.confidence


@dataclass(frozen=True, slots=True)
class ScoringThresholds:
    max_past_hours: float = settings.DEFAULT_MAX_PAST_HOURS
    max_future_days: float = settings.DEFAULT_MAX_FUTURE_DAYS
    max_distance_km: float = settings.DEFAULT_MAX_DISTANCE_KM
    min_cluster_distance_km: float = settings.DEFAULT_MIN_CLUSTER_DISTANCE_KM
    max_results: int = settings.DEFAULT_MAX_RESULTS


@dataclass(frozen=True, slots=True)
class ScoringContext:
    """
    Immutable request context shared by every stage.

    reference_point is the user position when one was supplied, otherwise
    the viewport centroid. now is always timezone-aware UTC.
    """
    viewport: Viewport
    reference_point: Coordinates
    now: datetime
    weights: ScoringWeights = field(default_factory=ScoringWeights)
    thresholds: ScoringThresholds = field(default_factory=ScoringThresholds)
    invalid_candidate_policy: InvalidCandidatePolicy = InvalidCandidatePolicy.ABORT


# ===========================================================================
# Validation
# ===========================================================================


def _validate_finite(value: object, *, label: str) -> float:
    """Validate one value is a finite real number (bools rejected)."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InputValidationError(f"{label} must be a real number, got {type(value).__name__}")
    number = float(value)
    if not math.isfinite(number):
        raise InputValidationError(f"{label} must be finite, got {number}")
    return number


def _validate_latitude(value: object, *, label: str) -> float:
    latitude = _validate_finite(value, label=label)
    if not -90.0 <= latitude <= 90.0:
        raise InputValidationError(f"{label} must be within [-90, 90], got {latitude}")
    return latitude


def _validate_longitude(value: object, *, label: str) -> float:
    longitude = _validate_finite(value, label=label)
    if not -180.0 <= longitude <= 180.0:
        raise InputValidationError(f"{label} must be within [-180, 180], got {longitude}")
    return longitude


def _coerce_viewport(viewport: Union[Viewport, Mapping[str, float]]) -> Viewport:
    if isinstance(viewport, Viewport):
        raw = dataclasses.asdict(viewport)
    elif isinstance(viewport, Mapping):
        missing = {"north", "south", "east", "west"} - set(viewport)
        if missing:
            raise InputValidationError(f"viewport is missing bounds: {', '.join(sorted(missing))}")
        raw = viewport
    else:
        raise InputValidationError(f"viewport must be a Viewport or mapping, got {type(viewport).__name__}")

    north = _validate_latitude(raw["north"], label="viewport.north")
    south = _validate_latitude(raw["south"], label="viewport.south")
    east = _validate_longitude(raw["east"], label="viewport.east")
    west = _validate_longitude(raw["west"], label="viewport.west")

    if south > north:
        raise InputValidationError(f"viewport.south ({south}) must not exceed viewport.north ({north})")
    # Antimeridian-crossing boxes are not supported by plain box containment.
    if west > east:
        raise InputValidationError(f"viewport.west ({west}) must not exceed viewport.east ({east})")

    return Viewport(north=north, south=south, east=east, west=west)


def _coerce_weights(weights: Union[ScoringWeights, Mapping[str, float], None]) -> ScoringWeights:
    if weights is None:
        resolved = ScoringWeights()
    elif isinstance(weights, ScoringWeights):
        resolved = weights
    elif isinstance(weights, Mapping):
        known = {f.name for f in dataclasses.fields(ScoringWeights)}
        unknown = set(weights) - known
        if unknown:
            raise InputValidationError(f"unknown weight names: {', '.join(sorted(unknown))}")
        resolved = dataclasses.replace(ScoringWeights(), **weights)
    else:
        raise InputValidationError(f"weights must be ScoringWeights or mapping, got {type(weights).__name__}")

    for f in dataclasses.fields(ScoringWeights):
        value = _validate_finite(getattr(resolved, f.name), label=f"weights.{f.name}")
        if value < 0.0:
            raise InputValidationError(f"weights.{f.name} must be >= 0, got {value}")
    if resolved.total <= 0.0:
        raise InputValidationError("weights must not all be zero")
    return resolved


def _coerce_thresholds(
    thresholds: Union[ScoringThresholds, Mapping[str, float], None],
) -> ScoringThresholds:
    if thresholds is None:
        resolved = ScoringThresholds()
    elif isinstance(thresholds, ScoringThresholds):
        resolved = thresholds
    elif isinstance(thresholds, Mapping):
        known = {f.name for f in dataclasses.fields(ScoringThresholds)}
        unknown = set(thresholds) - known
        if unknown:
            raise InputValidationError(f"unknown threshold names: {', '.join(sorted(unknown))}")
        resolved = dataclasses.replace(ScoringThresholds(), **thresholds)
    else:
        raise InputValidationError(
            f"thresholds must be ScoringThresholds or mapping, got {type(thresholds).__name__}"
        )

    for name in ("max_past_hours", "max_future_days", "min_cluster_distance_km"):
        value = _validate_finite(getattr(resolved, name), label=f"thresholds.{name}")
        if value < 0.0:
            raise InputValidationError(f"thresholds.{name} must be >= 0, got {value}")

    max_distance_km = _validate_finite(resolved.max_distance_km, label="thresholds.max_distance_km")
    if max_distance_km <= 0.0:
        raise InputValidationError(f"thresholds.max_distance_km must be > 0, got {max_distance_km}")

    max_results = resolved.max_results
    if isinstance(max_results, bool) or not isinstance(max_results, int):
        raise InputValidationError(
            f"thresholds.max_results must be an int, got {type(max_results).__name__}"
        )
    if max_results < 1:
        raise InputValidationError(f"thresholds.max_results must be >= 1, got {max_results}")
    return resolved


# ===========================================================================
# Public API
# ===========================================================================


def build_scoring_context(
    viewport: Union[Viewport, Mapping[str, float]],
    *,
    user_location: Optional[Coordinates] = None,
    weights: Union[ScoringWeights, Mapping[str, float], None] = None,
    thresholds: Union[ScoringThresholds, Mapping[str, float], None] = None,
    now: Optional[datetime] = None,
    invalid_candidate_policy: InvalidCandidatePolicy = InvalidCandidatePolicy.ABORT,
) -> ScoringContext:
    """
    Validate request inputs and build the immutable ScoringContext.

    Args:
        viewport:       Visible map bounds (Viewport or mapping with
                        north/south/east/west).
        user_location:  Optional (latitude, longitude) of the user. Falls back
                        to the viewport centroid.
        weights:        Full ScoringWeights, or a partial mapping of overrides
                        merged onto the defaults.
        thresholds:     Full ScoringThresholds, or a partial mapping of
                        overrides merged onto the defaults.
        now:            Reference instant. Defaults to the current UTC time;
                        pass it explicitly for reproducible rankings.
        invalid_candidate_policy: ABORT (default) or SKIP.

    Raises:
        InputValidationError: on any malformed input.
    """
    resolved_viewport = _coerce_viewport(viewport)

    if user_location is None:
        reference_point = resolved_viewport.centroid
    else:
        try:
            latitude, longitude = user_location
        except (TypeError, ValueError) as exc:
            raise InputValidationError("user_location must be a (latitude, longitude) pair") from exc
        reference_point = Coordinates(
            latitude=_validate_latitude(latitude, label="user_location.latitude"),
            longitude=_validate_longitude(longitude, label="user_location.longitude"),
        )

    if now is None:
        now = datetime.now(timezone.utc)
    elif not isinstance(now, datetime):
        raise InputValidationError(f"now must be a datetime, got {type(now).__name__}")

    try:
        policy = InvalidCandidatePolicy(invalid_candidate_policy)
    except ValueError as exc:
        raise InputValidationError(
            f"invalid_candidate_policy must be one of {[p.value for p in InvalidCandidatePolicy]}, "
            f"got {invalid_candidate_policy!r}"
        ) from exc

    return ScoringContext(
        viewport=resolved_viewport,
        reference_point=reference_point,
        now=ensure_utc(now),
        weights=_coerce_weights(weights),
        thresholds=_coerce_thresholds(thresholds),
        invalid_candidate_policy=policy,
    )
