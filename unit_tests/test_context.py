"""Unit tests for ScoringContext construction and input validation in ranking.context."""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone

import pytest

from implementation.classes.enums import InvalidCandidatePolicy
from implementation.classes.event import Coordinates
from ranking.context import (
    ScoringThresholds,
    ScoringWeights,
    Viewport,
    build_scoring_context,
)
from ranking.errors import InputValidationError, RankingError

from conftest import NOW, TEST_VIEWPORT, VIEWPORT_CENTER


def test_defaults_use_viewport_centroid_and_default_weights() -> None:
    context = build_scoring_context(TEST_VIEWPORT, now=NOW)

    assert context.reference_point.latitude == pytest.approx(VIEWPORT_CENTER.latitude)
    assert context.reference_point.longitude == pytest.approx(VIEWPORT_CENTER.longitude)
    assert context.weights == ScoringWeights()
    assert context.thresholds == ScoringThresholds()
    assert context.invalid_candidate_policy is InvalidCandidatePolicy.ABORT


def test_default_weights_favour_time_proximity() -> None:
    weights = ScoringWeights()
    assert weights.time == max(weights.time, weights.distance, weights.popularity, weights.recency, weights.confidence)
    assert weights.total == pytest.approx(1.0)


def test_accepts_viewport_mapping() -> None:
    context = build_scoring_context({"north": 1.0, "south": -1.0, "east": 2, "west": -2}, now=NOW)
    assert context.viewport == Viewport(north=1.0, south=-1.0, east=2.0, west=-2.0)


def test_user_location_becomes_reference_point() -> None:
    context = build_scoring_context(TEST_VIEWPORT, user_location=(37.71, -122.49), now=NOW)
    assert context.reference_point == Coordinates(37.71, -122.49)


def test_naive_now_is_treated_as_utc() -> None:
    context = build_scoring_context(TEST_VIEWPORT, now=datetime(2024, 1, 15, 12, 0))
    assert context.now == NOW
    assert context.now.tzinfo is timezone.utc


def test_now_defaults_to_current_utc_time() -> None:
    before = datetime.now(timezone.utc)
    context = build_scoring_context(TEST_VIEWPORT)
    after = datetime.now(timezone.utc)
    assert before <= context.now <= after


def test_partial_weight_overrides_merge_onto_defaults() -> None:
    context = build_scoring_context(TEST_VIEWPORT, weights={"popularity": 0.9}, now=NOW)
    defaults = ScoringWeights()
    assert context.weights.popularity == 0.9
    assert context.weights.time == defaults.time
    assert context.weights.confidence == defaults.confidence


def test_partial_threshold_overrides_merge_onto_defaults() -> None:
    context = build_scoring_context(TEST_VIEWPORT, thresholds={"max_results": 3}, now=NOW)
    assert context.thresholds.max_results == 3
    assert context.thresholds.max_past_hours == ScoringThresholds().max_past_hours


def test_skip_policy_accepts_string_value() -> None:
    context = build_scoring_context(TEST_VIEWPORT, now=NOW, invalid_candidate_policy="skip")
    assert context.invalid_candidate_policy is InvalidCandidatePolicy.SKIP


def test_context_is_frozen() -> None:
    context = build_scoring_context(TEST_VIEWPORT, now=NOW)
    with pytest.raises(AttributeError):
        context.now = NOW + timedelta(hours=1)


@pytest.mark.parametrize(
    ("viewport", "message"),
    [
        ({"north": 37.8, "south": 37.7, "east": -122.4}, "missing bounds: west"),
        ({"north": 95.0, "south": 37.7, "east": -122.4, "west": -122.5}, "viewport.north must be within"),
        ({"north": 37.8, "south": 37.7, "east": 181.0, "west": -122.5}, "viewport.east must be within"),
        ({"north": math.nan, "south": 37.7, "east": -122.4, "west": -122.5}, "viewport.north must be finite"),
        ({"north": "37.8", "south": 37.7, "east": -122.4, "west": -122.5}, "must be a real number"),
        ({"north": 37.7, "south": 37.8, "east": -122.4, "west": -122.5}, "south .* must not exceed"),
        ({"north": 37.8, "south": 37.7, "east": -122.5, "west": -122.4}, "west .* must not exceed"),
        ("37.8,37.7,-122.4,-122.5", "viewport must be a Viewport or mapping"),
    ],
)
def test_invalid_viewport_raises(viewport, message: str) -> None:
    with pytest.raises(InputValidationError, match=message):
        build_scoring_context(viewport, now=NOW)


@pytest.mark.parametrize(
    ("user_location", "message"),
    [
        ((91.0, 0.0), "user_location.latitude must be within"),
        ((0.0, -200.0), "user_location.longitude must be within"),
        ((math.inf, 0.0), "user_location.latitude must be finite"),
        ((1.0,), "user_location must be a"),
        (42, "user_location must be a"),
    ],
)
def test_invalid_user_location_raises(user_location, message: str) -> None:
    with pytest.raises(InputValidationError, match=message):
        build_scoring_context(TEST_VIEWPORT, user_location=user_location, now=NOW)


@pytest.mark.parametrize(
    ("weights", "message"),
    [
        ({"time": -0.1}, "weights.time must be >= 0"),
        ({"distance": math.nan}, "weights.distance must be finite"),
        ({"popularity": True}, "weights.popularity must be a real number"),
        ({"vibes": 1.0}, "unknown weight names: vibes"),
        (
            {"time": 0.0, "distance": 0.0, "popularity": 0.0, "recency": 0.0, "confidence": 0.0},
            "must not all be zero",
        ),
        ([0.2, 0.2], "weights must be ScoringWeights or mapping"),
    ],
)
def test_invalid_weights_raise(weights, message: str) -> None:
    with pytest.raises(InputValidationError, match=message):
        build_scoring_context(TEST_VIEWPORT, weights=weights, now=NOW)


@pytest.mark.parametrize(
    ("thresholds", "message"),
    [
        ({"max_past_hours": -1}, "max_past_hours must be >= 0"),
        ({"min_cluster_distance_km": math.inf}, "min_cluster_distance_km must be finite"),
        ({"max_distance_km": 0}, "max_distance_km must be > 0"),
        ({"max_results": 0}, "max_results must be >= 1"),
        ({"max_results": 2.5}, "max_results must be an int"),
        ({"radius": 3}, "unknown threshold names: radius"),
    ],
)
def test_invalid_thresholds_raise(thresholds, message: str) -> None:
    with pytest.raises(InputValidationError, match=message):
        build_scoring_context(TEST_VIEWPORT, thresholds=thresholds, now=NOW)


def test_invalid_now_raises() -> None:
    with pytest.raises(InputValidationError, match="now must be a datetime"):
        build_scoring_context(TEST_VIEWPORT, now="2024-01-15T12:00:00Z")


def test_invalid_policy_raises() -> None:
    with pytest.raises(InputValidationError, match="invalid_candidate_policy"):
        build_scoring_context(TEST_VIEWPORT, now=NOW, invalid_candidate_policy="ignore")


def test_input_validation_error_hierarchy() -> None:
    assert issubclass(InputValidationError, RankingError)
    assert issubclass(InputValidationError, ValueError)
