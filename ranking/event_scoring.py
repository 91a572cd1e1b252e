"""
Event Component Scoring Module
==============================

Turns each pre-filtered candidate into five independent [0, 1] component
scores and combines them into a single raw score.

Pipeline stages:
    2. Component scores per candidate (time, distance, popularity, recency,
       confidence)
    3. Weighted sum → raw score per candidate

Relative normalization and ranking (stages 4–5) live in relative_scoring.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from implementation.classes.event import Coordinates, EventCandidate
from implementation.misc.helpers import haversine_km, hours_between, interpolate
from implementation.misc.recurrence import effective_occurrence
from ranking.context import ScoringContext, ScoringWeights


# ===========================================================================
# Tunable constants
# ===========================================================================
# Defaults match the scoring curves shipped with the mobile map. Changing
# any of these shifts rankings for every request.

# --- Time proximity (hours until occurrence; negative = already started) ---
TIME_PAST_WINDOW_HOURS: float = 24.0    # score falls 1.0 → 0.0 over this many past hours
TIME_URGENT_HOURS: float = 2.0          # [0, 2h] → full score
TIME_TODAY_HOURS: float = 24.0          # (2h, 24h] → TIME_SCORE_TODAY
TIME_DECAY_END_HOURS: float = 72.0      # (24h, 72h] → linear TODAY → DECAY_FLOOR
TIME_SCORE_URGENT: float = 1.0
TIME_SCORE_TODAY: float = 0.8
TIME_SCORE_DECAY_FLOOR: float = 0.3
TIME_SCORE_DISTANT: float = 0.1

# --- Distance proximity (km from the reference point) ---
DISTANCE_VERY_CLOSE_KM: float = 1.0
DISTANCE_CLOSE_KM: float = 5.0
DISTANCE_MODERATE_KM: float = 15.0
DISTANCE_SCORE_VERY_CLOSE: float = 1.0
DISTANCE_SCORE_CLOSE: float = 0.8
DISTANCE_SCORE_MODERATE: float = 0.6
DISTANCE_SCORE_FAR_FLOOR: float = 0.2   # reached at thresholds.max_distance_km
DISTANCE_SCORE_BEYOND: float = 0.1

# --- Popularity: saturation counts and blend weights ---
# RSVPs signal more intent than saves, saves more than scans.
SCAN_SATURATION: float = 10.0
SAVE_SATURATION: float = 5.0
RSVP_SATURATION: float = 3.0
SCAN_BLEND_WEIGHT: float = 1.0
SAVE_BLEND_WEIGHT: float = 3.0
RSVP_BLEND_WEIGHT: float = 5.0

# --- Recency: (max age in hours, score) bands, checked in order ---
RECENCY_BANDS: tuple[tuple[float, float], ...] = (
    (1.0, 1.0),      # brand new
    (6.0, 0.9),
    (24.0, 0.7),
    (72.0, 0.5),
    (168.0, 0.3),    # one week
)
RECENCY_SCORE_STALE: float = 0.1

# --- Confidence ---
DEFAULT_CONFIDENCE_SCORE: float = 0.5


# ===========================================================================
# Intermediate data structures
# ===========================================================================


@dataclass(frozen=True, slots=True)
class ComponentScores:
    """Five independent signals for one candidate, each in [0, 1]."""
    time_score: float
    distance_score: float
    popularity_score: float
    recency_score: float
    confidence_score: float


@dataclass(slots=True)
class ScoredEvent:
    """
    Pipeline-owned wrapper around one candidate.

    input_index is the candidate's position in the pre-filter output and is
    the tie-break key whenever scores are equal. relative_score and
    percentile_rank are filled in by normalize_relative_scores().
    """
    candidate: EventCandidate
    components: ComponentScores
    raw_score: float
    input_index: int
    percentile_rank: float = 0.0
    relative_score: float = 0.0


# ===========================================================================
# Stage 2: Component scores
# ===========================================================================


def time_proximity_score(hours_until: Optional[float]) -> float:
    """
    Score how soon an event happens.

    Piecewise over hours-until-occurrence h:
        h < -24          → 0.0   (should already be pre-filtered)
        -24 ≤ h < 0      → linear 0.0 → 1.0 as h approaches 0
        0 ≤ h ≤ 2        → 1.0
        2 < h ≤ 24       → 0.8
        24 < h ≤ 72      → linear 0.8 → 0.3
        h > 72           → 0.1

    None means a recurring event with no remaining occurrence → 0.0.
    """
    if hours_until is None:
        return 0.0
    h = hours_until
    if h < -TIME_PAST_WINDOW_HOURS:
        return 0.0
    if h < 0.0:
        return interpolate(h, -TIME_PAST_WINDOW_HOURS, 0.0, 0.0, TIME_SCORE_URGENT)
    if h <= TIME_URGENT_HOURS:
        return TIME_SCORE_URGENT
    if h <= TIME_TODAY_HOURS:
        return TIME_SCORE_TODAY
    if h <= TIME_DECAY_END_HOURS:
        return interpolate(h, TIME_TODAY_HOURS, TIME_DECAY_END_HOURS, TIME_SCORE_TODAY, TIME_SCORE_DECAY_FLOOR)
    return TIME_SCORE_DISTANT


def distance_proximity_score(distance_km: float, max_distance_km: float = 50.0) -> float:
    """
    Score closeness to the reference point.

        d ≤ 1                       → 1.0
        1 < d ≤ 5                   → 0.8
        5 < d ≤ 15                  → 0.6
        15 < d ≤ max_distance_km    → linear 0.6 → 0.2
        d > max_distance_km         → 0.1

    Never increases with distance, whatever max_distance_km is.
    """
    d = distance_km
    if d <= DISTANCE_VERY_CLOSE_KM:
        return DISTANCE_SCORE_VERY_CLOSE
    if d <= DISTANCE_CLOSE_KM:
        return DISTANCE_SCORE_CLOSE
    if d <= DISTANCE_MODERATE_KM:
        return DISTANCE_SCORE_MODERATE
    if d <= max_distance_km:
        return interpolate(d, DISTANCE_MODERATE_KM, max_distance_km, DISTANCE_SCORE_MODERATE, DISTANCE_SCORE_FAR_FLOOR)
    return DISTANCE_SCORE_BEYOND


def popularity_score(scan_count: int, save_count: int, rsvp_count: int) -> float:
    """Saturating engagement score: (scan·1 + save·3 + rsvp·5) / 9 over capped ratios."""
    scan_norm = min(scan_count / SCAN_SATURATION, 1.0)
    save_norm = min(save_count / SAVE_SATURATION, 1.0)
    rsvp_norm = min(rsvp_count / RSVP_SATURATION, 1.0)
    total_weight = SCAN_BLEND_WEIGHT + SAVE_BLEND_WEIGHT + RSVP_BLEND_WEIGHT
    return (
        scan_norm * SCAN_BLEND_WEIGHT
        + save_norm * SAVE_BLEND_WEIGHT
        + rsvp_norm * RSVP_BLEND_WEIGHT
    ) / total_weight


def recency_score(age_hours: float) -> float:
    """Newer catalog entries score higher; anything older than a week gets 0.1."""
    for max_age, score in RECENCY_BANDS:
        if age_hours <= max_age:
            return score
    return RECENCY_SCORE_STALE


def confidence_score(confidence: Optional[float]) -> float:
    if confidence is None:
        return DEFAULT_CONFIDENCE_SCORE
    return float(confidence)


def score_components(candidate: EventCandidate, context: ScoringContext) -> ComponentScores:
    """Compute all five component scores for one candidate."""
    now = context.now

    occurrence = effective_occurrence(candidate, now)
    hours_until = hours_between(now, occurrence) if occurrence is not None else None

    distance_km = haversine_km(context.reference_point, Coordinates(*candidate.coordinates))
    engagement = candidate.engagement

    return ComponentScores(
        time_score=time_proximity_score(hours_until),
        distance_score=distance_proximity_score(distance_km, context.thresholds.max_distance_km),
        popularity_score=popularity_score(
            engagement.scan_count, engagement.save_count, engagement.rsvp_count,
        ),
        recency_score=recency_score(hours_between(candidate.created_at, now)),
        confidence_score=confidence_score(candidate.confidence),
    )


# ===========================================================================
# Stage 3: Weighted aggregation
# ===========================================================================


def aggregate_raw_score(components: ComponentScores, weights: ScoringWeights) -> float:
    """
    Weighted sum of the component scores.

    Not divided by weights.total. Stage 4 only reads ranks and raw / max_raw
    ratios, so a uniform scale factor on the weights cancels out.
    """
    return (
        components.time_score * weights.time
        + components.distance_score * weights.distance
        + components.popularity_score * weights.popularity
        + components.recency_score * weights.recency
        + components.confidence_score * weights.confidence
    )


def score_candidates(
    candidates: Iterable[EventCandidate],
    context: ScoringContext,
) -> list[ScoredEvent]:
    """Run stages 2 and 3 over every candidate, preserving input order."""
    scored: list[ScoredEvent] = []
    for index, candidate in enumerate(candidates):
        components = score_components(candidate, context)
        scored.append(ScoredEvent(
            candidate=candidate,
            components=components,
            raw_score=aggregate_raw_score(components, context.weights),
            input_index=index,
        ))
    return scored
