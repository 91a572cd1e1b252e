"""
Greedy spatial declustering of ranked events.

Walks the ranked list once, best first, and keeps an event only if it is at
least `min_distance_km` away from every event already kept. Dropped events
are never reconsidered. A high-scoring event can therefore lose its place to
spatial diversity; that trade-off is intended.
"""

from __future__ import annotations

import logging
import math
from typing import Sequence

from implementation.classes.event import Coordinates
from implementation.misc.helpers import KM_PER_DEGREE_LATITUDE, haversine_km
from ranking.event_scoring import ScoredEvent

logger = logging.getLogger(__name__)


def _min_distance_at_least(
    point: Coordinates,
    kept_points: Sequence[Coordinates],
    min_distance_km: float,
) -> bool:
    """
    True if `point` is >= min_distance_km from every point in kept_points.

    The latitude gap alone is a lower bound on great-circle distance, so
    pairs that are clearly far apart north–south skip the Haversine call.
    """
    for other in kept_points:
        if abs(point[0] - other[0]) * KM_PER_DEGREE_LATITUDE >= min_distance_km:
            continue
        if haversine_km(point, other) < min_distance_km:
            return False
    return True


def decluster_events(
    ranked: Sequence[ScoredEvent],
    min_distance_km: float,
) -> tuple[list[ScoredEvent], int]:
    """
    Greedy single-pass spatial thinning in rank order.

    Args:
        ranked:          Scored events, best first (output of stage 5).
        min_distance_km: Minimum pairwise great-circle distance between kept
                         events. 0 keeps everything.

    Returns:
        (kept, dropped_count). kept preserves rank order. The first event is
        always kept, so a non-empty input never yields an empty output.
    """
    if isinstance(min_distance_km, bool) or not math.isfinite(min_distance_km) or min_distance_km < 0.0:
        raise ValueError(f"min_distance_km must be finite and >= 0, got {min_distance_km}")

    kept: list[ScoredEvent] = []
    kept_points: list[Coordinates] = []
    dropped = 0

    for event in ranked:
        point = Coordinates(*event.candidate.coordinates)
        if not kept or min_distance_km == 0.0 or _min_distance_at_least(point, kept_points, min_distance_km):
            kept.append(event)
            kept_points.append(point)
        else:
            dropped += 1

    if dropped:
        logger.debug(
            "Declustering kept %d of %d events (min distance %.3f km)",
            len(kept), len(ranked), min_distance_km,
        )
    return kept, dropped
