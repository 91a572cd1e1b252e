"""
map_ranking.py — Map event ranking orchestrator.

Chains screening, pre-filter, component scoring, relative normalization,
ranking and spatial declustering, then truncates to max_results and
assembles diagnostic metadata.

The whole run is a pure, synchronous computation over in-memory lists. It
holds no module-level state, so concurrent calls with separate inputs are
safe.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, NamedTuple, Protocol, Sequence, Union

from implementation.classes.enums import InvalidCandidatePolicy
from implementation.classes.event import EventCandidate
from ranking.context import ScoringContext, Viewport
from ranking.declustering import decluster_events
from ranking.errors import CandidateDataError
from ranking.event_scoring import score_candidates
from ranking.prefilter import coerce_candidate, prefilter_candidates, validate_candidate
from ranking.relative_scoring import normalize_relative_scores, rank_scored_events

logger = logging.getLogger(__name__)

# A catalog model, or the raw wire payload for one event.
CandidateInput = Union[EventCandidate, Mapping[str, Any]]


# ===========================================================================
# Output data structures
# ===========================================================================


@dataclass(frozen=True, slots=True)
class RankingMetadata:
    total_candidates: int
    pre_filtered_count: int          # survivors of the pre-filter
    clustered_out_count: int         # dropped by spatial declustering
    final_count: int
    processing_duration_ms: float
    skipped_candidate_ids: tuple[str, ...] = ()
    # True when declustering collapsed every survivor into a single event.
    spatial_diversity_exhausted: bool = False


@dataclass(frozen=True, slots=True)
class RankedResult:
    """
    Final ranking for one request.

    events holds the caller's original EventCandidate objects (or the models
    parsed from raw payloads), in display order. relevance_scores maps each returned event id to its relative
    score (for marker sizing / opacity on the client).
    """
    events: tuple[EventCandidate, ...]
    metadata: RankingMetadata
    relevance_scores: dict[str, float] = field(default_factory=dict)


# ===========================================================================
# Collaborator interface
# ===========================================================================


class TimeWindow(NamedTuple):
    start: datetime
    end: datetime


class CandidateSource(Protocol):
    """The event catalog, as seen by the ranking core."""

    def fetch_candidates(self, viewport: Viewport, time_window: TimeWindow) -> Sequence[CandidateInput]:
        ...


class InMemoryCandidateSource:
    """List-backed CandidateSource. Returns everything; ranking does the filtering."""

    def __init__(self, events: Iterable[CandidateInput]) -> None:
        self._events = tuple(events)

    def fetch_candidates(self, viewport: Viewport, time_window: TimeWindow) -> Sequence[CandidateInput]:
        return list(self._events)


# ===========================================================================
# Orchestrator
# ===========================================================================


def _screen_candidates(
    candidates: Sequence[CandidateInput],
    policy: InvalidCandidatePolicy,
) -> tuple[list[EventCandidate], list[str]]:
    """
    Parse and validate every candidate before stage 1.

    ABORT re-raises the first CandidateDataError. SKIP logs it, records the
    id and carries on with the remaining candidates.
    """
    valid: list[EventCandidate] = []
    skipped: list[str] = []
    for candidate in candidates:
        try:
            candidate = coerce_candidate(candidate)
            validate_candidate(candidate)
        except CandidateDataError as exc:
            if policy is InvalidCandidatePolicy.ABORT:
                raise
            logger.warning("Skipping malformed candidate: %s", exc)
            skipped.append(str(exc.candidate_id))
            continue
        valid.append(candidate)
    return valid, skipped


def rank_map_events(
    candidates: Iterable[CandidateInput],
    context: ScoringContext,
) -> RankedResult:
    """
    Main entry point. Ranks and spatially thins a candidate set for display.

    Stages:
        0. Parse and screen candidates (CandidateDataError or skip, per policy)
        1. Pre-filter (status, viewport, time window)
        2-3. Component scores and weighted raw score
        4. Relative normalization by set size
        5. Stable sort by relative score
        6. Greedy spatial declustering
        7. Truncate to thresholds.max_results

    Args:
        candidates: EventCandidate objects or raw event payloads. Never
                    mutated.
        context:    Validated ScoringContext (see build_scoring_context).

    Returns:
        RankedResult with the selected events and run metadata. Zero
        survivors is a normal outcome (empty events, final_count=0).

    Raises:
        CandidateDataError: under the ABORT policy, for the first malformed
                            candidate.
    """
    if not isinstance(context, ScoringContext):
        raise TypeError(f"context must be ScoringContext, got {type(context).__name__}")

    start = time.perf_counter()
    thresholds = context.thresholds
    candidate_list = list(candidates)

    screened, skipped_ids = _screen_candidates(candidate_list, context.invalid_candidate_policy)

    # --- Stage 1 ---
    survivors = prefilter_candidates(screened, context)

    # --- Stages 2-5 ---
    scored = score_candidates(survivors, context)
    normalize_relative_scores(scored)
    ranked = rank_scored_events(scored)

    # --- Stage 6 ---
    kept, clustered_out = decluster_events(ranked, thresholds.min_cluster_distance_km)

    # --- Stage 7 ---
    selected = kept[: thresholds.max_results]

    if ranked:
        logger.debug(
            "Top scored events: %s",
            [
                {
                    "id": se.candidate.id,
                    "title": getattr(se.candidate, "title", None),
                    "raw": round(se.raw_score, 2),
                    "relative": round(se.relative_score, 2),
                }
                for se in ranked[:3]
            ],
        )

    diversity_exhausted = len(kept) == 1 and clustered_out > 0

    elapsed_ms = (time.perf_counter() - start) * 1000
    metadata = RankingMetadata(
        total_candidates=len(candidate_list),
        pre_filtered_count=len(survivors),
        clustered_out_count=clustered_out,
        final_count=len(selected),
        processing_duration_ms=elapsed_ms,
        skipped_candidate_ids=tuple(skipped_ids),
        spatial_diversity_exhausted=diversity_exhausted,
    )

    logger.info(
        "Ranked map events: total=%d pre_filtered=%d clustered_out=%d final=%d skipped=%d (%.1f ms)",
        metadata.total_candidates,
        metadata.pre_filtered_count,
        metadata.clustered_out_count,
        metadata.final_count,
        len(skipped_ids),
        elapsed_ms,
    )

    return RankedResult(
        events=tuple(se.candidate for se in selected),
        metadata=metadata,
        relevance_scores={se.candidate.id: se.relative_score for se in selected},
    )


def rank_from_source(source: CandidateSource, context: ScoringContext) -> RankedResult:
    """
    Fetch candidates for the request's viewport and time window, then rank them.

    The window is [now - max_past_hours, now + max_future_days]; the catalog
    may use it to narrow its query, but the pre-filter enforces it anyway.
    """
    window = TimeWindow(
        start=context.now - timedelta(hours=context.thresholds.max_past_hours),
        end=context.now + timedelta(days=context.thresholds.max_future_days),
    )
    candidates = source.fetch_candidates(context.viewport, window)
    return rank_map_events(candidates, context)
