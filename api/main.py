import logging

from fastapi import FastAPI, HTTPException

from implementation.classes.enums import InvalidCandidatePolicy
from implementation.classes.event import Coordinates
from implementation.classes.schemas import (
    RankEventsRequest,
    RankEventsResponse,
    RankedEvent,
    RankingMetadataResponse,
)
from ranking import settings
from ranking.context import ScoringContext, build_scoring_context
from ranking.errors import CandidateDataError, InputValidationError
from ranking.map_ranking import InMemoryCandidateSource, RankedResult, rank_from_source

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Map Event Ranking")


@app.get("/health")
async def health_check():
    """Liveness check. The ranking core has no external dependencies to check."""
    return {"status": "ok"}


def build_context_from_request(request: RankEventsRequest) -> ScoringContext:
    """Translate the wire request into a validated ScoringContext."""
    user_location = None
    if request.user_location is not None:
        user_location = Coordinates(request.user_location.lat, request.user_location.lng)

    thresholds: dict[str, float] = {"max_results": request.max_events}
    if request.min_cluster_distance_km is not None:
        thresholds["min_cluster_distance_km"] = request.min_cluster_distance_km

    return build_scoring_context(
        request.viewport.model_dump(),
        user_location=user_location,
        weights=request.custom_weights.to_overrides() if request.custom_weights else None,
        thresholds=thresholds,
        now=request.now,
        invalid_candidate_policy=(
            InvalidCandidatePolicy.SKIP if request.skip_invalid_candidates else InvalidCandidatePolicy.ABORT
        ),
    )


def to_response(result: RankedResult) -> RankEventsResponse:
    meta = result.metadata
    return RankEventsResponse(
        events=[
            RankedEvent(**event.model_dump(), relevance_score=result.relevance_scores[event.id])
            for event in result.events
        ],
        metadata=RankingMetadataResponse(
            total_candidates=meta.total_candidates,
            pre_filtered_count=meta.pre_filtered_count,
            clustered_out_count=meta.clustered_out_count,
            final_count=meta.final_count,
            processing_time_ms=meta.processing_duration_ms,
            skipped_candidate_ids=list(meta.skipped_candidate_ids),
            spatial_diversity_exhausted=meta.spatial_diversity_exhausted,
        ),
    )


@app.post("/events/rank", response_model=RankEventsResponse)
def rank_events(request: RankEventsRequest) -> RankEventsResponse:
    """
    Rank and spatially thin the supplied candidate events for one map view.

    Plain def: ranking is CPU-bound, so FastAPI runs it in its threadpool.
    Each event payload is parsed during ranking, so a malformed event is
    reported as 422 with its candidate id (or skipped under
    skipInvalidCandidates) rather than failing request validation.
    """
    try:
        context = build_context_from_request(request)
        result = rank_from_source(InMemoryCandidateSource(request.events), context)
    except CandidateDataError as exc:
        logger.warning("Rejected ranking request: %s", exc)
        raise HTTPException(
            status_code=422,
            detail={"error": "candidate_data", "candidateId": exc.candidate_id, "message": str(exc)},
        ) from exc
    except InputValidationError as exc:
        logger.warning("Rejected ranking request: %s", exc)
        raise HTTPException(status_code=422, detail={"error": "input_validation", "message": str(exc)}) from exc

    return to_response(result)
