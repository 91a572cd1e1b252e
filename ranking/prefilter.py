"""
Candidate screening and admissibility pre-filter.

Stage 0 (screening) parses raw payloads into EventCandidate models and
rejects malformed candidates with a CandidateDataError naming the offending
id. Stage 1 (pre-filter) drops well-formed candidates
that must never be displayed: rejected/expired status, outside the viewport,
or outside the admissible time window.

Both are pure O(N) passes over the input list; input order is preserved.
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from datetime import datetime
from numbers import Real
from typing import Any, Iterable, Mapping, Union

from pydantic import ValidationError

from implementation.classes.enums import EventStatus, RecurrenceFrequency
from implementation.classes.event import Coordinates, EventCandidate
from implementation.misc.helpers import hours_between
from implementation.misc.recurrence import effective_occurrence
from ranking.context import ScoringContext
from ranking.errors import CandidateDataError

logger = logging.getLogger(__name__)

_ENGAGEMENT_COUNTERS: tuple[str, ...] = ("scan_count", "save_count", "rsvp_count")


# ===========================================================================
# Stage 0: Candidate screening
# ===========================================================================


def _read_coordinates(candidate: EventCandidate, candidate_id: str) -> Coordinates:
    raw = getattr(candidate, "coordinates", None)
    if raw is None:
        raise CandidateDataError(candidate_id, "missing coordinates")
    try:
        latitude, longitude = raw
    except (TypeError, ValueError) as exc:
        raise CandidateDataError(candidate_id, f"coordinates must be a (latitude, longitude) pair, got {raw!r}") from exc

    for label, value, limit in (("latitude", latitude, 90.0), ("longitude", longitude, 180.0)):
        if isinstance(value, bool) or not isinstance(value, Real):
            raise CandidateDataError(candidate_id, f"{label} must be a real number, got {type(value).__name__}")
        if not math.isfinite(value):
            raise CandidateDataError(candidate_id, f"{label} must be finite, got {value}")
        if abs(value) > limit:
            raise CandidateDataError(candidate_id, f"{label} must be within [-{limit:g}, {limit:g}], got {value}")
    return Coordinates(float(latitude), float(longitude))


def _require_datetime(candidate_id: str, label: str, value: object) -> None:
    if value is None:
        raise CandidateDataError(candidate_id, f"missing {label}")
    if not isinstance(value, datetime):
        raise CandidateDataError(candidate_id, f"{label} must be a datetime, got {value!r}")


def coerce_candidate(candidate: Union[EventCandidate, Mapping[str, Any]]) -> EventCandidate:
    """
    Parse a raw wire payload into an EventCandidate.

    Non-mapping objects are returned unchanged; validate_candidate checks them
    attribute by attribute. A payload pydantic rejects becomes a
    CandidateDataError naming the payload's id and every failing field.
    """
    if not isinstance(candidate, Mapping):
        return candidate

    candidate_id = candidate.get("id")
    try:
        return EventCandidate.model_validate(candidate)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'event'}: {error['msg']}"
            for error in exc.errors()
        )
        raise CandidateDataError(
            None if candidate_id is None else str(candidate_id), problems,
        ) from exc


def validate_candidate(candidate: EventCandidate) -> None:
    """
    Check one candidate against the pipeline's input contract.

    Works on any object exposing the EventCandidate attributes (the pipeline
    never relies on pydantic having validated it).

    Raises:
        CandidateDataError: naming the candidate id and the failing field.
    """
    candidate_id = getattr(candidate, "id", None)
    if candidate_id is None:
        raise CandidateDataError(None, "missing id")

    try:
        EventStatus(getattr(candidate, "status", None))
    except ValueError as exc:
        raise CandidateDataError(candidate_id, f"invalid status {getattr(candidate, 'status', None)!r}") from exc

    _read_coordinates(candidate, candidate_id)
    _require_datetime(candidate_id, "occurs_at", getattr(candidate, "occurs_at", None))
    _require_datetime(candidate_id, "created_at", getattr(candidate, "created_at", None))

    engagement = getattr(candidate, "engagement", None)
    if engagement is None:
        raise CandidateDataError(candidate_id, "missing engagement counters")
    for counter in _ENGAGEMENT_COUNTERS:
        value = getattr(engagement, counter, None)
        if isinstance(value, bool) or not isinstance(value, int):
            raise CandidateDataError(candidate_id, f"engagement.{counter} must be an int, got {value!r}")
        if value < 0:
            raise CandidateDataError(candidate_id, f"engagement.{counter} must be >= 0, got {value}")

    confidence = getattr(candidate, "confidence", None)
    if confidence is not None:
        if isinstance(confidence, bool) or not isinstance(confidence, Real):
            raise CandidateDataError(candidate_id, f"confidence must be a real number, got {type(confidence).__name__}")
        if not math.isfinite(confidence) or not 0.0 <= confidence <= 1.0:
            raise CandidateDataError(candidate_id, f"confidence must be within [0.0, 1.0], got {confidence}")

    recurrence = getattr(candidate, "recurrence", None)
    if recurrence is not None:
        try:
            RecurrenceFrequency(getattr(recurrence, "frequency", None))
        except ValueError as exc:
            raise CandidateDataError(
                candidate_id, f"invalid recurrence frequency {getattr(recurrence, 'frequency', None)!r}"
            ) from exc
        interval = getattr(recurrence, "interval", None)
        if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
            raise CandidateDataError(candidate_id, f"recurrence.interval must be an int >= 1, got {interval!r}")
        for label in ("starts_at", "ends_at"):
            value = getattr(recurrence, label, None)
            if value is not None and not isinstance(value, datetime):
                raise CandidateDataError(candidate_id, f"recurrence.{label} must be a datetime, got {value!r}")


# ===========================================================================
# Stage 1: Pre-filter
# ===========================================================================


def prefilter_candidates(
    candidates: Iterable[EventCandidate],
    context: ScoringContext,
) -> list[EventCandidate]:
    """
    Drop candidates that are not admissible for display.

    A candidate is dropped if any holds:
        - status is REJECTED or EXPIRED
        - its coordinates fall outside context.viewport
        - its effective occurrence (next occurrence for recurring events) is
          earlier than now - max_past_hours or later than now + max_future_days
        - it is recurring and its recurrence window has fully elapsed

    Candidates are assumed to have passed validate_candidate().

    Returns:
        Survivors in input order. The candidate objects are returned as-is.
    """
    now = context.now
    earliest_hours = -context.thresholds.max_past_hours
    latest_hours = context.thresholds.max_future_days * 24.0

    survivors: list[EventCandidate] = []
    dropped: Counter[str] = Counter()

    for candidate in candidates:
        if not EventStatus(candidate.status).is_displayable:
            dropped["status"] += 1
            continue

        if not context.viewport.contains(Coordinates(*candidate.coordinates)):
            dropped["viewport"] += 1
            continue

        occurrence = effective_occurrence(candidate, now)
        if occurrence is None:
            dropped["recurrence_elapsed"] += 1
            continue

        hours_until = hours_between(now, occurrence)
        if hours_until < earliest_hours:
            dropped["too_far_past"] += 1
            continue
        if hours_until > latest_hours:
            dropped["too_far_future"] += 1
            continue

        survivors.append(candidate)

    if dropped:
        logger.debug("Pre-filter kept %d, dropped %s", len(survivors), dict(dropped))
    return survivors
