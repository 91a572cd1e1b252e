"""
Pydantic schemas for the map ranking HTTP surface.

Request and response bodies use camelCase on the wire (matching the mobile
client) and snake_case in Python; both spellings are accepted on input.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ranking import settings
from .event import EventCandidate


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------
#           REQUEST
# -----------------------------

class ViewportBounds(_CamelModel):
    north: float = Field(..., ge=-90.0, le=90.0)
    south: float = Field(..., ge=-90.0, le=90.0)
    east: float = Field(..., ge=-180.0, le=180.0)
    west: float = Field(..., ge=-180.0, le=180.0)

    @model_validator(mode="after")
    def _check_orientation(self) -> "ViewportBounds":
        if self.south > self.north:
            raise ValueError("south must not exceed north")
        if self.west > self.east:
            raise ValueError("west must not exceed east")
        return self


class UserLocation(_CamelModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class CustomWeights(_CamelModel):
    """
    Partial weight overrides. Omitted fields keep the server defaults.

    Wire names follow the client (timeProximity, distanceProximity, ...);
    to_overrides() maps them onto ScoringWeights field names.
    """
    time_proximity: Optional[float] = Field(default=None, ge=0.0)
    distance_proximity: Optional[float] = Field(default=None, ge=0.0)
    popularity: Optional[float] = Field(default=None, ge=0.0)
    recency: Optional[float] = Field(default=None, ge=0.0)
    confidence: Optional[float] = Field(default=None, ge=0.0)

    def to_overrides(self) -> dict[str, float]:
        mapping = {
            "time": self.time_proximity,
            "distance": self.distance_proximity,
            "popularity": self.popularity,
            "recency": self.recency,
            "confidence": self.confidence,
        }
        return {name: value for name, value in mapping.items() if value is not None}


class RankEventsRequest(_CamelModel):
    viewport: ViewportBounds
    user_location: Optional[UserLocation] = None
    max_events: int = Field(default=settings.DEFAULT_MAX_RESULTS, ge=1)
    custom_weights: Optional[CustomWeights] = None
    min_cluster_distance_km: Optional[float] = Field(default=None, ge=0.0)
    # Reference instant; server time when omitted.
    now: Optional[datetime] = None
    skip_invalid_candidates: bool = False
    # Raw event payloads. They are parsed into EventCandidate during ranking,
    # so a malformed event is reported by id and honours skipInvalidCandidates.
    events: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("events")
    @classmethod
    def _unique_ids(cls, events: list[dict[str, Any]]) -> list[dict[str, Any]]:
        seen: set[str] = set()
        for event in events:
            event_id = event.get("id")
            if not isinstance(event_id, str):
                continue
            if event_id in seen:
                raise ValueError(f"duplicate event id {event_id!r}")
            seen.add(event_id)
        return events


# -----------------------------
#           RESPONSE
# -----------------------------

class RankedEvent(EventCandidate):
    """An input event echoed back with its relative relevance score."""
    relevance_score: float = Field(..., ge=0.0, le=1.0)


class RankingMetadataResponse(_CamelModel):
    total_candidates: int
    pre_filtered_count: int
    clustered_out_count: int
    final_count: int
    processing_time_ms: float
    skipped_candidate_ids: list[str] = Field(default_factory=list)
    spatial_diversity_exhausted: bool = False


class RankEventsResponse(_CamelModel):
    events: list[RankedEvent]
    metadata: RankingMetadataResponse
