from datetime import datetime
from typing import NamedTuple, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .enums import EventStatus, RecurrenceFrequency


class Coordinates(NamedTuple):
    """WGS84 point in decimal degrees."""
    latitude: float
    longitude: float


class Engagement(BaseModel):
    """Interaction counters collected by the catalog for one event."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    scan_count: int = Field(default=0, ge=0)
    save_count: int = Field(default=0, ge=0)
    rsvp_count: int = Field(default=0, ge=0)


class RecurrenceRule(BaseModel):
    """
    Minimal recurrence description, enough to derive the next occurrence.

    starts_at defaults to the event's occurs_at when omitted. ends_at is
    inclusive: an occurrence exactly at ends_at still counts.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    frequency: RecurrenceFrequency
    interval: int = Field(default=1, ge=1)
    starts_at: Optional[datetime] = None
    ends_at: Optional[datetime] = None


class EventCandidate(BaseModel):
    """
    One catalog event eligible for map ranking.

    Owned by the caller. The ranking pipeline only reads it and returns the
    same object in its output, so the model is frozen.
    """
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    status: EventStatus
    coordinates: Coordinates
    occurs_at: datetime
    created_at: datetime
    engagement: Engagement = Engagement()
    recurrence: Optional[RecurrenceRule] = None
    # AI extraction confidence; None means the extractor did not report one
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    title: Optional[str] = None

    @property
    def is_recurring(self) -> bool:
        return self.recurrence is not None
