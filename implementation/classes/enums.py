"""
Enum classes for map event data models.

This module contains all Enum classes used for event representation and
ranking configuration across the project.
"""

from enum import Enum


class EventStatus(str, Enum):
    """Moderation status of an event in the catalog."""
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"
    EXPIRED = "EXPIRED"

    @property
    def is_displayable(self) -> bool:
        """Rejected and expired events never reach the map."""
        return self not in (EventStatus.REJECTED, EventStatus.EXPIRED)


class RecurrenceFrequency(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    YEARLY = "YEARLY"


class InvalidCandidatePolicy(str, Enum):
    """
    What the orchestrator does when one candidate carries malformed data.

    ABORT (default) fails the whole request with CandidateDataError.
    SKIP logs the candidate, leaves it out and ranks the rest.
    """
    ABORT = "abort"
    SKIP = "skip"
