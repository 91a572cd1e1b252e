"""Shared pytest fixtures for unit tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable
import sys

import pytest

# Ensure project root is importable when tests run from repository root.
PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from implementation.classes.enums import EventStatus
from implementation.classes.event import Coordinates, Engagement, EventCandidate
from ranking.context import ScoringContext, Viewport, build_scoring_context

# Fixed reference instant shared by every test so rankings are reproducible.
NOW = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)

# San Francisco box, roughly 11 km × 9 km.
TEST_VIEWPORT = Viewport(north=37.8, south=37.7, east=-122.4, west=-122.5)
VIEWPORT_CENTER = Coordinates(37.75, -122.45)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def event_candidate_factory() -> Callable[..., EventCandidate]:
    """Return a factory that builds a valid in-viewport EventCandidate with optional overrides."""

    def _factory(**overrides: Any) -> EventCandidate:
        """Construct a complete EventCandidate while allowing targeted field overrides."""
        base_data: dict[str, Any] = {
            "id": "test-event-1",
            "title": "Test Event",
            "status": EventStatus.VERIFIED,
            "coordinates": VIEWPORT_CENTER,
            "occurs_at": NOW + timedelta(hours=2),
            "created_at": NOW - timedelta(days=10),
            "engagement": Engagement(scan_count=5, save_count=2, rsvp_count=0),
            "confidence": None,
        }

        # Overrides replace whole fields (e.g. engagement, coordinates).
        base_data.update(overrides)
        return EventCandidate(**base_data)

    return _factory


@pytest.fixture
def scoring_context_factory() -> Callable[..., ScoringContext]:
    """Return a factory for a ScoringContext pinned to NOW and the test viewport."""

    def _factory(**overrides: Any) -> ScoringContext:
        kwargs: dict[str, Any] = {"now": NOW}
        kwargs.update(overrides)
        viewport = kwargs.pop("viewport", TEST_VIEWPORT)
        return build_scoring_context(viewport, **kwargs)

    return _factory
