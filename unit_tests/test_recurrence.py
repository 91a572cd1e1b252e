"""Unit tests for implementation.misc.recurrence."""

from datetime import datetime, timedelta, timezone

import pytest

from implementation.classes.enums import RecurrenceFrequency
from implementation.classes.event import RecurrenceRule
from implementation.misc.recurrence import effective_occurrence, next_occurrence

from conftest import NOW


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def test_daily_series_started_in_past_returns_next_future_occurrence() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.DAILY)
    start = NOW - timedelta(hours=26)
    assert next_occurrence(rule, start, NOW) == NOW + timedelta(hours=22)


def test_occurrence_exactly_at_after_is_skipped() -> None:
    """The next occurrence is strictly after the reference instant."""
    rule = RecurrenceRule(frequency=RecurrenceFrequency.DAILY)
    start = NOW - timedelta(days=1)
    assert next_occurrence(rule, start, NOW) == NOW + timedelta(days=1)


def test_future_series_start_is_the_next_occurrence() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.WEEKLY)
    start = NOW + timedelta(hours=5)
    assert next_occurrence(rule, start, NOW) == start


@pytest.mark.parametrize(
    ("frequency", "interval", "expected_days"),
    [
        (RecurrenceFrequency.DAILY, 3, 3),
        (RecurrenceFrequency.WEEKLY, 1, 7),
        (RecurrenceFrequency.WEEKLY, 2, 14),
        (RecurrenceFrequency.BIWEEKLY, 1, 14),
        (RecurrenceFrequency.BIWEEKLY, 2, 28),
    ],
)
def test_fixed_period_steps(frequency: RecurrenceFrequency, interval: int, expected_days: int) -> None:
    rule = RecurrenceRule(frequency=frequency, interval=interval)
    start = NOW - timedelta(hours=1)
    assert next_occurrence(rule, start, NOW) == start + timedelta(days=expected_days)


def test_long_running_daily_series_does_not_iterate_from_start() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.DAILY)
    start = NOW - timedelta(days=365 * 20, hours=1)
    result = next_occurrence(rule, start, NOW)
    assert result is not None
    assert NOW < result <= NOW + timedelta(days=1)


def test_monthly_series_clamps_month_end_without_drift() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.MONTHLY)
    start = utc(2024, 1, 31, 10, 0)

    assert next_occurrence(rule, start, utc(2024, 2, 15)) == utc(2024, 2, 29, 10, 0)
    # Anchored on the start date: March goes back to the 31st.
    assert next_occurrence(rule, start, utc(2024, 3, 1)) == utc(2024, 3, 31, 10, 0)


def test_monthly_series_with_interval() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.MONTHLY, interval=3)
    start = utc(2023, 1, 10, 18, 0)
    assert next_occurrence(rule, start, utc(2024, 1, 15)) == utc(2024, 4, 10, 18, 0)


def test_yearly_series_from_leap_day() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.YEARLY)
    start = utc(2020, 2, 29, 12, 0)
    assert next_occurrence(rule, start, utc(2021, 3, 1)) == utc(2022, 2, 28, 12, 0)


def test_rule_starts_at_overrides_occurs_at() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.DAILY, starts_at=NOW + timedelta(days=3))
    assert next_occurrence(rule, NOW - timedelta(days=100), NOW) == NOW + timedelta(days=3)


def test_series_ended_before_reference_returns_none() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.DAILY, ends_at=NOW - timedelta(hours=1))
    assert next_occurrence(rule, NOW - timedelta(days=10), NOW) is None


def test_next_occurrence_after_end_returns_none() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.WEEKLY, ends_at=NOW + timedelta(days=2))
    start = NOW - timedelta(days=1)
    assert next_occurrence(rule, start, NOW) is None


def test_next_occurrence_exactly_at_end_is_kept() -> None:
    end = NOW + timedelta(days=6)
    rule = RecurrenceRule(frequency=RecurrenceFrequency.WEEKLY, ends_at=end)
    start = NOW - timedelta(days=1)
    assert next_occurrence(rule, start, NOW) == end


def test_naive_datetimes_are_treated_as_utc() -> None:
    rule = RecurrenceRule(frequency=RecurrenceFrequency.DAILY)
    start = datetime(2024, 1, 14, 10, 0)
    assert next_occurrence(rule, start, NOW) == utc(2024, 1, 16, 10, 0)


def test_effective_occurrence_one_off_event_returns_fixed_time(event_candidate_factory) -> None:
    past = NOW - timedelta(hours=30)
    candidate = event_candidate_factory(occurs_at=past)
    assert effective_occurrence(candidate, NOW) == past


def test_effective_occurrence_recurring_event_uses_next_occurrence(event_candidate_factory) -> None:
    candidate = event_candidate_factory(
        occurs_at=NOW - timedelta(hours=26),
        recurrence=RecurrenceRule(frequency=RecurrenceFrequency.DAILY),
    )
    assert effective_occurrence(candidate, NOW) == NOW + timedelta(hours=22)
