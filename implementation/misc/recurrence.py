"""
Shared recurrence helpers.

Resolves the occurrence of an event that matters "right now": the fixed
occurrence for one-off events, the next occurrence for recurring ones.
"""

from datetime import datetime, timedelta
from typing import Optional

from dateutil.relativedelta import relativedelta

from implementation.classes.enums import RecurrenceFrequency
from implementation.classes.event import EventCandidate, RecurrenceRule
from implementation.misc.helpers import ensure_utc

# Frequencies with a fixed length, stepped with plain timedelta arithmetic.
_FIXED_PERIOD_DAYS: dict[RecurrenceFrequency, int] = {
    RecurrenceFrequency.DAILY: 1,
    RecurrenceFrequency.WEEKLY: 7,
    RecurrenceFrequency.BIWEEKLY: 14,
}

# Calendar frequencies, stepped in months so month ends clamp (Jan 31 → Feb 28).
_CALENDAR_PERIOD_MONTHS: dict[RecurrenceFrequency, int] = {
    RecurrenceFrequency.MONTHLY: 1,
    RecurrenceFrequency.YEARLY: 12,
}


def next_occurrence(
    rule: RecurrenceRule,
    occurs_at: datetime,
    after: datetime,
) -> Optional[datetime]:
    """
    First occurrence of `rule` strictly after `after`.

    Every occurrence is computed from the series start (start + k × step),
    never by repeatedly adding to the previous occurrence, so calendar
    clamping does not accumulate drift.

    Args:
        rule:      The recurrence rule.
        occurs_at: The event's primary occurrence, used as the series start
                   when the rule does not carry its own starts_at.
        after:     Reference instant (usually the request's "now").

    Returns:
        UTC datetime of the next occurrence, or None when the series has
        ended before producing one.
    """
    start = ensure_utc(rule.starts_at or occurs_at)
    end = ensure_utc(rule.ends_at) if rule.ends_at is not None else None
    after = ensure_utc(after)

    if end is not None and after > end:
        return None

    if start > after:
        candidate = start
    elif rule.frequency in _FIXED_PERIOD_DAYS:
        period = timedelta(days=_FIXED_PERIOD_DAYS[rule.frequency] * rule.interval)
        steps = (after - start) // period + 1
        candidate = start + steps * period
    elif rule.frequency in _CALENDAR_PERIOD_MONTHS:
        step_months = _CALENDAR_PERIOD_MONTHS[rule.frequency] * rule.interval
        elapsed_months = (after.year - start.year) * 12 + (after.month - start.month)
        # The occurrence before the floor estimate is always <= after; walk forward.
        steps = max(0, elapsed_months // step_months)
        candidate = start + relativedelta(months=steps * step_months)
        while candidate <= after:
            steps += 1
            candidate = start + relativedelta(months=steps * step_months)
    else:
        raise ValueError(f"unsupported recurrence frequency: {rule.frequency!r}")

    if end is not None and candidate > end:
        return None
    return candidate


def effective_occurrence(candidate: EventCandidate, now: datetime) -> Optional[datetime]:
    """
    The occurrence used for time-based filtering and scoring.

    One-off events return their fixed occurs_at (possibly in the past).
    Recurring events return their next occurrence after `now`, or None when
    the recurrence window has fully elapsed.
    """
    if candidate.recurrence is None:
        return ensure_utc(candidate.occurs_at)
    return next_occurrence(candidate.recurrence, candidate.occurs_at, now)
