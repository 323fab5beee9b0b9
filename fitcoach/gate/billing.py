"""Trial arithmetic shared by the gate and the billing status route."""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from fitcoach.types import SubscriptionStatus

if TYPE_CHECKING:
    from datetime import datetime

    from fitcoach.models.domain import OrgState

_SECONDS_PER_DAY = 86400


def trial_expired(state: OrgState, now: datetime) -> bool:
    """True only for a trialing org whose trial end is strictly in the past.

    Active, canceled and expired statuses never trip the trial gate, and a
    trialing org without an end date is treated as open-ended.
    """
    if state.subscription_status != SubscriptionStatus.TRIALING:
        return False
    if state.trial_ends_at is None:
        return False
    return state.trial_ends_at < now


def trial_days_remaining(state: OrgState, now: datetime) -> int | None:
    """Whole days left in a trial, rounded up, never negative."""
    if state.subscription_status != SubscriptionStatus.TRIALING or state.trial_ends_at is None:
        return None
    seconds = (state.trial_ends_at - now).total_seconds()
    return max(0, math.ceil(seconds / _SECONDS_PER_DAY))
