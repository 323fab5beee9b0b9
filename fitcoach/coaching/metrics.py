"""Training arithmetic: report windows, tonnage and one-rep-max estimates."""

from __future__ import annotations

import math
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from fitcoach.types import TonnagePeriod

if TYPE_CHECKING:
    from collections.abc import Iterable

    from fitcoach.models.api import SetLogEntry


def period_start(period: str, now: datetime) -> datetime:
    """Return the start of the reporting window containing ``now``.

    Weeks start on Monday. Unknown periods fall back to a rolling 7 days.
    """
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    match period:
        case TonnagePeriod.DAY:
            return midnight
        case TonnagePeriod.WEEK:
            return midnight - timedelta(days=now.weekday())
        case TonnagePeriod.MONTH:
            return midnight.replace(day=1)
        case TonnagePeriod.YEAR:
            return midnight.replace(month=1, day=1)
        case _:
            return now - timedelta(days=7)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def set_volume(weight_kg: float | None, reps: int | None) -> float:
    """Weight moved in one set; missing values count as zero."""
    return (weight_kg or 0) * (reps or 0)


def estimate_one_rep_max(weight_kg: float, reps: int) -> float:
    """Epley estimate: w * (1 + reps / 30)."""
    return weight_kg * (1 + reps / 30)


def round_to_half_kg(value: float) -> float:
    return round_half_up(value * 2) / 2


def best_estimates(sets: Iterable[SetLogEntry]) -> dict[str, float]:
    """Best estimated one-rep max per exercise id, ignoring incomplete sets."""
    best: dict[str, float] = {}
    for entry in sets:
        if not entry.weight_kg or not entry.reps_completed:
            continue
        estimate = estimate_one_rep_max(entry.weight_kg, entry.reps_completed)
        if estimate > best.get(entry.exercise_id, 0.0):
            best[entry.exercise_id] = estimate
    return best
