"""Workout repository: workout logs, set logs and stored one-rep maxes.

Set logs and one-rep maxes are written with a single INSERT ... ON CONFLICT
keyed by their natural composite key, so replaying a request is harmless.
Completing a session writes the log, its completion record, its sets and any
new one-rep maxes in one transaction.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import DateTime, bindparam, func, insert, text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from fitcoach.coaching.metrics import round_half_up, round_to_half_kg, set_volume
from fitcoach.exceptions import UpstreamUnavailable
from fitcoach.models.database import (
    ClientOneRepMax,
    SetLog,
    WorkoutCompletion,
    WorkoutLog,
    _new_uuid,
    _utc_now,
)

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

    from fitcoach.models.api import SetLogEntry

logger = structlog.get_logger(__name__)

_UPSERT_SET_LOG = text(
    "INSERT INTO set_logs "
    "(workout_log_id, exercise_id, set_number, weight_kg, reps_completed) "
    "VALUES (:workout_log_id, :exercise_id, :set_number, :weight_kg, :reps_completed) "
    "ON CONFLICT (workout_log_id, exercise_id, set_number) "
    "DO UPDATE SET weight_kg = excluded.weight_kg, "
    "reps_completed = excluded.reps_completed"
)

_RAISE_ONE_REP_MAX = text(
    "INSERT INTO client_one_rep_maxes "
    "(client_id, exercise_name, weight_kg, updated_at) "
    "VALUES (:client_id, :exercise_name, :weight_kg, :updated_at) "
    "ON CONFLICT (client_id, exercise_name) "
    "DO UPDATE SET weight_kg = excluded.weight_kg, updated_at = excluded.updated_at "
    "WHERE excluded.weight_kg > client_one_rep_maxes.weight_kg"
).bindparams(bindparam("updated_at", type_=DateTime()))


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _set_params(workout_log_id: str, entry: SetLogEntry) -> dict[str, Any]:
    return {
        "workout_log_id": workout_log_id,
        "exercise_id": entry.exercise_id,
        "set_number": entry.set_number,
        "weight_kg": entry.weight_kg,
        "reps_completed": entry.reps_completed,
    }


def _one_rep_max_params(client_id: str, exercise_name: str, estimate: float) -> dict[str, Any]:
    return {
        "client_id": client_id,
        "exercise_name": exercise_name,
        "weight_kg": round_to_half_kg(estimate),
        "updated_at": _utc_now(),
    }


class WorkoutRepository:
    """PostgreSQL-backed workout store."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def complete_session(
        self,
        *,
        client_id: str,
        trainer_id: str | None,
        sets: Sequence[SetLogEntry] = (),
        one_rep_maxes: Mapping[str, float] | None = None,
        workout_id: str | None = None,
        client_program_id: str | None = None,
        notes: str | None = None,
    ) -> str:
        """Record a finished session and return the new workout log id.

        Nothing is written unless every statement succeeds.
        """
        log_id = _new_uuid()
        now = _utc_now()
        try:
            async with self._engine.begin() as conn:
                await conn.execute(
                    insert(WorkoutLog).values(
                        id=log_id,
                        client_id=client_id,
                        trainer_id=trainer_id,
                        workout_id=workout_id,
                        client_program_id=client_program_id,
                        notes=notes or None,
                        scheduled_date=now.date(),
                        completed_at=now,
                    )
                )
                await conn.execute(
                    insert(WorkoutCompletion).values(
                        id=_new_uuid(),
                        client_id=client_id,
                        workout_id=workout_id,
                        client_program_id=client_program_id,
                        workout_log_id=log_id,
                        scheduled_date=now.date(),
                        completed_at=now,
                    )
                )
                await self._write_sets(conn, log_id, sets)
                for exercise_name, estimate in (one_rep_maxes or {}).items():
                    await conn.execute(
                        _RAISE_ONE_REP_MAX,
                        _one_rep_max_params(client_id, exercise_name, estimate),
                    )
        except SQLAlchemyError as exc:
            logger.warning("session_complete_failed", client_id=client_id, error=str(exc))
            raise UpstreamUnavailable(str(exc)) from exc
        logger.info("workout_log_created", workout_log_id=log_id, client_id=client_id)
        return log_id

    async def get_log_client(self, workout_log_id: str) -> str | None:
        """Return the client id owning a workout log."""
        try:
            async with AsyncSession(self._engine) as session:
                stmt = select(WorkoutLog.client_id).where(col(WorkoutLog.id) == workout_log_id)
                result = await session.execute(stmt)
                return result.scalars().first()
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc

    async def upsert_sets(self, workout_log_id: str, sets: Sequence[SetLogEntry]) -> int:
        """Insert or update each set keyed by (log, exercise, set number)."""
        if not sets:
            return 0
        try:
            async with self._engine.begin() as conn:
                await self._write_sets(conn, workout_log_id, sets)
        except SQLAlchemyError as exc:
            logger.warning(
                "set_log_upsert_failed", workout_log_id=workout_log_id, error=str(exc)
            )
            raise UpstreamUnavailable(str(exc)) from exc
        logger.debug("set_logs_upserted", workout_log_id=workout_log_id, count=len(sets))
        return len(sets)

    async def raise_one_rep_max(self, client_id: str, exercise_name: str, estimate: float) -> None:
        """Store ``estimate`` (rounded to 0.5 kg) only if it beats the current max."""
        try:
            async with self._engine.begin() as conn:
                await conn.execute(
                    _RAISE_ONE_REP_MAX, _one_rep_max_params(client_id, exercise_name, estimate)
                )
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc

    @staticmethod
    async def _write_sets(
        conn: AsyncConnection, workout_log_id: str, sets: Sequence[SetLogEntry]
    ) -> None:
        if sets:
            await conn.execute(
                _UPSERT_SET_LOG, [_set_params(workout_log_id, entry) for entry in sets]
            )

    async def list_one_rep_maxes(self, client_id: str) -> list[dict[str, Any]]:
        try:
            async with AsyncSession(self._engine) as session:
                stmt = (
                    select(ClientOneRepMax)
                    .where(col(ClientOneRepMax.client_id) == client_id)
                    .order_by(col(ClientOneRepMax.exercise_name))
                )
                result = await session.execute(stmt)
                rows = result.scalars().all()
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        return [
            {
                "exercise_name": row.exercise_name,
                "weight_kg": row.weight_kg,
                "updated_at": row.updated_at,
            }
            for row in rows
        ]

    async def tonnage_since(self, client_id: str, since: datetime) -> int:
        """Total weight x reps over workouts completed at or after ``since``."""
        volume = func.coalesce(col(SetLog.weight_kg), 0) * func.coalesce(
            col(SetLog.reps_completed), 0
        )
        stmt = (
            select(func.coalesce(func.sum(volume), 0))
            .select_from(SetLog)
            .join(WorkoutLog, col(WorkoutLog.id) == col(SetLog.workout_log_id))
            .where(
                col(WorkoutLog.client_id) == client_id,
                col(WorkoutLog.completed_at) >= _naive_utc(since),
            )
        )
        try:
            async with AsyncSession(self._engine) as session:
                result = await session.execute(stmt)
                total = result.scalar_one()
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        return round_half_up(float(total or 0))



class InMemoryWorkoutRepository:
    """In-memory fallback for dev/testing without a database."""

    def __init__(self) -> None:
        self._logs: dict[str, dict[str, Any]] = {}
        self._completions: list[dict[str, Any]] = []
        self._sets: dict[tuple[str, str, int], SetLogEntry] = {}
        self._maxes: dict[tuple[str, str], dict[str, Any]] = {}

    async def complete_session(
        self,
        *,
        client_id: str,
        trainer_id: str | None,
        sets: Sequence[SetLogEntry] = (),
        one_rep_maxes: Mapping[str, float] | None = None,
        workout_id: str | None = None,
        client_program_id: str | None = None,
        notes: str | None = None,
    ) -> str:
        log_id = _new_uuid()
        now = _utc_now()
        # Stage everything first so a bad entry leaves no partial session behind
        staged_sets = {(log_id, entry.exercise_id, entry.set_number): entry for entry in sets}
        staged_maxes = {
            name: round_to_half_kg(estimate) for name, estimate in (one_rep_maxes or {}).items()
        }
        self._logs[log_id] = {
            "client_id": client_id,
            "trainer_id": trainer_id,
            "workout_id": workout_id,
            "client_program_id": client_program_id,
            "notes": notes or None,
            "scheduled_date": now.date(),
            "completed_at": now,
        }
        self._completions.append(
            {
                "client_id": client_id,
                "workout_id": workout_id,
                "client_program_id": client_program_id,
                "workout_log_id": log_id,
                "completed_at": now,
            }
        )
        self._sets.update(staged_sets)
        for name, weight in staged_maxes.items():
            self._raise(client_id, name, weight)
        return log_id

    def completions_for(self, client_id: str) -> list[dict[str, Any]]:
        return [dict(c) for c in self._completions if c["client_id"] == client_id]

    async def get_log_client(self, workout_log_id: str) -> str | None:
        log = self._logs.get(workout_log_id)
        return log["client_id"] if log else None

    async def upsert_sets(self, workout_log_id: str, sets: Sequence[SetLogEntry]) -> int:
        for entry in sets:
            self._sets[(workout_log_id, entry.exercise_id, entry.set_number)] = entry
        return len(sets)

    async def raise_one_rep_max(self, client_id: str, exercise_name: str, estimate: float) -> None:
        self._raise(client_id, exercise_name, round_to_half_kg(estimate))

    def _raise(self, client_id: str, exercise_name: str, weight: float) -> None:
        current = self._maxes.get((client_id, exercise_name))
        if current is None or weight > current["weight_kg"]:
            self._maxes[(client_id, exercise_name)] = {
                "exercise_name": exercise_name,
                "weight_kg": weight,
                "updated_at": _utc_now(),
            }

    async def list_one_rep_maxes(self, client_id: str) -> list[dict[str, Any]]:
        return [
            dict(row)
            for (owner, _), row in sorted(self._maxes.items())
            if owner == client_id
        ]

    async def tonnage_since(self, client_id: str, since: datetime) -> int:
        cutoff = _naive_utc(since)
        logs = {
            log_id
            for log_id, log in self._logs.items()
            if log["client_id"] == client_id and log["completed_at"] >= cutoff
        }
        total = sum(
            set_volume(entry.weight_kg, entry.reps_completed)
            for (log_id, _, _), entry in self._sets.items()
            if log_id in logs
        )
        return round_half_up(total)
