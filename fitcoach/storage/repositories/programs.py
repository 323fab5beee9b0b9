"""Program repository: training programs owned by one organization.

Both stores keep the same dict-based interface. Every lookup is filtered by
organization, so a program from another tenant reads as missing.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import col, select
from sqlmodel.ext.asyncio.session import AsyncSession

from fitcoach.exceptions import UpstreamUnavailable
from fitcoach.models.database import Program, _new_uuid, _utc_now

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

logger = structlog.get_logger(__name__)

_UPDATABLE = ("name", "description", "category", "difficulty", "duration_weeks", "is_active")


def _to_dict(program: Program) -> dict[str, Any]:
    return {
        "id": program.id,
        "organization_id": program.organization_id,
        "name": program.name,
        "description": program.description,
        "category": program.category,
        "difficulty": program.difficulty,
        "duration_weeks": program.duration_weeks,
        "is_active": program.is_active,
        "workouts": json.loads(program.workouts_json or "[]"),
        "created_at": program.created_at,
        "updated_at": program.updated_at,
    }


class ProgramRepository:
    """PostgreSQL-backed program store."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    async def create(
        self,
        org_id: str,
        name: str,
        workouts: list[dict[str, Any]] | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        program = Program(
            organization_id=org_id,
            name=name,
            workouts_json=json.dumps(workouts or [], default=str),
            **{key: value for key, value in fields.items() if key in _UPDATABLE},
        )
        try:
            async with AsyncSession(self._engine) as session:
                session.add(program)
                await session.commit()
                await session.refresh(program)
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        logger.info("program_created", program_id=program.id, org_id=org_id)
        return _to_dict(program)

    async def list_all(self, org_id: str) -> list[dict[str, Any]]:
        try:
            async with AsyncSession(self._engine) as session:
                stmt = (
                    select(Program)
                    .where(col(Program.organization_id) == org_id)
                    .order_by(col(Program.created_at).desc())
                )
                result = await session.execute(stmt)
                return [_to_dict(p) for p in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc

    async def get(self, program_id: str, org_id: str) -> dict[str, Any] | None:
        try:
            async with AsyncSession(self._engine) as session:
                program = await self._owned(session, program_id, org_id)
                return _to_dict(program) if program else None
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc

    async def update(
        self,
        program_id: str,
        org_id: str,
        workouts: list[dict[str, Any]] | None = None,
        **updates: Any,
    ) -> dict[str, Any] | None:
        """Apply ``updates``; ``workouts``, when given, replaces the whole list."""
        try:
            async with AsyncSession(self._engine) as session:
                program = await self._owned(session, program_id, org_id)
                if program is None:
                    return None
                for key in _UPDATABLE:
                    if key in updates:
                        setattr(program, key, updates[key])
                if workouts is not None:
                    program.workouts_json = json.dumps(workouts, default=str)
                program.updated_at = _utc_now()
                session.add(program)
                await session.commit()
                await session.refresh(program)
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        logger.info("program_updated", program_id=program_id, org_id=org_id)
        return _to_dict(program)

    async def delete(self, program_id: str, org_id: str) -> bool:
        try:
            async with AsyncSession(self._engine) as session:
                program = await self._owned(session, program_id, org_id)
                if program is None:
                    return False
                await session.delete(program)
                await session.commit()
        except SQLAlchemyError as exc:
            raise UpstreamUnavailable(str(exc)) from exc
        logger.info("program_deleted", program_id=program_id, org_id=org_id)
        return True

    @staticmethod
    async def _owned(session: AsyncSession, program_id: str, org_id: str) -> Program | None:
        stmt = select(Program).where(
            col(Program.id) == program_id,
            col(Program.organization_id) == org_id,
        )
        result = await session.execute(stmt)
        return result.scalars().first()


class InMemoryProgramRepository:
    """In-memory fallback for dev/testing without a database."""

    def __init__(self) -> None:
        self._programs: dict[str, dict[str, Any]] = {}

    async def create(
        self,
        org_id: str,
        name: str,
        workouts: list[dict[str, Any]] | None = None,
        **fields: Any,
    ) -> dict[str, Any]:
        now = _utc_now()
        program = {
            "id": _new_uuid(),
            "organization_id": org_id,
            "name": name,
            "description": None,
            "category": None,
            "difficulty": None,
            "duration_weeks": None,
            "is_active": True,
            "workouts": list(workouts or []),
            "created_at": now,
            "updated_at": now,
        }
        program.update({key: value for key, value in fields.items() if key in _UPDATABLE})
        self._programs[program["id"]] = program
        logger.info("program_created", program_id=program["id"], org_id=org_id)
        return dict(program)

    async def list_all(self, org_id: str) -> list[dict[str, Any]]:
        owned = [dict(p) for p in self._programs.values() if p["organization_id"] == org_id]
        return sorted(owned, key=lambda p: p["created_at"], reverse=True)

    async def get(self, program_id: str, org_id: str) -> dict[str, Any] | None:
        program = self._programs.get(program_id)
        if program and program["organization_id"] == org_id:
            return dict(program)
        return None

    async def update(
        self,
        program_id: str,
        org_id: str,
        workouts: list[dict[str, Any]] | None = None,
        **updates: Any,
    ) -> dict[str, Any] | None:
        program = self._programs.get(program_id)
        if program is None or program["organization_id"] != org_id:
            return None
        program.update({key: value for key, value in updates.items() if key in _UPDATABLE})
        if workouts is not None:
            program["workouts"] = list(workouts)
        program["updated_at"] = _utc_now()
        return dict(program)

    async def delete(self, program_id: str, org_id: str) -> bool:
        program = self._programs.get(program_id)
        if program and program["organization_id"] == org_id:
            del self._programs[program_id]
            logger.info("program_deleted", program_id=program_id, org_id=org_id)
            return True
        return False
