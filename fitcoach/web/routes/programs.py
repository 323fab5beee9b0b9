"""Program CRUD API routes, scoped to the caller's effective organization."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException

from fitcoach.models.api import ProgramRequest, ProgramResponse
from fitcoach.models.domain import GateContext
from fitcoach.web.auth.rbac import require_trainer, trainer_org_id
from fitcoach.web.dependencies import Services, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/programs", tags=["programs"])


def _fields(body: ProgramRequest) -> dict[str, Any]:
    return {
        "description": body.description.strip() if body.description else None,
        "category": body.category,
        "difficulty": body.difficulty,
        "duration_weeks": body.durationWeeks,
        "is_active": body.isActive,
    }


@router.get("", response_model=list[ProgramResponse])
async def list_programs(
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> list[dict[str, Any]]:
    return await services.programs.list_all(trainer_org_id(context))


@router.post("", status_code=201)
async def create_program(
    body: ProgramRequest,
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    program = await services.programs.create(
        trainer_org_id(context),
        body.name.strip(),
        workouts=[workout.model_dump() for workout in body.workouts],
        **_fields(body),
    )
    return {"success": True, "programId": program["id"]}


@router.get("/{program_id}", response_model=ProgramResponse)
async def get_program(
    program_id: str,
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    program = await services.programs.get(program_id, trainer_org_id(context))
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")
    return program


@router.put("/{program_id}", response_model=ProgramResponse)
async def update_program(
    program_id: str,
    body: ProgramRequest,
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    program = await services.programs.update(
        program_id,
        trainer_org_id(context),
        workouts=[workout.model_dump() for workout in body.workouts],
        name=body.name.strip(),
        **_fields(body),
    )
    if not program:
        raise HTTPException(status_code=404, detail="Program not found")
    return program


@router.delete("/{program_id}")
async def delete_program(
    program_id: str,
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> dict[str, bool]:
    deleted = await services.programs.delete(program_id, trainer_org_id(context))
    if not deleted:
        raise HTTPException(status_code=404, detail="Program not found")
    return {"success": True}
