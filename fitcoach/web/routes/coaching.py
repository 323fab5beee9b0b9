"""Coaching API routes: clients, set logging, session completion and metrics.

Every route is scoped to the gate's effective organization; a client outside
it is reported as not found.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query

from fitcoach.coaching.metrics import best_estimates, period_start
from fitcoach.models.api import CoachingCompleteRequest, CoachingUpdateRequest
from fitcoach.models.domain import GateContext, Principal
from fitcoach.types import Role, TonnagePeriod
from fitcoach.web.auth.rbac import (
    acting_principal,
    require_principal,
    require_trainer,
    trainer_org_id,
)
from fitcoach.web.dependencies import Services, get_services

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["coaching"])


async def _ensure_client(services: Services, context: GateContext, client_id: str) -> None:
    client = await services.profiles.get_client(client_id, context.effective_org_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")


async def _ensure_can_view(services: Services, context: GateContext, client_id: str) -> None:
    principal = acting_principal(context)
    if principal.id == client_id:
        return
    if principal.role == Role.CLIENT:
        raise HTTPException(status_code=404, detail="Client not found")
    await _ensure_client(services, context, client_id)


@router.post("/api/coaching/update")
async def update_sets(
    body: CoachingUpdateRequest,
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    client_id = await services.workouts.get_log_client(body.workoutLogId)
    if client_id is None:
        raise HTTPException(status_code=404, detail="Workout log not found")
    await _ensure_client(services, context, client_id)

    updated = await services.workouts.upsert_sets(body.workoutLogId, body.sets)
    logger.info("sets_updated", workout_log_id=body.workoutLogId, count=updated)
    return {"success": True, "updated": updated}


@router.post("/api/coaching/complete")
async def complete_session(
    body: CoachingCompleteRequest,
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    trainer = acting_principal(context)
    await _ensure_client(services, context, body.clientId)

    estimates = best_estimates(body.setLogs)
    one_rep_maxes = {
        exercise.exercise_name: estimates[exercise.id]
        for exercise in body.exercises
        if estimates.get(exercise.id)
    }
    workout_log_id = await services.workouts.complete_session(
        client_id=body.clientId,
        trainer_id=trainer.id,
        sets=body.setLogs,
        one_rep_maxes=one_rep_maxes,
        workout_id=body.workoutId,
        client_program_id=body.clientProgramId,
        notes=body.sessionNotes,
    )

    logger.info(
        "session_completed",
        workout_log_id=workout_log_id,
        client_id=body.clientId,
        sets=len(body.setLogs),
    )
    return {"success": True, "workoutLogId": workout_log_id}


@router.get("/api/users/{client_id}/tonnage")
async def client_tonnage(
    client_id: str,
    period: str = Query(default=TonnagePeriod.WEEK),
    context: GateContext = Depends(require_principal),
    services: Services = Depends(get_services),
) -> dict[str, int]:
    await _ensure_can_view(services, context, client_id)
    since = period_start(period, datetime.now(UTC))
    return {"tonnage": await services.workouts.tonnage_since(client_id, since)}


@router.get("/api/users/{client_id}/1rms")
async def client_one_rep_maxes(
    client_id: str,
    context: GateContext = Depends(require_principal),
    services: Services = Depends(get_services),
) -> dict[str, list[dict[str, Any]]]:
    await _ensure_can_view(services, context, client_id)
    return {"data": await services.workouts.list_one_rep_maxes(client_id)}


def _client_summary(client: Principal) -> dict[str, Any]:
    return {
        "id": client.id,
        "email": client.email,
        "full_name": client.full_name,
        "role": str(client.role),
        "organization_id": client.organization_id,
    }


@router.get("/api/users")
async def list_clients(
    context: GateContext = Depends(require_trainer),
    services: Services = Depends(get_services),
) -> dict[str, list[dict[str, Any]]]:
    clients = await services.profiles.list_clients(trainer_org_id(context))
    return {"data": [_client_summary(client) for client in clients]}


@router.get("/api/users/{client_id}")
async def client_detail(
    client_id: str,
    context: GateContext = Depends(require_principal),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    principal = acting_principal(context)
    if principal.id == client_id:
        return _client_summary(principal)
    if principal.role == Role.CLIENT:
        raise HTTPException(status_code=404, detail="Client not found")
    client = await services.profiles.get_client(client_id, context.effective_org_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return _client_summary(client)
