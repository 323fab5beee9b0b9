"""Service wiring and FastAPI dependency accessors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import structlog
from fastapi import Request

from fitcoach.gate.evaluator import AccessGate
from fitcoach.gate.impersonation import ImpersonationOverlay
from fitcoach.gate.policy import RoutePolicy
from fitcoach.gate.session import SessionAuth, SessionResolver
from fitcoach.storage.repositories.organizations import InMemoryOrganizationRepository
from fitcoach.storage.repositories.profiles import InMemoryProfileRepository
from fitcoach.storage.repositories.programs import InMemoryProgramRepository
from fitcoach.storage.repositories.workouts import InMemoryWorkoutRepository

if TYPE_CHECKING:
    from fitcoach.config.settings import Settings

logger = structlog.get_logger(__name__)


@dataclass
class Services:
    """Everything a request may need, built once per application."""

    profiles: Any
    organizations: Any
    workouts: Any
    programs: Any
    session_auth: SessionAuth
    gate: AccessGate


def _create_repositories(settings: Settings) -> tuple[Any, Any, Any, Any]:
    """Create the appropriate repositories based on settings."""
    rounds = settings.password_hash_rounds
    if settings.use_database:
        from fitcoach.storage.database import get_engine
        from fitcoach.storage.repositories.organizations import OrganizationRepository
        from fitcoach.storage.repositories.profiles import ProfileRepository
        from fitcoach.storage.repositories.programs import ProgramRepository
        from fitcoach.storage.repositories.workouts import WorkoutRepository

        engine = get_engine()
        return (
            ProfileRepository(engine, password_rounds=rounds),
            OrganizationRepository(engine),
            WorkoutRepository(engine),
            ProgramRepository(engine),
        )
    return (
        InMemoryProfileRepository(password_rounds=rounds),
        InMemoryOrganizationRepository(),
        InMemoryWorkoutRepository(),
        InMemoryProgramRepository(),
    )


def build_services(settings: Settings) -> Services:
    profiles, organizations, workouts, programs = _create_repositories(settings)
    session_auth = SessionAuth(
        secret_key=settings.secret_key,
        max_age=settings.session_max_age,
        rotation_grace=settings.session_rotation_grace,
    )
    gate = AccessGate(
        resolver=SessionResolver(session_auth, refresh_after=settings.session_refresh_after),
        profiles=profiles,
        organizations=organizations,
        overlay=ImpersonationOverlay.from_settings(organizations, settings),
        policy=RoutePolicy.from_settings(settings),
    )
    logger.debug("services_built", use_database=settings.use_database)
    return Services(
        profiles=profiles,
        organizations=organizations,
        workouts=workouts,
        programs=programs,
        session_auth=session_auth,
        gate=gate,
    )


def get_services(request: Request) -> Services:
    services: Services = request.app.state.services
    return services


def get_app_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings
