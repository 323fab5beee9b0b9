"""SQLModel database table models."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Return current UTC time as naive datetime for TIMESTAMP WITHOUT TIME ZONE columns."""
    return datetime.now(UTC).replace(tzinfo=None)


def _new_uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Tenancy
# ---------------------------------------------------------------------------


class Organization(SQLModel, table=True):
    __tablename__ = "organizations"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    name: str
    subscription_status: str = Field(default="trialing")  # trialing | active | expired | canceled
    subscription_tier: str | None = None
    trial_ends_at: datetime | None = None
    stripe_customer_id: str | None = None
    stripe_subscription_id: str | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Profile(SQLModel, table=True):
    __tablename__ = "profiles"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    email: str = Field(index=True, unique=True)
    full_name: str = ""
    role: str = Field(default="client")  # client | trainer | super_admin
    organization_id: str | None = Field(default=None, foreign_key="organizations.id", index=True)
    password_hash: str | None = None  # bcrypt; no hash means no password sign-in
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Programs
# ---------------------------------------------------------------------------


class Program(SQLModel, table=True):
    __tablename__ = "programs"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    organization_id: str = Field(foreign_key="organizations.id", index=True)
    name: str
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    duration_weeks: int | None = None
    is_active: bool = Field(default=True)
    workouts_json: str = "[]"  # JSON list of workouts with exercises and sets
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Coaching
# ---------------------------------------------------------------------------


class WorkoutLog(SQLModel, table=True):
    __tablename__ = "workout_logs"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    client_id: str = Field(foreign_key="profiles.id", index=True)
    trainer_id: str | None = Field(default=None, foreign_key="profiles.id")
    workout_id: str | None = None
    client_program_id: str | None = None
    notes: str | None = None
    scheduled_date: date | None = None
    completed_at: datetime = Field(default_factory=_utc_now, index=True)


class WorkoutCompletion(SQLModel, table=True):
    __tablename__ = "workout_completions"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    client_id: str = Field(foreign_key="profiles.id", index=True)
    workout_id: str | None = None
    client_program_id: str | None = None
    workout_log_id: str = Field(foreign_key="workout_logs.id", index=True)
    scheduled_date: date | None = None
    completed_at: datetime = Field(default_factory=_utc_now)


class SetLog(SQLModel, table=True):
    __tablename__ = "set_logs"
    __table_args__ = (
        UniqueConstraint("workout_log_id", "exercise_id", "set_number", name="uq_set_logs_key"),
    )

    id: int | None = Field(default=None, primary_key=True)
    workout_log_id: str = Field(foreign_key="workout_logs.id", index=True)
    exercise_id: str
    set_number: int
    weight_kg: float | None = None
    reps_completed: int | None = None


class ClientOneRepMax(SQLModel, table=True):
    __tablename__ = "client_one_rep_maxes"
    __table_args__ = (
        UniqueConstraint("client_id", "exercise_name", name="uq_client_one_rep_maxes_key"),
    )

    id: int | None = Field(default=None, primary_key=True)
    client_id: str = Field(foreign_key="profiles.id", index=True)
    exercise_name: str
    weight_kg: float
    updated_at: datetime = Field(default_factory=_utc_now)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------


class AuditLog(SQLModel, table=True):
    __tablename__ = "audit_logs"

    id: str = Field(default_factory=_new_uuid, primary_key=True)
    org_id: str | None = Field(default=None, index=True)
    user_id: str = Field(index=True)
    action: str
    resource_type: str = ""
    resource_id: str = ""
    details_json: str = "{}"
    ip_address: str = ""
    request_id: str = ""
    created_at: datetime = Field(default_factory=_utc_now)
