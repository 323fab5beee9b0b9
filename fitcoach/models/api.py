"""API request/response schemas for FastAPI endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=320)
    password: str = Field(min_length=1, max_length=128)


class ImpersonateRequest(BaseModel):
    orgId: str | None = None  # noqa: N815


class SetLogEntry(BaseModel):
    exercise_id: str
    set_number: int = Field(ge=1)
    weight_kg: float | None = Field(default=None, ge=0)
    reps_completed: int | None = Field(default=None, ge=0)


class ExerciseRef(BaseModel):
    id: str
    exercise_name: str


class CoachingUpdateRequest(BaseModel):
    workoutLogId: str  # noqa: N815
    sets: list[SetLogEntry] = []


class CoachingCompleteRequest(BaseModel):
    clientId: str  # noqa: N815
    workoutId: str | None = None  # noqa: N815
    clientProgramId: str | None = None  # noqa: N815
    sessionNotes: str | None = None  # noqa: N815
    setLogs: list[SetLogEntry] = []  # noqa: N815
    exercises: list[ExerciseRef] = []


class BillingStatusResponse(BaseModel):
    organizationId: str  # noqa: N815
    status: str
    tier: str | None = None
    trialEndsAt: datetime | None = None  # noqa: N815
    trialDaysRemaining: int | None = None  # noqa: N815
    expired: bool = False


class ProgramSet(BaseModel):
    setNumber: int = Field(ge=1)  # noqa: N815
    reps: str | None = None
    intensityType: str | None = None  # noqa: N815
    intensityValue: str | None = None  # noqa: N815
    restSeconds: int | None = Field(default=None, ge=0)  # noqa: N815
    restBracket: str = "90-120"  # noqa: N815
    weightType: str = "freeweight"  # noqa: N815
    notes: str | None = None


class ProgramExercise(BaseModel):
    exerciseId: str  # noqa: N815
    exerciseName: str  # noqa: N815
    order: int = 0
    notes: str | None = None
    supersetGroup: str | None = None  # noqa: N815
    sets: list[ProgramSet] = []


class ProgramWorkout(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    dayOfWeek: int | None = Field(default=None, ge=0, le=6)  # noqa: N815
    order: int = 0
    notes: str | None = None
    isEmom: bool = False  # noqa: N815
    emomInterval: int | None = Field(default=None, ge=1)  # noqa: N815
    exercises: list[ProgramExercise] = []


class ProgramRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    durationWeeks: int | None = Field(default=None, ge=1)  # noqa: N815
    isActive: bool = True  # noqa: N815
    workouts: list[ProgramWorkout] = []


class ProgramResponse(BaseModel):
    id: str
    name: str
    description: str | None = None
    category: str | None = None
    difficulty: str | None = None
    duration_weeks: int | None = None
    is_active: bool = True
    workouts: list[dict[str, Any]] = []
    created_at: datetime
    updated_at: datetime
