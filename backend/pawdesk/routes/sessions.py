"""
Training session endpoints.

Create / update / delete run the reservation protocol: a session linked to a
package holds exactly one credit on it. Every mutation is one unit of work, so
on any error response the session row, the ledger and the audit trail are
exactly as they were before the request.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from pydantic import Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from sqlmodel import Session

from pawdesk.database import get_session
from pawdesk.models.training_session import SessionStatus, TrainingSession
from pawdesk.services.credit_ledger import remaining_credits
from pawdesk.services.session_lifecycle import (
    NO_UPDATE_MESSAGE,
    create_training_session,
    delete_training_session,
    get_training_session,
    has_recognized_update,
    start_training_session,
    update_training_session,
)
from pawdesk.utils.api_models import CamelModel, parse_start_time
from pawdesk.utils.request_guards import handled_unit_of_work
from pawdesk.utils.session_notes import join_legacy_notes

router = APIRouter()


def _clean_objectives(values: Optional[List[str]]) -> Optional[List[str]]:
    if values is None:
        return None
    cleaned = [v.strip() for v in values]
    if any(not v for v in cleaned):
        raise ValueError("Objectives cannot be empty entries.")
    return cleaned


class SessionCreate(CamelModel):
    dog_id: int
    title: Optional[str] = None
    trainer_id: Optional[int] = None
    client_id: Optional[int] = None
    start_time: datetime
    duration_minutes: int
    location: str
    status: SessionStatus = SessionStatus.SCHEDULED
    notes: Optional[str] = None
    objectives: List[str] = Field(default_factory=list)
    package_id: Optional[int] = None

    @field_validator("start_time", mode="before")
    @classmethod
    def validate_start_time(cls, v):
        return parse_start_time(v)

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v < 1:
            raise ValueError("Duration must be at least 1 minute")
        return v

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        if not v or not v.strip():
            raise ValueError("Location is required")
        return v.strip()

    @field_validator("objectives")
    @classmethod
    def validate_objectives(cls, v):
        return _clean_objectives(v) or []


class SessionUpdate(CamelModel):
    objective: Optional[str] = None
    objectives: Optional[List[str]] = None
    note: Optional[str] = None
    link_note_to_dog: bool = False
    title: Optional[str] = None
    session_note: Optional[str] = None
    start_time: Optional[datetime] = None
    duration_minutes: Optional[int] = None
    location: Optional[str] = None
    status: Optional[SessionStatus] = None
    trainer_id: Optional[int] = None
    travel_minutes: Optional[int] = None
    buffer_minutes: Optional[int] = None
    package_id: Optional[int] = None

    @field_validator("objective")
    @classmethod
    def validate_objective(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Objective cannot be empty.")
        return v.strip() if v is not None else v

    @field_validator("objectives")
    @classmethod
    def validate_objectives(cls, v):
        return _clean_objectives(v)

    @field_validator("note")
    @classmethod
    def validate_note(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Note cannot be empty.")
        return v.strip() if v is not None else v

    @field_validator("start_time", mode="before")
    @classmethod
    def validate_start_time(cls, v):
        return parse_start_time(v, required_message="Start time must be provided when updating.")

    @field_validator("duration_minutes")
    @classmethod
    def validate_duration(cls, v):
        if v is not None and v < 1:
            raise ValueError("Duration must be at least 1 minute.")
        return v

    @field_validator("location")
    @classmethod
    def validate_location(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Location cannot be empty when provided.")
        return v.strip() if v is not None else v

    @field_validator("travel_minutes")
    @classmethod
    def validate_travel(cls, v):
        if v is not None and v < 0:
            raise ValueError("Travel minutes cannot be negative.")
        return v

    @field_validator("buffer_minutes")
    @classmethod
    def validate_buffer(cls, v):
        if v is not None and v < 0:
            raise ValueError("Buffer minutes cannot be negative.")
        return v

    @model_validator(mode="after")
    def validate_has_update(self):
        # Only title, sessionNote and packageId accept an explicit null
        for name in ("objective", "objectives", "note", "start_time", "duration_minutes", "location", "status",
                     "trainer_id", "travel_minutes", "buffer_minutes"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null.")
        if not has_recognized_update(self.changes()):
            raise ValueError(NO_UPDATE_MESSAGE)
        return self

    def changes(self) -> dict:
        return self.model_dump(exclude_unset=True)


class SessionRef(CamelModel):
    id: int
    dog_id: int
    trainer_id: int


class SessionCreateResponse(CamelModel):
    session: SessionRef


class SessionUpdateResponse(CamelModel):
    updated: bool = True
    objectives: List[str]
    session_note: Optional[str] = None
    title: Optional[str] = None


class SuccessResponse(CamelModel):
    success: bool = True


class PackageSummary(CamelModel):
    id: int
    type: str
    total_credits: int
    used_credits: int
    remaining_credits: int


class SessionDetail(CamelModel):
    id: int
    dog_id: int
    client_id: Optional[int] = None
    trainer_id: int
    start_time: datetime
    duration_minutes: int
    location: str
    status: SessionStatus
    objectives: List[str]
    title: Optional[str] = None
    session_note: Optional[str] = None
    notes: Optional[str] = None  # title + body in the legacy combined form
    package_id: Optional[int] = None
    package: Optional[PackageSummary] = None
    travel_minutes: int
    buffer_minutes: int


def _session_to_detail(row: TrainingSession) -> SessionDetail:
    package = None
    if row.package is not None:
        package = PackageSummary(
            id=row.package.id,
            type=row.package.type,
            total_credits=row.package.total_credits,
            used_credits=row.package.used_credits,
            remaining_credits=remaining_credits(row.package),
        )
    return SessionDetail(
        id=row.id,
        dog_id=row.dog_id,
        client_id=row.effective_client_id,
        trainer_id=row.trainer_id,
        start_time=row.start_time,
        duration_minutes=row.duration_minutes,
        location=row.location,
        status=SessionStatus(row.status),
        objectives=list(row.objectives or []),
        title=row.title,
        session_note=row.notes,
        notes=join_legacy_notes(row.title, row.notes),
        package_id=row.package_id,
        package=package,
        travel_minutes=row.travel_minutes,
        buffer_minutes=row.buffer_minutes,
    )


@router.post("/sessions", response_model=SessionCreateResponse, status_code=201)
def create_session(payload: SessionCreate, session: Session = Depends(get_session)):
    """Book a session; reserves one package credit when packageId is given"""
    with handled_unit_of_work(session, "POST /sessions", "Failed to create session."):
        row = create_training_session(session, **payload.model_dump())

    return SessionCreateResponse(session=SessionRef(id=row.id, dog_id=row.dog_id, trainer_id=row.trainer_id))


@router.get("/sessions/{session_id}", response_model=SessionDetail)
def get_session_detail(session_id: int, session: Session = Depends(get_session)):
    """Get a session with its package balance"""
    return _session_to_detail(get_training_session(session, session_id))


@router.patch("/sessions/{session_id}", response_model=SessionUpdateResponse)
def update_session(session_id: int, payload: SessionUpdate, session: Session = Depends(get_session)):
    """
    Apply a sparse patch to a session.

    Package reassignment releases the previously held credit and reserves the
    new one in the same transaction; a package owned by another client is
    rejected and none of the patch is applied.
    """
    with handled_unit_of_work(session, f"PATCH /sessions/{session_id}", "Failed to update session."):
        result = update_training_session(session, session_id, payload.changes())

    return SessionUpdateResponse(
        updated=True,
        objectives=result.objectives,
        session_note=result.session_note,
        title=result.title,
    )


@router.post("/sessions/{session_id}/start", response_model=SuccessResponse)
def start_session(session_id: int, session: Session = Depends(get_session)):
    """Mark a session as in progress"""
    with handled_unit_of_work(session, f"POST /sessions/{session_id}/start", "Failed to start session."):
        start_training_session(session, session_id)
    return SuccessResponse(success=True)


@router.delete("/sessions/{session_id}", response_model=SuccessResponse)
def delete_session(session_id: int, session: Session = Depends(get_session)):
    """Delete a session, releasing its package credit"""
    with handled_unit_of_work(session, f"DELETE /sessions/{session_id}", "Failed to delete session."):
        delete_training_session(session, session_id)
    return SuccessResponse(success=True)
