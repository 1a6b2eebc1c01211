"""
Session lifecycle: create, update, start and delete training sessions.

Each function expects to run inside ``atomic(session)``: it validates, mutates
the session row, adjusts the credit ledger through the reservation protocol
and appends the audit entry, all in one unit of work. Nothing here commits.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlmodel import Session

from pawdesk.errors import NotFoundError, ValidationFailedError
from pawdesk.models.client import Client
from pawdesk.models.client_note import ClientNote
from pawdesk.models.dog import Dog
from pawdesk.models.dog_log import DogLog
from pawdesk.models.training_session import SessionStatus, TrainingSession
from pawdesk.services import audit_trail
from pawdesk.services.credit_ledger import reserve_credit
from pawdesk.services.reservation import (
    change_session_package,
    release_session_package,
    reserve_for_new_session,
)
from pawdesk.services.trainer_policy import get_trainer, resolve_or_create_default_trainer
from pawdesk.utils.session_notes import append_note, clean_text

logger = logging.getLogger(__name__)

ENTITY_SESSION = "session"

NO_UPDATE_MESSAGE = "Provide at least one field to update."

# Patch keys that only steer how other fields are applied
_MODIFIER_KEYS = {"link_note_to_dog"}


@dataclass
class SessionUpdateResult:
    objectives: List[str]
    session_note: Optional[str]
    title: Optional[str]
    changed_fields: List[str]


def has_recognized_update(changes: Dict[str, Any]) -> bool:
    return any(key not in _MODIFIER_KEYS for key in changes)


def get_training_session(session: Session, session_id: int) -> TrainingSession:
    row = session.get(TrainingSession, session_id)
    if not row:
        raise NotFoundError("Session not found.")
    return row


def create_training_session(
    session: Session,
    *,
    dog_id: int,
    start_time: datetime,
    duration_minutes: int,
    location: str,
    title: Optional[str] = None,
    trainer_id: Optional[int] = None,
    client_id: Optional[int] = None,
    status: str = SessionStatus.SCHEDULED.value,
    notes: Optional[str] = None,
    objectives: Optional[List[str]] = None,
    package_id: Optional[int] = None,
) -> TrainingSession:
    """Book a session and, when a package is given, reserve one credit on it."""
    dog = session.get(Dog, dog_id)
    if not dog:
        raise NotFoundError("Dog not found.")

    if client_id is not None and not session.get(Client, client_id):
        raise NotFoundError("Client not found.")

    trainer = resolve_or_create_default_trainer(session, trainer_id)
    effective_client_id = client_id if client_id is not None else dog.client_id

    package = None
    if package_id is not None:
        package = reserve_for_new_session(session, package_id, effective_client_id)

    row = TrainingSession(
        dog_id=dog.id,
        client_id=effective_client_id,
        trainer_id=trainer.id,
        start_time=start_time,
        duration_minutes=duration_minutes,
        location=location,
        status=SessionStatus(status).value,
        objectives=list(objectives or []),
        title=clean_text(title),
        notes=clean_text(notes),
        package_id=package.id if package else None,
        travel_minutes=0,
        buffer_minutes=0,
    )
    session.add(row)
    session.flush()  # Get the ID

    if package is not None:
        reserve_credit(session, package.id)
        audit_trail.record(
            session,
            audit_trail.SESSION_CREATED_PACKAGE_RESERVED,
            ENTITY_SESSION,
            row.id,
            f"Session created, package slot reserved: {package.type or 'Package'}",
        )

    logger.info("Created session %s for dog %s (trainer %s, package %s)", row.id, dog.id, trainer.id, row.package_id)
    return row


def update_training_session(session: Session, session_id: int, changes: Dict[str, Any]) -> SessionUpdateResult:
    """
    Apply a sparse patch to a session.

    ``changes`` holds only the fields the caller supplied (snake_case keys, as
    produced by ``model_dump(exclude_unset=True)``). Package reassignment runs
    through the reservation protocol; every other field is a plain overwrite,
    except ``objective`` and ``note`` which append.
    """
    if not has_recognized_update(changes):
        raise ValidationFailedError(NO_UPDATE_MESSAGE)

    row = get_training_session(session, session_id)

    trainer_id = changes.get("trainer_id")
    if trainer_id is not None and trainer_id != row.trainer_id:
        get_trainer(session, trainer_id)

    changed: List[str] = []

    # Package first: it is the only change that can still be rejected
    if "package_id" in changes:
        package_change = change_session_package(session, row, changes["package_id"])
        if package_change.changed:
            changed.append("package_id")

    if "objectives" in changes:
        objectives = list(changes["objectives"] or [])
        if objectives != list(row.objectives or []):
            row.objectives = objectives
            changed.append("objectives")
    elif changes.get("objective") is not None:
        row.objectives = list(row.objectives or []) + [changes["objective"]]
        changed.append("objectives")

    notes = row.notes
    notes_touched = False
    if "session_note" in changes:
        notes = clean_text(changes["session_note"])
        notes_touched = True

    standalone_note = clean_text(changes.get("note"))
    link_note_to_dog = bool(changes.get("link_note_to_dog"))
    if standalone_note and not link_note_to_dog:
        notes = append_note(notes, standalone_note)
        notes_touched = True

    if notes_touched and notes != row.notes:
        row.notes = notes
        changed.append("notes")

    title = clean_text(changes.get("title"))
    if "title" in changes and title != row.title:
        row.title = title
        changed.append("title")

    for field in ("start_time", "duration_minutes", "location", "trainer_id", "travel_minutes", "buffer_minutes"):
        if changes.get(field) is not None and changes[field] != getattr(row, field):
            setattr(row, field, changes[field])
            changed.append(field)

    status = changes.get("status")
    if status is not None and SessionStatus(status).value != row.status:
        row.status = SessionStatus(status).value
        changed.append("status")

    session.add(row)

    if changed:
        audit_trail.record(
            session,
            audit_trail.SESSION_UPDATED,
            ENTITY_SESSION,
            row.id,
            f"Session updated: {', '.join(changed)}",
        )

    if standalone_note and link_note_to_dog:
        session.add(DogLog(dog_id=row.dog_id, summary=standalone_note))
        note_client_id = row.effective_client_id
        if note_client_id is not None:
            session.add(ClientNote(client_id=note_client_id, body=standalone_note))

    session.flush()
    return SessionUpdateResult(
        objectives=list(row.objectives or []),
        session_note=row.notes,
        title=row.title,
        changed_fields=changed,
    )


def start_training_session(session: Session, session_id: int) -> TrainingSession:
    """Mark a session as in progress."""
    row = get_training_session(session, session_id)
    row.status = SessionStatus.IN_PROGRESS.value
    session.add(row)
    audit_trail.record(session, audit_trail.SESSION_STARTED, ENTITY_SESSION, row.id, "Session started")
    return row


def delete_training_session(session: Session, session_id: int) -> bool:
    """Delete a session, releasing its package credit. Returns whether a credit was released."""
    row = get_training_session(session, session_id)

    released = release_session_package(session, row)
    session.delete(row)
    audit_trail.record(
        session,
        audit_trail.SESSION_DELETED,
        ENTITY_SESSION,
        session_id,
        "Session deleted, package slot released" if released else "Session deleted",
    )
    session.flush()
    return released
