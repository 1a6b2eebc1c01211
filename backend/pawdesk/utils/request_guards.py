"""
Request guards shared by the route modules.

Wraps a handler body in a unit of work and maps failures the way every
mutating endpoint does: domain errors and HTTP errors pass through untouched,
anything else is logged and reported as a generic 500.
"""
import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from sqlmodel import Session

from pawdesk.database import atomic
from pawdesk.errors import PawdeskError

logger = logging.getLogger(__name__)


@contextmanager
def handled_unit_of_work(session: Session, operation: str, failure_message: str) -> Iterator[Session]:
    """
    Run the block inside ``atomic(session)``.

    Args:
        session: Request-scoped database session
        operation: Label used in the log line, e.g. "POST /sessions"
        failure_message: Message returned to the caller on unexpected errors

    Raises:
        PawdeskError / HTTPException: re-raised after rollback
        HTTPException 500: any other exception, after rollback and logging
    """
    try:
        with atomic(session):
            yield session
    except (PawdeskError, HTTPException):
        raise
    except Exception:
        logger.exception("%s failed", operation)
        raise HTTPException(status_code=500, detail=failure_message)
