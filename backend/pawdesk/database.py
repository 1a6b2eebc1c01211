from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Iterator, Optional

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from pawdesk import config
from pawdesk.errors import DatabaseNotConfiguredError


def _build_engine(url: str) -> Optional[Engine]:
    if not url:
        return None

    is_sqlite = url.startswith("sqlite")
    connect_args = {"check_same_thread": False} if is_sqlite else {}

    if is_sqlite and url not in ("sqlite://", "sqlite:///:memory:"):
        db_path = url.replace("sqlite:///", "", 1)
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    return create_engine(url, echo=config.SQL_ECHO, connect_args=connect_args)


engine: Optional[Engine] = _build_engine(config.DATABASE_URL)


def is_database_configured() -> bool:
    return engine is not None


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    if not is_database_configured():
        raise DatabaseNotConfiguredError()
    with Session(engine) as session:
        yield session


@contextmanager
def atomic(session: Session) -> Iterator[Session]:
    """Unit of work: commit everything written inside the block, or nothing.

    Session rows, ledger adjustments, materialized packages and audit entries
    all go through the same ``Session``; any exception rolls them back together.
    """
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise


def import_models() -> None:
    # Import all models to ensure they're registered with SQLModel metadata
    from pawdesk.models.audit_log import AuditLog  # noqa: F401
    from pawdesk.models.client import Client  # noqa: F401
    from pawdesk.models.client_note import ClientNote  # noqa: F401
    from pawdesk.models.dog import Dog  # noqa: F401
    from pawdesk.models.dog_log import DogLog  # noqa: F401
    from pawdesk.models.package import Package  # noqa: F401
    from pawdesk.models.training_session import TrainingSession  # noqa: F401
    from pawdesk.models.user import User  # noqa: F401


def init_db() -> None:
    """Initialize database - create all tables"""
    if not is_database_configured():
        return
    import_models()
    SQLModel.metadata.create_all(engine)
