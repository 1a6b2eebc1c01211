"""
Startup schema patch for databases created before titles and templates had
their own columns.

Older databases packed a session's title into its notes (``"<title>\\n\\n<body>"``)
and parked package templates under a client named ``"__TEMPLATES__"``. The
functions here add the explicit ``title`` / ``is_template`` columns when they
are missing and move legacy data into them. All of them are idempotent and
safe to run at every startup.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

from pawdesk.utils.session_notes import split_legacy_notes

logger = logging.getLogger(__name__)

LEGACY_TEMPLATE_CLIENT_NAME = "__TEMPLATES__"

# (name, sqlite_type, postgres_type, default)
REQUIRED_SESSION_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("title", "TEXT", "TEXT", "DEFAULT NULL"),
]

REQUIRED_PACKAGE_COLUMNS: List[Tuple[str, str, str, str]] = [
    ("is_template", "INTEGER", "BOOLEAN", "DEFAULT FALSE"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _table_exists(engine: Engine, table_name: str) -> bool:
    if _is_sqlite(engine):
        sql = "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"
    else:
        sql = """
        SELECT 1 FROM information_schema.tables
        WHERE table_schema = 'public' AND table_name = :table_name
        """
    with engine.connect() as conn:
        return conn.execute(text(sql), {"table_name": table_name}).fetchone() is not None


def _get_existing_columns(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        if _is_sqlite(engine):
            # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
            for row in conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall():
                cols[str(row[1])] = str(row[2])
        else:
            res = conn.execute(
                text(
                    """
                    SELECT column_name, data_type
                    FROM information_schema.columns
                    WHERE table_schema = 'public' AND table_name = :table_name;
                    """
                ),
                {"table_name": table_name},
            ).fetchall()
            for row in res:
                cols[str(row[0])] = str(row[1])
    return cols


def _ensure_columns(engine: Engine, table: str, required: List[Tuple[str, str, str, str]]) -> List[str]:
    """Add any missing columns to ``table``. Returns the names that were added."""
    if not _table_exists(engine, table):
        # create_all will build it with every column
        return []

    existing = _get_existing_columns(engine, table)
    added: List[str] = []
    with engine.begin() as conn:
        for name, sqlite_type, pg_type, default in required:
            if name in existing:
                continue
            if _is_sqlite(engine):
                # SQLite has no IF NOT EXISTS for ADD COLUMN and no FALSE literal on older versions
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {name} {sqlite_type} {default.replace('FALSE', '0')};"))
            else:
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {name} {pg_type} {default};"))
            added.append(name)
    if added:
        logger.info("Added columns to %s: %s", table, ", ".join(added))
    return added


def ensure_session_columns(engine: Engine) -> None:
    """Idempotently adds the explicit ``title`` column to the session table."""
    try:
        from pawdesk.models.training_session import TrainingSession

        _ensure_columns(engine, TrainingSession.__table__.name, REQUIRED_SESSION_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure session columns (this is OK if table doesn't exist yet): {e}")


def ensure_package_columns(engine: Engine) -> None:
    """Idempotently adds the ``is_template`` flag to the package table."""
    try:
        from pawdesk.models.package import Package

        _ensure_columns(engine, Package.__table__.name, REQUIRED_PACKAGE_COLUMNS)
    except Exception as e:
        logger.warning(f"Failed to ensure package columns (this is OK if table doesn't exist yet): {e}")


def backfill_session_titles(engine: Engine) -> int:
    """
    Move titles embedded in legacy notes into the ``title`` column.

    Only rows without a title are touched; their notes keep just the body.
    Returns the number of sessions updated.
    """
    from pawdesk.models.training_session import TrainingSession

    table = TrainingSession.__table__.name
    updated = 0
    try:
        with engine.begin() as conn:
            rows = conn.execute(
                text(f"SELECT id, notes FROM {table} WHERE title IS NULL AND notes IS NOT NULL")
            ).fetchall()
            for session_id, notes in rows:
                title, body = split_legacy_notes(notes)
                if not title:
                    continue
                conn.execute(
                    text(f"UPDATE {table} SET title = :title, notes = :body WHERE id = :id"),
                    {"title": title, "body": body, "id": session_id},
                )
                updated += 1
    except Exception as e:
        logger.warning(f"Failed to backfill session titles: {e}")
        return 0

    if updated:
        logger.info("Backfilled titles for %d legacy sessions", updated)
    return updated


def backfill_template_flags(engine: Engine) -> int:
    """
    Convert packages owned by the legacy ``"__TEMPLATES__"`` client into
    templates (``is_template`` set, no owning client).

    Returns the number of packages converted.
    """
    from pawdesk.models.client import Client
    from pawdesk.models.package import Package

    client_table = Client.__table__.name
    package_table = Package.__table__.name
    try:
        with engine.begin() as conn:
            sentinel_ids = [
                row[0]
                for row in conn.execute(
                    text(f"SELECT id FROM {client_table} WHERE name = :name"),
                    {"name": LEGACY_TEMPLATE_CLIENT_NAME},
                ).fetchall()
            ]
            converted = 0
            for client_id in sentinel_ids:
                result = conn.execute(
                    text(f"UPDATE {package_table} SET is_template = :flag, client_id = NULL WHERE client_id = :client_id"),
                    {"flag": True, "client_id": client_id},
                )
                converted += result.rowcount or 0
    except Exception as e:
        logger.warning(f"Failed to backfill template flags: {e}")
        return 0

    if converted:
        logger.info("Converted %d legacy template packages", converted)
    return converted
