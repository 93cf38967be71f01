"""Small, idempotent SQLite migrations run at startup."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

logger = logging.getLogger(__name__)

# Columns added after the first release. Only additive changes live here.
TASK_LOG_COLUMNS: dict[str, str] = {
    "is_call": "INTEGER DEFAULT 0 NOT NULL",
    "tags": "TEXT",
    "created_at": "TEXT",
}
WORK_LOG_COLUMNS: dict[str, str] = {
    "description": "TEXT",
    "created_at": "TEXT",
}
TASK_IMAGE_COLUMNS: dict[str, str] = {
    "content_type": "TEXT",
    "size": "INTEGER",
}


def _column_names(engine: Engine, table: str) -> set[str]:
    with engine.connect() as conn:
        return {record["name"] for record in conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()}


def _add_column_sqlite(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def _ensure_columns(engine: Engine, table: str, needed: dict[str, str]) -> None:
    existing = _column_names(engine, table)
    if not existing:
        # Table absent; Base.metadata.create_all builds the fresh schema.
        return
    for name, dtype in needed.items():
        if name not in existing:
            logger.info("migrate.add_column", extra={"extra_data": {"table": table, "column": name}})
            _add_column_sqlite(engine, table, f"{name} {dtype}")


def run_migrations(engine: Engine) -> None:
    """Bring an existing SQLite schema up to date with the models."""

    if engine.dialect.name != "sqlite":
        return

    _ensure_columns(engine, "work_logs", WORK_LOG_COLUMNS)
    _ensure_columns(engine, "task_logs", TASK_LOG_COLUMNS)
    _ensure_columns(engine, "task_images", TASK_IMAGE_COLUMNS)

    with engine.begin() as conn:
        conn.execute(text("UPDATE work_logs SET created_at = start_iso WHERE created_at IS NULL"))
        conn.execute(text("UPDATE task_logs SET created_at = start_iso WHERE created_at IS NULL"))

    if _column_names(engine, "tags"):
        _create_index_if_not_exists(engine, "tags", "ix_tags_user_name_unique", ["user_id", "name"], unique=True)
