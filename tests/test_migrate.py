"""Tests for the additive SQLite migrations."""

from sqlalchemy import inspect, text

from worklog.db.migrate import run_migrations
from worklog.db.session import Base, make_engine

from worklog import models  # noqa: F401


def test_old_schema_gains_new_columns(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'old.db'}")
    with engine.begin() as conn:
        conn.execute(text(
            "CREATE TABLE work_logs (id INTEGER PRIMARY KEY, user_id TEXT NOT NULL, project TEXT NOT NULL, "
            "start_iso TEXT NOT NULL, end_iso TEXT)"
        ))
        conn.execute(text(
            "CREATE TABLE task_logs (id INTEGER PRIMARY KEY, user_id TEXT NOT NULL, session_id INTEGER, "
            "title TEXT NOT NULL, note TEXT NOT NULL, start_iso TEXT NOT NULL, end_iso TEXT)"
        ))
        conn.execute(text(
            "INSERT INTO work_logs (user_id, project, start_iso) VALUES ('anna', 'Workday', '2024-05-02T05:00:00+00:00')"
        ))

    Base.metadata.create_all(bind=engine)
    run_migrations(engine)
    # Running twice is harmless.
    run_migrations(engine)

    inspector = inspect(engine)
    task_columns = {c["name"] for c in inspector.get_columns("task_logs")}
    assert {"is_call", "tags", "created_at"} <= task_columns
    work_columns = {c["name"] for c in inspector.get_columns("work_logs")}
    assert {"description", "created_at"} <= work_columns
    assert "ix_tags_user_name_unique" in {i["name"] for i in inspector.get_indexes("tags")}

    with engine.connect() as conn:
        created = conn.execute(text("SELECT created_at FROM work_logs")).scalar_one()
    assert created == "2024-05-02T05:00:00+00:00"


def test_fresh_schema_is_left_alone(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'fresh.db'}")
    Base.metadata.create_all(bind=engine)
    run_migrations(engine)
    assert "task_images" in inspect(engine).get_table_names()
