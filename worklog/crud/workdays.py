"""CRUD helpers for workday sessions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.errors import StateConflict
from ..models.task_log import TaskLog
from ..models.work_log import WorkLog
from ..services.storage import remove_task_images
from ..services.timecalc import parse_iso, to_storage_iso

logger = logging.getLogger(__name__)


def _utcnow() -> str:
    return to_storage_iso(datetime.now(timezone.utc))


def normalize_timestamp(value: object, field: str) -> str:
    """Validate a client supplied timestamp and convert it to storage form."""

    try:
        dt = parse_iso(value, settings.TZ)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{field} must be an ISO-8601 timestamp") from exc
    if dt is None:
        raise ValueError(f"{field} is required")
    return to_storage_iso(dt)


def _log(event: str, workday: WorkLog) -> None:
    logger.info(
        event,
        extra={
            "extra_data": {
                "workday_id": workday.id,
                "user_id": workday.user_id,
                "start_iso": workday.start_iso,
                "end_iso": workday.end_iso,
            }
        },
    )


def get_active_workday(db: Session, user_id: str) -> WorkLog | None:
    stmt = (
        select(WorkLog)
        .where(WorkLog.user_id == user_id, WorkLog.end_iso.is_(None))
        .order_by(desc(WorkLog.start_iso))
        .limit(1)
    )
    return db.execute(stmt).scalars().first()


def get_workday(db: Session, user_id: str, workday_id: int) -> WorkLog | None:
    workday = db.get(WorkLog, workday_id)
    if workday is None or workday.user_id != user_id:
        return None
    return workday


def list_workdays(
    db: Session,
    user_id: str,
    start: str | None = None,
    end: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[WorkLog]:
    stmt = select(WorkLog).where(WorkLog.user_id == user_id)
    if start:
        stmt = stmt.where(WorkLog.start_iso >= start)
    if end:
        stmt = stmt.where(WorkLog.start_iso < end)
    stmt = stmt.order_by(desc(WorkLog.start_iso)).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def start_workday(db: Session, user_id: str, payload: dict | None = None) -> WorkLog:
    payload = payload or {}
    if get_active_workday(db, user_id) is not None:
        raise StateConflict("A workday is already in progress")
    start_iso = normalize_timestamp(payload["start_iso"], "start_iso") if payload.get("start_iso") else _utcnow()
    workday = WorkLog(
        user_id=user_id,
        project=(payload.get("project") or "").strip() or settings.WORKDAY_PROJECT_LABEL,
        description=payload.get("description") or "",
        start_iso=start_iso,
        end_iso=None,
        created_at=_utcnow(),
    )
    db.add(workday)
    db.commit()
    db.refresh(workday)
    _log("workday.started", workday)
    return workday


def end_workday(db: Session, user_id: str, end_iso: str | None = None) -> WorkLog:
    """Close the open workday; every task must be finished first."""

    workday = get_active_workday(db, user_id)
    if workday is None:
        raise StateConflict("No workday in progress")
    open_tasks = db.execute(
        select(TaskLog.id).where(TaskLog.user_id == user_id, TaskLog.end_iso.is_(None))
    ).scalars().all()
    if open_tasks:
        raise StateConflict("Finish all open tasks before ending the workday")
    end_value = normalize_timestamp(end_iso, "end_iso") if end_iso else _utcnow()
    if end_value < workday.start_iso:
        raise ValueError("end_iso must not precede start_iso")
    workday.end_iso = end_value
    db.commit()
    db.refresh(workday)
    _log("workday.ended", workday)
    return workday


def update_workday(db: Session, workday: WorkLog, payload: dict) -> WorkLog:
    if "project" in payload:
        workday.project = (payload.get("project") or "").strip() or settings.WORKDAY_PROJECT_LABEL
    if "description" in payload:
        workday.description = payload.get("description") or ""
    start_iso = normalize_timestamp(payload["start_iso"], "start_iso") if payload.get("start_iso") else workday.start_iso
    end_iso = workday.end_iso
    if payload.get("end_iso"):
        if workday.end_iso is None:
            raise StateConflict("Use end workday to close an open workday")
        end_iso = normalize_timestamp(payload["end_iso"], "end_iso")
    if end_iso is not None and end_iso < start_iso:
        raise ValueError("end_iso must not precede start_iso")
    workday.start_iso = start_iso
    workday.end_iso = end_iso
    db.commit()
    db.refresh(workday)
    return workday


def delete_workday(db: Session, workday: WorkLog) -> None:
    """Remove a workday together with its tasks and their stored photos."""

    extra = {"workday_id": workday.id, "user_id": workday.user_id}
    owned = [(task.user_id, task.id) for task in workday.tasks]
    for task in list(workday.tasks):
        db.delete(task)
    db.delete(workday)
    db.commit()
    # Photos are removed only after the commit succeeds.
    for user_id, task_id in owned:
        remove_task_images(user_id, task_id)
    logger.info("workday.deleted", extra={"extra_data": extra})


__all__ = [
    "delete_workday",
    "end_workday",
    "get_active_workday",
    "get_workday",
    "list_workdays",
    "normalize_timestamp",
    "start_workday",
    "update_workday",
]
