from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import IO

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from ..core.config import settings
from ..core.errors import StateConflict
from ..models.task_image import TaskImage
from ..models.task_log import TaskLog
from ..services.storage import (
    build_storage_path,
    remove_image,
    remove_task_images,
    store_image,
)
from ..services.tags import append_tag, extract_task_tags
from ..services.timecalc import to_storage_iso
from .tags import record_tag_usage
from .workdays import get_active_workday, normalize_timestamp

logger = logging.getLogger(__name__)

TAG_FIELDS = ("title", "note")


def _utcnow() -> str:
    return to_storage_iso(datetime.now(timezone.utc))


def _log(event: str, task: TaskLog, **extra: object) -> None:
    data: dict[str, object] = {
        "task_id": task.id,
        "user_id": task.user_id,
        "session_id": task.session_id,
        "is_call": bool(task.is_call),
    }
    data.update(extra)
    logger.info(event, extra={"extra_data": data})


def get_task(db: Session, user_id: str, task_id: int) -> TaskLog | None:
    task = db.get(TaskLog, task_id)
    if task is None or task.user_id != user_id:
        return None
    return task


def list_tasks(
    db: Session,
    user_id: str,
    *,
    session_id: int | None = None,
    start: str | None = None,
    end: str | None = None,
    is_call: bool | None = None,
    limit: int = 500,
    offset: int = 0,
) -> list[TaskLog]:
    stmt = select(TaskLog).options(selectinload(TaskLog.images)).where(TaskLog.user_id == user_id)
    if session_id is not None:
        stmt = stmt.where(TaskLog.session_id == session_id)
    if start:
        stmt = stmt.where(TaskLog.start_iso >= start)
    if end:
        stmt = stmt.where(TaskLog.start_iso < end)
    if is_call is not None:
        stmt = stmt.where(TaskLog.is_call == (1 if is_call else 0))
    stmt = stmt.order_by(TaskLog.start_iso, TaskLog.id).limit(limit).offset(offset)
    return list(db.execute(stmt).scalars().all())


def list_open_tasks(db: Session, user_id: str, is_call: bool | None = None) -> list[TaskLog]:
    stmt = select(TaskLog).where(TaskLog.user_id == user_id, TaskLog.end_iso.is_(None))
    if is_call is not None:
        stmt = stmt.where(TaskLog.is_call == (1 if is_call else 0))
    return list(db.execute(stmt.order_by(TaskLog.start_iso)).scalars().all())


def start_task(db: Session, user_id: str, payload: dict) -> TaskLog:
    """Open a task inside the active workday, or an on-call interval outside one."""

    is_call = bool(payload.get("is_call"))
    start_iso = normalize_timestamp(payload["start_iso"], "start_iso") if payload.get("start_iso") else _utcnow()
    session_id = None
    if is_call:
        if list_open_tasks(db, user_id, is_call=True):
            raise StateConflict("An on-call interval is already in progress")
    else:
        workday = get_active_workday(db, user_id)
        if workday is None:
            raise StateConflict("No workday in progress")
        if start_iso < workday.start_iso:
            raise ValueError("A task cannot start before its workday")
        session_id = workday.id

    task = TaskLog(
        user_id=user_id,
        session_id=session_id,
        title=(payload.get("title") or "").strip(),
        note=payload.get("note") or "",
        is_call=1 if is_call else 0,
        start_iso=start_iso,
        end_iso=None,
        created_at=_utcnow(),
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    _log("task.started", task)
    return task


def finish_task(db: Session, task: TaskLog, payload: dict | None = None) -> TaskLog | None:
    """Close a task, or discard it when both title and note are blank.

    Returns ``None`` when the task was discarded.
    """
    payload = payload or {}
    if task.end_iso is not None:
        raise StateConflict("Task is already finished")
    title = payload["title"] if payload.get("title") is not None else task.title
    note = payload["note"] if payload.get("note") is not None else task.note
    title_filled = bool((title or "").strip())
    note_filled = bool((note or "").strip())

    if not title_filled and not note_filled:
        _log("task.discarded", task)
        delete_task(db, task)
        return None
    if not (title_filled and note_filled):
        raise ValueError("Both title and note are required to finish a task")

    end_iso = normalize_timestamp(payload["end_iso"], "end_iso") if payload.get("end_iso") else _utcnow()
    if end_iso < task.start_iso:
        raise ValueError("end_iso must not precede start_iso")

    tags = extract_task_tags(title, note)
    task.title = title.strip()
    task.note = note
    task.tags = tags
    task.end_iso = end_iso
    record_tag_usage(db, task.user_id, tags, commit=False)
    db.commit()
    db.refresh(task)
    _log("task.finished", task, tags=tags)
    return task


def update_task(db: Session, task: TaskLog, payload: dict) -> TaskLog:
    """Edit a task in place. Tag usage counts are only bumped by ``finish_task``.

    A finished task keeps both title and note filled.
    """
    title = payload["title"].strip() if payload.get("title") is not None else task.title
    note = payload["note"] if payload.get("note") is not None else task.note
    start_iso = normalize_timestamp(payload["start_iso"], "start_iso") if payload.get("start_iso") else task.start_iso
    end_iso = task.end_iso
    if payload.get("end_iso"):
        if task.end_iso is None:
            raise StateConflict("Use finish to close an open task")
        end_iso = normalize_timestamp(payload["end_iso"], "end_iso")
    if end_iso is not None and end_iso < start_iso:
        raise ValueError("end_iso must not precede start_iso")
    if end_iso is not None and not ((title or "").strip() and (note or "").strip()):
        raise ValueError("A finished task needs both a title and a note")

    task.title = title
    task.note = note
    task.start_iso = start_iso
    task.end_iso = end_iso
    if task.end_iso is not None:
        task.tags = extract_task_tags(task.title, task.note)
    db.commit()
    db.refresh(task)
    return task


def append_task_tag(db: Session, task: TaskLog, tag: str, field: str = "note") -> TaskLog:
    """Add ``#tag`` from the library to the task's title or note."""

    if field not in TAG_FIELDS:
        raise ValueError(f"field must be one of {', '.join(TAG_FIELDS)}")
    if not tag.lstrip("#").strip():
        raise ValueError("tag must not be empty")
    return update_task(db, task, {field: append_tag(getattr(task, field), tag)})


def delete_task(db: Session, task: TaskLog) -> None:
    user_id, task_id = task.user_id, task.id
    db.delete(task)
    db.commit()
    remove_task_images(user_id, task_id)


# ---- photos ----------------------------------------------------------------


def list_task_images(task: TaskLog) -> list[TaskImage]:
    return list(task.images or [])


def get_task_image(task: TaskLog, image_id: int) -> TaskImage | None:
    for image in task.images or []:
        if image.id == image_id:
            return image
    return None


def add_task_image(
    db: Session,
    task: TaskLog,
    filename: str,
    content_type: str | None,
    file_data: IO[bytes],
) -> TaskImage:
    limit = settings.MAX_TASK_IMAGES
    if len(task.images or []) >= limit:
        raise StateConflict(f"A task can hold at most {limit} images")
    storage_path = build_storage_path(task.user_id, task.id, filename)
    size = store_image(storage_path, file_data)
    image = TaskImage(
        user_id=task.user_id,
        task_log_id=task.id,
        filename=filename,
        content_type=content_type,
        size=size,
        storage_path=storage_path,
        uploaded_at=_utcnow(),
    )
    db.add(image)
    db.commit()
    db.refresh(image)
    db.refresh(task)
    _log("task.image_added", task, image_id=image.id, size=size)
    return image


def delete_task_image(db: Session, image: TaskImage) -> None:
    storage_path = image.storage_path
    db.delete(image)
    db.commit()
    remove_image(storage_path)


__all__ = [
    "TAG_FIELDS",
    "add_task_image",
    "append_task_tag",
    "delete_task",
    "delete_task_image",
    "finish_task",
    "get_task",
    "get_task_image",
    "list_open_tasks",
    "list_task_images",
    "list_tasks",
    "start_task",
    "update_task",
]
