from __future__ import annotations

from datetime import date
from pathlib import Path

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from ..core.errors import StateConflict
from ..crud.tasks import (
    add_task_image,
    append_task_tag,
    delete_task,
    delete_task_image,
    finish_task,
    get_task,
    get_task_image,
    list_open_tasks,
    list_task_images,
    list_tasks,
    start_task,
    update_task,
)
from ..db.session import get_db
from ..deps.auth import AuthContext, require_user
from ..schemas.task import (
    TaskFinish,
    TaskFinishResult,
    TaskImageOut,
    TaskOut,
    TaskStart,
    TaskTagAppend,
    TaskUpdate,
)
from ..services.storage import ALLOWED_IMAGE_TYPES, resolve_image
from ..services.summary import day_bounds
from ..services.timecalc import compute_minutes

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])


def _image_to_schema(image) -> TaskImageOut:
    return TaskImageOut(
        id=image.id,
        filename=image.filename,
        content_type=image.content_type,
        size=image.size,
        uploaded_at=image.uploaded_at,
        url=f"/api/v1/tasks/{image.task_log_id}/images/{image.id}",
    )


def serialize_task(task) -> TaskOut:
    return TaskOut(
        id=task.id,
        user_id=task.user_id,
        session_id=task.session_id,
        title=task.title or "",
        note=task.note or "",
        tags=task.tags,
        is_call=bool(task.is_call),
        status=task.status,
        start_iso=task.start_iso,
        end_iso=task.end_iso,
        created_at=task.created_at,
        duration_minutes=compute_minutes(task.start_iso, task.end_iso),
        images=[_image_to_schema(image) for image in list_task_images(task)],
    )


def _raise_for(exc: ValueError) -> None:
    status_code = 409 if isinstance(exc, StateConflict) else 422
    raise HTTPException(status_code=status_code, detail=str(exc)) from exc


def _load(db: Session, auth: AuthContext, task_id: int):
    task = get_task(db, auth.user_id, task_id)
    if not task:
        raise HTTPException(404, "Not found")
    return task


@router.get("", response_model=list[TaskOut])
def api_list(
    session_id: int | None = Query(default=None),
    is_call: bool | None = Query(default=None),
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    limit: int = Query(default=500, ge=1, le=2000),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    records = list_tasks(
        db,
        auth.user_id,
        session_id=session_id,
        is_call=is_call,
        start=day_bounds(date_from)[0] if date_from else None,
        end=day_bounds(date_to)[1] if date_to else None,
        limit=limit,
        offset=offset,
    )
    return [serialize_task(record) for record in records]


@router.get("/open", response_model=list[TaskOut])
def api_open(
    is_call: bool | None = Query(default=None),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    return [serialize_task(record) for record in list_open_tasks(db, auth.user_id, is_call=is_call)]


@router.post("", response_model=TaskOut, status_code=201)
def api_start(payload: TaskStart, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    try:
        task = start_task(db, auth.user_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        _raise_for(exc)
    return serialize_task(task)


@router.get("/{task_id}", response_model=TaskOut)
def api_get(task_id: int, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    return serialize_task(_load(db, auth, task_id))


@router.post("/{task_id}/finish", response_model=TaskFinishResult)
def api_finish(
    task_id: int,
    payload: TaskFinish | None = None,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    task = _load(db, auth, task_id)
    try:
        finished = finish_task(db, task, payload.model_dump(exclude_unset=True) if payload else {})
    except ValueError as exc:
        _raise_for(exc)
    if finished is None:
        return TaskFinishResult(discarded=True)
    return TaskFinishResult(discarded=False, task=serialize_task(finished))


@router.patch("/{task_id}", response_model=TaskOut)
def api_update(
    task_id: int,
    payload: TaskUpdate,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    task = _load(db, auth, task_id)
    try:
        updated = update_task(db, task, {k: v for k, v in payload.model_dump().items() if v is not None})
    except ValueError as exc:
        _raise_for(exc)
    return serialize_task(updated)


@router.post("/{task_id}/tags", response_model=TaskOut, summary="Append a library tag to the title or note")
def api_append_tag(
    task_id: int,
    payload: TaskTagAppend,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    task = _load(db, auth, task_id)
    try:
        updated = append_task_tag(db, task, payload.tag, payload.field)
    except ValueError as exc:
        _raise_for(exc)
    return serialize_task(updated)


@router.delete("/{task_id}")
def api_delete(task_id: int, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    delete_task(db, _load(db, auth, task_id))
    return {"status": "deleted"}


@router.get("/{task_id}/images", response_model=list[TaskImageOut])
def api_list_images(task_id: int, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    return [_image_to_schema(image) for image in list_task_images(_load(db, auth, task_id))]


@router.post("/{task_id}/images", response_model=TaskImageOut, status_code=201)
async def api_add_image(
    task_id: int,
    file: UploadFile = File(...),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    task = _load(db, auth, task_id)
    filename = Path((file.filename or "").strip()).name
    if not filename:
        await file.close()
        raise HTTPException(status_code=400, detail="A file upload is required")
    content_type = (file.content_type or "").lower()
    if content_type not in ALLOWED_IMAGE_TYPES:
        await file.close()
        raise HTTPException(status_code=415, detail="Only image uploads are supported")
    try:
        image = add_task_image(db, task, filename, content_type, file.file)
    except ValueError as exc:
        _raise_for(exc)
    finally:
        await file.close()
    return _image_to_schema(image)


@router.get("/{task_id}/images/{image_id}", response_class=FileResponse)
def api_get_image(
    task_id: int,
    image_id: int,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    image = get_task_image(_load(db, auth, task_id), image_id)
    if not image:
        raise HTTPException(404, "Image not found")
    path = resolve_image(image.storage_path)
    if not path.exists():
        raise HTTPException(404, "Image not found")
    return FileResponse(path, media_type=image.content_type or "application/octet-stream", filename=image.filename)


@router.delete("/{task_id}/images/{image_id}")
def api_delete_image(
    task_id: int,
    image_id: int,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    image = get_task_image(_load(db, auth, task_id), image_id)
    if not image:
        raise HTTPException(404, "Image not found")
    delete_task_image(db, image)
    return {"status": "deleted"}
