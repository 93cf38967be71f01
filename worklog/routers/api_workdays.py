from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..core.errors import StateConflict
from ..crud.workdays import (
    delete_workday,
    end_workday,
    get_active_workday,
    get_workday,
    list_workdays,
    start_workday,
    update_workday,
)
from ..db.session import get_db
from ..deps.auth import AuthContext, require_user
from ..schemas.workday import WorkdayEnd, WorkdayOut, WorkdayStart, WorkdayUpdate
from ..services.summary import day_bounds
from ..services.timecalc import calculate_work_hours

router = APIRouter(prefix="/api/v1/workdays", tags=["workdays"])


def serialize_workday(workday) -> WorkdayOut:
    payload = WorkdayOut.model_validate(workday, from_attributes=True)
    if workday.end_iso:
        hours = calculate_work_hours(workday.start_iso, workday.end_iso)
        payload.base_hours = hours.base_hours
        payload.overtime_hours = hours.overtime_hours
    return payload


def _raise_for(exc: ValueError) -> None:
    status_code = 409 if isinstance(exc, StateConflict) else 422
    raise HTTPException(status_code=status_code, detail=str(exc)) from exc


@router.get("", response_model=list[WorkdayOut])
def api_list(
    date_from: date | None = Query(default=None, alias="from"),
    date_to: date | None = Query(default=None, alias="to"),
    limit: int = Query(default=200, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    start = day_bounds(date_from)[0] if date_from else None
    end = day_bounds(date_to)[1] if date_to else None
    records = list_workdays(db, auth.user_id, start=start, end=end, limit=limit, offset=offset)
    return [serialize_workday(record) for record in records]


@router.get("/active", response_model=WorkdayOut | None)
def api_active(auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    workday = get_active_workday(db, auth.user_id)
    return serialize_workday(workday) if workday else None


@router.post("/start", response_model=WorkdayOut, status_code=201)
def api_start(
    payload: WorkdayStart | None = None,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    data = payload.model_dump(exclude_unset=True) if payload else {}
    try:
        workday = start_workday(db, auth.user_id, data)
    except ValueError as exc:
        _raise_for(exc)
    return serialize_workday(workday)


@router.post("/end", response_model=WorkdayOut)
def api_end(
    payload: WorkdayEnd | None = None,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    try:
        workday = end_workday(db, auth.user_id, payload.end_iso if payload else None)
    except ValueError as exc:
        _raise_for(exc)
    return serialize_workday(workday)


@router.get("/{workday_id}", response_model=WorkdayOut)
def api_get(workday_id: int, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    workday = get_workday(db, auth.user_id, workday_id)
    if not workday:
        raise HTTPException(404, "Not found")
    return serialize_workday(workday)


@router.patch("/{workday_id}", response_model=WorkdayOut)
def api_update(
    workday_id: int,
    payload: WorkdayUpdate,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    workday = get_workday(db, auth.user_id, workday_id)
    if not workday:
        raise HTTPException(404, "Not found")
    try:
        updated = update_workday(db, workday, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        _raise_for(exc)
    return serialize_workday(updated)


@router.delete("/{workday_id}")
def api_delete(workday_id: int, auth: AuthContext = Depends(require_user), db: Session = Depends(get_db)):
    workday = get_workday(db, auth.user_id, workday_id)
    if not workday:
        raise HTTPException(404, "Not found")
    delete_workday(db, workday)
    return {"status": "deleted"}
