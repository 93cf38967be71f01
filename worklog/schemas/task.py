"""Pydantic schemas for task logs, on-call intervals and their photos."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field


class TaskStart(BaseModel):
    title: str = ""
    note: str = ""
    is_call: bool = False
    start_iso: Optional[str] = None


class TaskFinish(BaseModel):
    title: Optional[str] = None
    note: Optional[str] = None
    end_iso: Optional[str] = None


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    note: Optional[str] = None
    start_iso: Optional[str] = None
    end_iso: Optional[str] = None


class TaskImageOut(BaseModel):
    id: int
    filename: str
    content_type: Optional[str] = None
    size: Optional[int] = None
    uploaded_at: str
    url: str


class TaskOut(BaseModel):
    id: int
    user_id: str
    session_id: Optional[int] = None
    title: str
    note: str
    tags: list[str] = Field(default_factory=list)
    is_call: bool
    status: str
    start_iso: str
    end_iso: Optional[str] = None
    created_at: str
    duration_minutes: int = 0
    images: list[TaskImageOut] = Field(default_factory=list)


class TaskFinishResult(BaseModel):
    """``task`` is null when a blank task was discarded instead of saved."""

    discarded: bool
    task: Optional[TaskOut] = None


class TaskTagAppend(BaseModel):
    tag: str = Field(..., min_length=1, max_length=100)
    field: Literal["title", "note"] = "note"
