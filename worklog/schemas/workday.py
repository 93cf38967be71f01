"""Pydantic schemas for workday sessions."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class WorkdayStart(BaseModel):
    project: Optional[str] = None
    description: Optional[str] = None
    # Omit to start "now"; supply to backfill a forgotten start.
    start_iso: Optional[str] = None


class WorkdayEnd(BaseModel):
    end_iso: Optional[str] = None


class WorkdayUpdate(BaseModel):
    project: Optional[str] = None
    description: Optional[str] = None
    start_iso: Optional[str] = None
    end_iso: Optional[str] = None


class WorkdayOut(BaseModel):
    id: int
    user_id: str
    project: str
    description: Optional[str] = None
    start_iso: str
    end_iso: Optional[str] = None
    created_at: str
    is_active: bool
    base_hours: float = 0.0
    overtime_hours: float = 0.0

    class Config:
        from_attributes = True
