from __future__ import annotations

import json

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base

TASK_STATUS_ACTIVE = "active"
TASK_STATUS_FINISHED = "finished"


class TaskLog(Base):
    __tablename__ = "task_logs"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Text, nullable=False, index=True)
    # NULL for on-call intervals, which never belong to a workday.
    session_id = Column(Integer, ForeignKey("work_logs.id"), nullable=True, index=True)
    title = Column(Text, nullable=False, default="")
    note = Column(Text, nullable=False, default="")
    is_call = Column(Integer, nullable=False, default=0)
    start_iso = Column(Text, nullable=False, index=True)
    end_iso = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    tags_blob = Column("tags", Text, nullable=True)

    session = relationship("WorkLog", back_populates="tasks")
    images = relationship(
        "TaskImage",
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="TaskImage.id",
    )

    @property
    def status(self) -> str:
        return TASK_STATUS_ACTIVE if self.end_iso is None else TASK_STATUS_FINISHED

    @property
    def tags(self) -> list[str]:
        raw = self.tags_blob
        if not raw:
            return []
        try:
            decoded = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            return []
        if not isinstance(decoded, list):
            return []
        return [str(item) for item in decoded if isinstance(item, str) and item]

    @tags.setter
    def tags(self, value: list[str] | None) -> None:
        if not value:
            self.tags_blob = None
            return
        self.tags_blob = json.dumps(list(value), ensure_ascii=False)


__all__ = ["TaskLog", "TASK_STATUS_ACTIVE", "TASK_STATUS_FINISHED"]
