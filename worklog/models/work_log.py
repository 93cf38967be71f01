"""SQLAlchemy model for workday sessions."""

from __future__ import annotations

from sqlalchemy import Column, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class WorkLog(Base):
    """One workday: opened by "start workday", closed by "end workday"."""

    __tablename__ = "work_logs"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Text, nullable=False, index=True)
    project = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    # UTC ISO-8601 strings, see services.timecalc.to_storage_iso
    start_iso = Column(Text, nullable=False, index=True)
    end_iso = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)

    tasks = relationship("TaskLog", back_populates="session")

    @property
    def is_active(self) -> bool:
        return self.end_iso is None


__all__ = ["WorkLog"]
