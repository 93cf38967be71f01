"""SQLAlchemy model for photos attached to a task log."""

from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class TaskImage(Base):
    __tablename__ = "task_images"
    __allow_unmapped__ = True

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Text, nullable=False, index=True)
    task_log_id = Column(Integer, ForeignKey("task_logs.id"), nullable=False, index=True)
    filename = Column(Text, nullable=False)
    content_type = Column(Text, nullable=True)
    size = Column(Integer, nullable=True)
    # Relative to the media root; never exposed through the API.
    storage_path = Column(Text, nullable=False)
    uploaded_at = Column(Text, nullable=False)

    task = relationship("TaskLog", back_populates="images")


__all__ = ["TaskImage"]
