from __future__ import annotations

from sqlalchemy import Column, Integer, Text, UniqueConstraint

from ..db.session import Base


class Tag(Base):
    """Per-user hashtag library with usage counts for autocomplete."""

    __tablename__ = "tags"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_tags_user_name"),)

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    usage_count = Column(Integer, nullable=False, default=0)


__all__ = ["Tag"]
