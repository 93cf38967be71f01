"""Per-user tag library backed by the ``tags`` table."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from ..models.tag import Tag

logger = logging.getLogger(__name__)


def get_tag(db: Session, user_id: str, name: str) -> Tag | None:
    stmt = select(Tag).where(Tag.user_id == user_id, Tag.name == name)
    return db.execute(stmt).scalars().first()


def record_tag_usage(db: Session, user_id: str, names: Iterable[str], *, commit: bool = True) -> list[Tag]:
    """Insert unseen tags with a usage count of 1 and bump the rest."""

    touched: list[Tag] = []
    for name in dict.fromkeys(n.strip() for n in names if n and n.strip()):
        tag = get_tag(db, user_id, name)
        if tag is None:
            tag = Tag(user_id=user_id, name=name, usage_count=1)
            db.add(tag)
            # Flush so a repeated name later in the same batch finds this row.
            db.flush()
        else:
            tag.usage_count = (tag.usage_count or 0) + 1
        touched.append(tag)
    if touched:
        logger.info(
            "tags.used",
            extra={"extra_data": {"user_id": user_id, "tags": [t.name for t in touched]}},
        )
    if commit:
        db.commit()
    return touched


def list_tag_library(db: Session, user_id: str, limit: int = 100) -> list[Tag]:
    stmt = (
        select(Tag)
        .where(Tag.user_id == user_id)
        .order_by(desc(Tag.usage_count), Tag.name)
        .limit(limit)
    )
    return list(db.execute(stmt).scalars().all())


def suggest_tags(db: Session, user_id: str, prefix: str, limit: int = 20) -> list[Tag]:
    """Library entries whose name starts with ``prefix``, ignoring case.

    Names are compared with ``str.casefold``; SQLite's ``lower()`` only
    folds ASCII letters.
    """
    folded = (prefix or "").lstrip("#").strip().casefold()
    stmt = select(Tag).where(Tag.user_id == user_id).order_by(desc(Tag.usage_count), Tag.name)
    matches = [tag for tag in db.execute(stmt).scalars() if tag.name.casefold().startswith(folded)]
    return matches[:limit]


__all__ = ["get_tag", "list_tag_library", "record_tag_usage", "suggest_tags"]
