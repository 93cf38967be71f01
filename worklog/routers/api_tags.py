from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..crud.tags import list_tag_library, suggest_tags
from ..db.session import get_db
from ..deps.auth import AuthContext, require_user
from ..schemas.tag import TagExtraction, TagOut
from ..services.tags import extract_tags

router = APIRouter(prefix="/api/v1/tags", tags=["tags"])


@router.get("", response_model=list[TagOut], summary="Tag library ordered by usage")
def api_list(
    prefix: str | None = Query(default=None, description="Only tags starting with this text"),
    limit: int = Query(default=100, ge=1, le=500),
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
):
    if prefix:
        return suggest_tags(db, auth.user_id, prefix, limit=limit)
    return list_tag_library(db, auth.user_id, limit=limit)


@router.get("/extract", response_model=TagExtraction, dependencies=[Depends(require_user)])
def api_extract(text: str = Query(default="")):
    return TagExtraction(tags=extract_tags(text))
