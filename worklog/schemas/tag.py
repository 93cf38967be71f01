from __future__ import annotations

from pydantic import BaseModel


class TagOut(BaseModel):
    name: str
    usage_count: int

    class Config:
        from_attributes = True


class TagExtraction(BaseModel):
    tags: list[str]
