"""Local object store for task photos.

Objects live under ``settings.media_dir`` at ``{user}/{task}/{stamp}-{name}``.
Callers only ever hold the relative storage path.
"""

from __future__ import annotations

import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import IO
from uuid import uuid4

from ..core.config import settings

ALLOWED_IMAGE_TYPES = {
    "image/png",
    "image/jpeg",
    "image/jpg",
    "image/gif",
    "image/webp",
    "image/heic",
}

_UNSAFE = re.compile(r"[^A-Za-z0-9._-]+")


def media_root(root: Path | None = None) -> Path:
    return Path(root) if root is not None else settings.media_dir


def _segment(value: object, fallback: str) -> str:
    cleaned = _UNSAFE.sub("_", str(value or "")).strip("._")
    return cleaned or fallback


def build_storage_path(user_id: str, task_id: int, filename: str | None, now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    name = _segment(Path(filename or "").name, "image")
    stamp = int(now.timestamp() * 1000)
    return f"{_segment(user_id, 'user')}/{int(task_id)}/{stamp}-{uuid4().hex[:8]}-{name}"


def resolve_image(storage_path: str, root: Path | None = None) -> Path:
    base = media_root(root).resolve()
    path = (base / storage_path).resolve()
    if not path.is_relative_to(base):
        raise ValueError("storage path escapes the media root")
    return path


def store_image(storage_path: str, data: IO[bytes], root: Path | None = None) -> int:
    """Copy ``data`` into the store and return the stored size in bytes."""

    dest = resolve_image(storage_path, root)
    dest.parent.mkdir(parents=True, exist_ok=True)
    if data.seekable():
        data.seek(0)
    with dest.open("wb") as buffer:
        shutil.copyfileobj(data, buffer)
    return dest.stat().st_size


def remove_image(storage_path: str, root: Path | None = None) -> None:
    resolve_image(storage_path, root).unlink(missing_ok=True)


def remove_task_images(user_id: str, task_id: int, root: Path | None = None) -> None:
    folder = resolve_image(f"{_segment(user_id, 'user')}/{int(task_id)}", root)
    shutil.rmtree(folder, ignore_errors=True)


__all__ = [
    "ALLOWED_IMAGE_TYPES",
    "build_storage_path",
    "media_root",
    "remove_image",
    "remove_task_images",
    "resolve_image",
    "store_image",
]
