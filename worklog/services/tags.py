from __future__ import annotations

import re

# ``\w`` is Unicode-aware: letters (including diacritics), digits and underscore.
TAG_PATTERN = re.compile(r"#(\w+)")


def extract_tags(text: str | None) -> list[str]:
    """Return the hashtags in ``text`` without the ``#``, first-seen order, no duplicates."""

    if not text:
        return []
    seen: dict[str, None] = {}
    for match in TAG_PATTERN.finditer(text):
        name = match.group(1).strip()
        if name:
            seen.setdefault(name, None)
    return list(seen)


def extract_task_tags(title: str | None, note: str | None) -> list[str]:
    seen = dict.fromkeys(extract_tags(title))
    for name in extract_tags(note):
        seen.setdefault(name, None)
    return list(seen)


def append_tag(text: str | None, tag: str) -> str:
    """Append ``#tag`` to a field unless it is already present."""

    existing = (text or "").rstrip()
    name = tag.lstrip("#").strip()
    if not name or name in extract_tags(existing):
        return existing
    return f"{existing} #{name}" if existing else f"#{name}"


__all__ = ["TAG_PATTERN", "append_tag", "extract_tags", "extract_task_tags"]
