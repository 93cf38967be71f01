"""Importing this package registers every table with ``Base.metadata``."""

from .tag import Tag
from .task_image import TaskImage
from .task_log import TaskLog
from .work_log import WorkLog

__all__ = ["Tag", "TaskImage", "TaskLog", "WorkLog"]
