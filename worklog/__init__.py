"""Worklog: workday, task and on-call time logging with monthly summaries.

The FastAPI application lives in ``worklog.main``; importing this package has
no side effects so the time math in ``worklog.services`` can be used alone.
"""

__version__ = "0.1.0"

__all__ = ["__version__"]
