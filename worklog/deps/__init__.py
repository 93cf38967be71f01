"""FastAPI dependencies shared by the API routers."""

from .auth import AuthContext, require_user

__all__ = ["AuthContext", "require_user"]
