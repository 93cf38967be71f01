"""Application factory and top-level wiring.

Configuration, logging, database setup, middleware, routers and error
handlers all come together here. ``uvicorn worklog.main:app`` serves it.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models as _models  # noqa: F401  (registers tables with Base.metadata)
from .core.config import settings
from .core.errors import http_exception_handler, validation_exception_handler
from .core.logging import setup_logging
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware, SecurityHeadersMiddleware
from .routers import api_auth, api_summary, api_tags, api_tasks, api_workdays


def create_app(*, init_db: bool = True) -> FastAPI:
    setup_logging()
    app = FastAPI(title=settings.APP_NAME)

    if init_db:
        # create_all builds fresh databases; run_migrations upgrades old ones.
        Base.metadata.create_all(bind=engine)
        run_migrations(engine)

    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    for module in (api_auth, api_workdays, api_tasks, api_tags, api_summary):
        app.include_router(module.router)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    Instrumentator().instrument(app).expose(app, include_in_schema=False)
    return app


app = create_app()
