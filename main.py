"""
Todo List API — application entry point.
"""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.auth import router as auth_router
from api.lists import router as lists_router
from api.middleware import register_exception_handlers, register_middleware
from api.routes import router as api_router
from api.tasks import router as tasks_router
from auth.jwt import TokenService
from config.settings import DEFAULT_JWT_SECRET, Settings
from database.session import build_engine, build_session_factory, create_tables
from storage.blob_store import build_blob_store

logger = logging.getLogger(__name__)


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        stream=sys.stdout,
    )
    for _noisy in ("sqlalchemy.engine", "aiosqlite", "asyncio", "multipart"):
        logging.getLogger(_noisy).setLevel(logging.WARNING)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.debug)

    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        logger.warning("JWT_SECRET is not set; session tokens are signed with the built-in default")

    engine = build_engine(settings)
    session_factory = build_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.auto_create_tables:
            logger.info("Ensuring database tables exist…")
            await create_tables(engine)
        logger.info("Application ready to accept requests.")
        yield
        await engine.dispose()

    app = FastAPI(
        title="Todo List API",
        version="1.0.0",
        description="Personal tasks with attachments, plus anonymous shared lists.",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.token_service = TokenService(settings.jwt_secret)
    app.state.blob_store = build_blob_store(settings, session_factory)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_middleware(app)
    register_exception_handlers(app)

    # Routes
    app.include_router(auth_router, prefix="/api/auth")
    app.include_router(tasks_router, prefix="/api/tasks")
    app.include_router(lists_router, prefix="/api/lists")
    app.include_router(api_router, prefix="/api")

    return app


if __name__ == "__main__":
    _settings = Settings()
    uvicorn.run(
        create_app(_settings),
        host=_settings.host,
        port=_settings.port,
        log_level="debug" if _settings.debug else "info",
    )
