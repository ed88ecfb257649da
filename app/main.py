"""FastAPI application — entry point."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.dependencies import get_api_key, get_chain_reader
from app.errors import install_error_handlers
from app.routes import orders, staking
from app.routes.health import get_db_info
from config import Settings, get_settings
from migrations.migrate import migrate
from yieldbridge.services._types import DbInfoDict

logger: logging.Logger = logging.getLogger(__name__)


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings: Settings = get_settings()
    logger.info("DB: %s", settings.database.db_info_for_logging())

    migrate()
    yield
    await get_chain_reader().close()


def create_app() -> FastAPI:
    settings: Settings = get_settings()
    app: FastAPI = FastAPI(
        title="Yieldbridge",
        version="0.1.0",
        lifespan=_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_error_handlers(app)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/health/db", dependencies=[Depends(get_api_key)])
    def health_db() -> DbInfoDict:
        return get_db_info()

    app.include_router(staking.router)
    app.include_router(orders.router)

    return app


app: FastAPI = create_app()


def start() -> None:
    """Entry point for yieldbridge-api."""
    project_root: Path = Path(__file__).resolve().parent.parent
    os.chdir(project_root)

    for candidate in (project_root / ".env", project_root.parent / ".env"):
        if candidate.exists():
            load_dotenv(candidate, override=False)

    reload: bool = os.environ.get("YIELDBRIDGE_RELOAD", "false").lower() in ("1", "true", "yes")
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=get_settings().port,
        reload=reload,
    )
