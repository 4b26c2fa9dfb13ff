"""FastAPI application factory.

Main entry point for the SkillForge Web API.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from skillforge import __version__
from skillforge.config.app_config import load_app_config
from skillforge.core.errors import (
    AlreadyExistsError,
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
    SkillForgeError,
    UnauthenticatedError,
)
from skillforge.db.database import init_db
from skillforge.llm.client import LLMError
from skillforge.web.routes import (
    ai_router,
    chat_router,
    contents_router,
    health_router,
    planner_router,
    users_router,
)

logger = structlog.get_logger(__name__)

ERROR_STATUS = {
    InvalidArgumentError: status.HTTP_400_BAD_REQUEST,
    UnauthenticatedError: status.HTTP_401_UNAUTHORIZED,
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyExistsError: status.HTTP_409_CONFLICT,
}

HTTP_STATUS_CODES = {
    400: "invalid-argument",
    401: "unauthenticated",
    403: "permission-denied",
    404: "not-found",
    405: "method-not-allowed",
    409: "already-exists",
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Lifespan context manager for startup/shutdown events."""
    config = load_app_config()
    init_db(config.db_path)
    config.storage_dir.mkdir(parents=True, exist_ok=True)
    logger.info(
        "api.startup",
        db_path=str(config.db_path.absolute()),
        storage_dir=str(config.storage_dir.absolute()),
        llm_provider=config.llm.provider,
    )
    yield


async def _domain_error_handler(request: Request, exc: SkillForgeError) -> JSONResponse:
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )
    if status_code >= 500:
        logger.error("api.domain_error", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


async def _llm_error_handler(request: Request, exc: LLMError) -> JSONResponse:
    logger.warning("api.ai_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc), "code": exc.code},
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "detail": exc.detail,
            "code": HTTP_STATUS_CODES.get(exc.status_code, "unknown"),
        },
        headers=getattr(exc, "headers", None),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    config = load_app_config()

    app = FastAPI(
        title="SkillForge API",
        description="Content sharing, social and learning API for SkillForge",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(SkillForgeError, _domain_error_handler)
    app.add_exception_handler(LLMError, _llm_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(contents_router)
    app.include_router(chat_router)
    app.include_router(ai_router)
    app.include_router(planner_router)

    # Directory is created at startup
    app.mount(
        "/media",
        StaticFiles(directory=config.storage_dir, check_dir=False),
        name="media",
    )

    return app


# Default app instance for uvicorn
app = create_app()
