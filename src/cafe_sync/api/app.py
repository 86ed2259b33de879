"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from cafe_sync.api.admin import router as admin_router
from cafe_sync.api.menu import router as menu_router
from cafe_sync.api.realtime import router as realtime_router
from cafe_sync.api.settings import router as settings_router
from cafe_sync.app_logging import configure_logging
from cafe_sync.config import parse_origins
from cafe_sync.containers import AppContainer
from cafe_sync.domain.errors import (
    NotFoundError,
    StorageError,
    SyncError,
    ValidationError,
)

_ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    StorageError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=parse_origins(container.settings.cors_allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(SyncError)
    async def sync_error_handler(request: Request, exc: SyncError) -> JSONResponse:
        status_code = _status_for(exc)
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error": repr(exc)},
            )
        return JSONResponse(
            status_code=status_code,
            content={"success": False, "message": str(exc)},
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = _jsonable(exc.errors())
        message = errors[0]["msg"] if errors else "Invalid request"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "message": message, "errors": errors},
        )

    app.include_router(settings_router)
    app.include_router(menu_router)
    app.include_router(admin_router)
    app.include_router(realtime_router)

    if container.settings.blob_backend == "local":
        app.mount(
            "/uploads",
            StaticFiles(directory=container.settings.uploads_dir, check_dir=False),
            name="uploads",
        )

    @app.get("/health")
    async def health() -> dict[str, object]:
        """Simple health check endpoint."""
        return {
            "success": True,
            "status": "ok",
            "sessions": container.event_hub.registry.count(),
        }

    return app


def _status_for(exc: SyncError) -> int:
    for error_type, status_code in _ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _jsonable(errors: object) -> list[dict[str, object]]:
    if not isinstance(errors, list | tuple):
        return []
    return [
        {"loc": list(error.get("loc", ())), "msg": str(error.get("msg", ""))}
        for error in errors
        if isinstance(error, dict)
    ]
