from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rental.core.config import settings
from rental.core.exceptions import RentalError, Unauthenticated
from rental.core.logging import get_logger, setup_logging
from rental.db.session import create_store
from rental.schemas.common import describe_errors
from rental.storage.blobs import LocalBlobStorage

from rental.api.routes.admin import router as admin_router
from rental.api.routes.auth import router as auth_router
from rental.api.routes.bank import router as bank_router
from rental.api.routes.health import liveness_router, router as health_router
from rental.api.routes.images import router as images_router
from rental.api.routes.payments import router as payments_router

logger = get_logger(__name__)

_HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "validation_error",
    status.HTTP_401_UNAUTHORIZED: "unauthenticated",
    status.HTTP_403_FORBIDDEN: "forbidden",
    status.HTTP_404_NOT_FOUND: "not_found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "method_not_allowed",
    status.HTTP_409_CONFLICT: "conflict",
}


def _envelope(status_code: int, message: str, code: str, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": code},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RentalError)
    async def rental_error_handler(request: Request, exc: RentalError):
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthenticated) else None
        return _envelope(exc.status_code, exc.message, exc.code, headers)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return _envelope(status.HTTP_400_BAD_REQUEST, describe_errors(exc.errors()), "validation_error")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
            message = "API endpoint does not exist"
        else:
            message = str(exc.detail)
        code = _HTTP_ERROR_CODES.get(exc.status_code, "http_error")
        return _envelope(exc.status_code, message, code, getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "internal_error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # tests install their own store / blob storage before startup
    if getattr(app.state, "store", None) is None:
        app.state.store = create_store(settings)
    if getattr(app.state, "blobs", None) is None:
        app.state.blobs = LocalBlobStorage(settings.UPLOADS_DIR, settings.UPLOADS_URL_PREFIX)
    logger.info(
        "Rental API ready (environment=%s, data_file=%s)", settings.ENVIRONMENT, settings.DATA_FILE
    )
    yield


def create_application() -> FastAPI:
    setup_logging(settings.LOG_LEVEL, json_format=settings.is_production_like)

    app = FastAPI(title="Guangda Rental API", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Routers
    app.include_router(liveness_router)
    app.include_router(health_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(bank_router, prefix="/api")
    app.include_router(payments_router, prefix="/api")
    app.include_router(images_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    return app


app = create_application()
