import logging
import time
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import auth, health, tasks
from .config import Settings, get_settings
from .database import build_engine, create_db_and_tables
from .errors import AppError, ValidationError, validation_details
from .logging_setup import setup_logging
from .services.auth import AuthService
from .services.security import PasswordHasher, TokenManager

logger = logging.getLogger(__name__)


def _error_body(request: Request, message: str, error_type: str, details=None, exc: Optional[BaseException] = None):
    body = {"success": False, "message": message, "error": {"type": error_type}}
    if details:
        body["error"]["details"] = details
    settings: Settings = request.app.state.settings
    if exc is not None and settings.is_development:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        body["request"] = {"method": request.method, "url": str(request.url)}
    return body


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def handle_app_error(request: Request, exc: AppError):
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.kind}: {exc.message}")
        details = exc.details if isinstance(exc, ValidationError) else None
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, exc.message, exc.kind, details),
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        details = validation_details(exc.errors())
        logger.warning(f"{request.method} {request.url.path} -> 400 validation_error: {details}")
        return JSONResponse(
            status_code=400,
            content=_error_body(request, "Validation error", ValidationError.kind, details),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404 and message == "Not Found":
            message = f"Route {request.method} {request.url.path} not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(request, message, "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url}")
        return JSONResponse(
            status_code=500,
            content=_error_body(request, "Internal server error", "internal_error", exc=exc),
        )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the application around an explicitly constructed database engine."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, db_echo=settings.db_echo)

    engine = build_engine(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        create_db_and_tables(engine)
        with Session(engine) as session:
            AuthService(
                session, settings, app.state.token_manager, app.state.password_hasher
            ).purge_expired_tokens()
        logger.info(f"{settings.app_name} started ({settings.environment})")
        yield
        engine.dispose()

    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)
    app.state.settings = settings
    app.state.engine = engine
    app.state.token_manager = TokenManager(settings)
    app.state.password_hasher = PasswordHasher(settings.bcrypt_rounds)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        user_id = getattr(request.state, "user_id", None) or "anonymous"
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"{duration_ms:.1f}ms user={user_id}"
        )
        return response

    register_exception_handlers(app)

    # Mount routers
    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])

    # Health check endpoints for Kubernetes probes
    app.include_router(health.router, tags=["health"])

    @app.get("/")
    def read_root():
        return {"message": f"Welcome to the {settings.app_name}!"}

    return app


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
