# auth_api/main.py
import asyncio
import logging
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import IntegrityError
from starlette.requests import Request

from auth_api.api.v1.router import api_router
from auth_api.core.clock import SystemClock
from auth_api.core.config import Settings
from auth_api.core.errors import AuthError
from auth_api.core.logging import setup_logging
from auth_api.core.security import PasswordHasher
from auth_api.core.tokens import TokenCodec
from auth_api.crud.user import user_crud
from auth_api.db.bootstrap import run_migrations_and_seed
from auth_api.db.session import make_engine, make_session_factory
from auth_api.services.auth import AuthService
from auth_api.services.ephemeral_tokens import EphemeralTokenIssuer
from auth_api.services.notifier import LoggingNotifier, Notifier
from auth_api.services.refresh_tokens import RefreshTokenStore

logger = logging.getLogger(__name__)


def build_auth_service(settings: Settings, notifier: Notifier, clock) -> AuthService:
    verification_ttl = (
        timedelta(hours=settings.EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS)
        if settings.EMAIL_VERIFICATION_TOKEN_EXPIRE_HOURS > 0
        else None
    )
    return AuthService(
        users=user_crud,
        hasher=PasswordHasher(rounds=settings.BCRYPT_ROUNDS),
        codec=TokenCodec(settings.SECRET_KEY, settings.ALGORITHM, clock=clock),
        refresh_tokens=RefreshTokenStore(timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS), clock=clock),
        ephemeral=EphemeralTokenIssuer(
            reset_ttl=timedelta(minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES),
            verification_ttl=verification_ttl,
            clock=clock,
        ),
        notifier=notifier,
        access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        rotate_refresh_tokens=settings.REFRESH_TOKEN_ROTATION,
        clock=clock,
    )


async def _cleanup_loop(api: FastAPI, interval: int) -> None:
    while True:
        await asyncio.sleep(interval)
        try:
            await asyncio.to_thread(_run_cleanup, api)
        except Exception:
            logger.exception("Periodic cleanup failed")


def _run_cleanup(api: FastAPI) -> None:
    with api.state.session_factory() as db:
        api.state.auth_service.cleanup(db)


def create_app(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[Notifier] = None,
    clock=None,
) -> FastAPI:
    settings = settings or Settings()
    setup_logging(settings.LOG_LEVEL)
    clock = clock or SystemClock()

    api = FastAPI(
        title="Auth API",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        swagger_ui_parameters={"displayRequestDuration": True, "persistAuthorization": True},
    )

    engine = make_engine(settings.DATABASE_URL)
    api.state.settings = settings
    api.state.engine = engine
    api.state.session_factory = make_session_factory(engine)
    if notifier is None:
        logger.warning("No mail notifier configured; account emails are only logged")
        notifier = LoggingNotifier(settings.FRONTEND_URL)
    api.state.auth_service = build_auth_service(settings, notifier, clock)

    api.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # /metrics (Prometheus); own registry so several apps can live in one process
    if settings.METRICS_ENABLED:
        Instrumentator(registry=CollectorRegistry()).instrument(api).expose(
            api, include_in_schema=False, should_gzip=True
        )

    api.include_router(api_router, prefix="/api/v1")

    @api.get("/healthz", tags=["health"])
    def healthz():
        return {"status": "ok"}

    @api.on_event("startup")
    async def startup():
        if settings.RUN_MIGRATIONS_ON_STARTUP:
            run_migrations_and_seed(settings, api.state.session_factory, api.state.auth_service.hasher)
        if settings.CLEANUP_INTERVAL_SECONDS > 0:
            api.state.cleanup_task = asyncio.create_task(_cleanup_loop(api, settings.CLEANUP_INTERVAL_SECONDS))

    @api.on_event("shutdown")
    async def shutdown():
        task = getattr(api.state, "cleanup_task", None)
        if task:
            task.cancel()
        engine.dispose()

    @api.exception_handler(AuthError)
    def handle_auth_error(request: Request, exc: AuthError):
        return JSONResponse(status_code=exc.status_code, content={"code": exc.code, "message": exc.message})

    @api.exception_handler(RequestValidationError)
    def handle_validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content={"code": "VALIDATION_ERROR", "message": "Invalid input.", "details": jsonable_encoder(exc.errors())},
        )

    @api.exception_handler(IntegrityError)
    def handle_integrity_error(request: Request, exc: IntegrityError):
        return JSONResponse(status_code=409, content={"code": "UNIQUE_VIOLATION", "message": "Duplicate record."})

    @api.exception_handler(Exception)
    def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"code": "INTERNAL_ERROR", "message": "Internal error."})

    return api


api = create_app()
