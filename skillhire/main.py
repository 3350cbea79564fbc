# ========================================
# skillhire/main.py
# ========================================

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from skillhire.config import Settings
from skillhire.database import close_mongo_connection, connect_to_mongo, ensure_indexes
from skillhire.middleware import RoleAccessMiddleware
from skillhire.payments.lemonsqueezy import LemonSqueezyGateway
from skillhire.payments.stripe_gateway import StripeGateway
from skillhire.services.remote_jobs import RemoteJobsFeed
from skillhire.utils.auth import ClerkIdentity
from skillhire.utils.errors import APIException
from skillhire.utils.logging import RequestIDMiddleware, get_logger, setup_logging
from skillhire.utils.storage import ObjectStorage

# ===========================
# IMPORT ALL ROUTERS
# ===========================

from skillhire.routes.applications import router as applications_router
from skillhire.routes.employer import router as employer_router
from skillhire.routes.jobs import router as jobs_router
from skillhire.routes.pages import router as pages_router
from skillhire.routes.payments import router as payments_router
from skillhire.routes.remote_jobs import router as remote_jobs_router
from skillhire.routes.uploads import router as uploads_router
from skillhire.routes.users import router as users_router
from skillhire.routes.webhooks import router as webhooks_router

logger = get_logger(__name__)

VERSION = "1.0.0"


def _validation_message(exc: RequestValidationError) -> str:
    """One readable sentence naming the first offending field."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"

    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    field = ".".join(location) or "body"
    if first.get("type") == "missing":
        return f"{field} is required"
    return f"Invalid {field}: {first.get('msg', 'invalid value')}"


def create_app(
    settings: Optional[Settings] = None,
    *,
    db=None,
    storage: Optional[ObjectStorage] = None,
    identity: Optional[ClerkIdentity] = None,
    stripe_gateway: Optional[StripeGateway] = None,
    lemonsqueezy_gateway: Optional[LemonSqueezyGateway] = None,
    remote_jobs: Optional[RemoteJobsFeed] = None,
) -> FastAPI:
    """
    Build the API. Anything passed in is used as-is; anything missing is
    created by the lifespan handler from ``settings``.
    """
    settings = settings or Settings.from_env()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        setup_logging(settings)
        logger.info("starting_app", env=settings.environment, version=VERSION)

        client = None
        owned_identity = None
        owned_lemonsqueezy = None
        owned_remote_jobs = None

        if app.state.db is None:
            settings.validate_for_startup()
            client, app.state.db = await connect_to_mongo(settings)
            await ensure_indexes(app.state.db)
            logger.info("database_initialized")
        if app.state.storage is None:
            app.state.storage = ObjectStorage(app.state.db, settings.public_base_url)
        if app.state.identity is None:
            app.state.identity = owned_identity = ClerkIdentity(settings)
        if app.state.stripe is None:
            app.state.stripe = StripeGateway(settings)
        if app.state.lemonsqueezy is None:
            app.state.lemonsqueezy = owned_lemonsqueezy = LemonSqueezyGateway(settings)
        if app.state.remote_jobs is None:
            app.state.remote_jobs = owned_remote_jobs = RemoteJobsFeed(settings)

        yield

        logger.info("shutting_down")
        if owned_identity:
            await owned_identity.aclose()
        if owned_lemonsqueezy:
            await owned_lemonsqueezy.aclose()
        if owned_remote_jobs:
            await owned_remote_jobs.aclose()
        await close_mongo_connection(client)

    app = FastAPI(
        title="SkillHire API",
        description="Project-based hiring marketplace: employers post jobs, candidates apply with real projects",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.db = db
    app.state.storage = storage if storage is not None else (ObjectStorage(db, settings.public_base_url) if db is not None else None)
    app.state.identity = identity
    app.state.stripe = stripe_gateway
    app.state.lemonsqueezy = lemonsqueezy_gateway
    app.state.remote_jobs = remote_jobs

    # ===========================
    # MIDDLEWARE (last added runs first)
    # ===========================

    app.add_middleware(RoleAccessMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
    )

    # ===========================
    # EXCEPTION HANDLERS
    # ===========================

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(status_code=400, content={"error": _validation_message(exc)})

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Log full detail, return the generic message."""
        logger.error(
            "unhandled_exception",
            exc_type=type(exc).__name__,
            exc_message=str(exc),
            path=request.url.path,
            exc_info=True,
        )
        return JSONResponse(status_code=500, content={"error": "Internal server error"})

    # ===========================
    # REGISTER ROUTERS
    # ===========================

    app.include_router(users_router)
    app.include_router(jobs_router)
    app.include_router(remote_jobs_router)
    app.include_router(employer_router)
    app.include_router(applications_router)
    app.include_router(payments_router)
    app.include_router(webhooks_router)
    app.include_router(uploads_router)
    app.include_router(pages_router)

    # ===========================
    # ROOT ENDPOINTS
    # ===========================

    @app.get("/")
    async def root():
        return {
            "status": "SkillHire API Running",
            "version": VERSION,
            "documentation": "/docs",
        }

    @app.get("/health")
    async def health_check():
        return {"status": "healthy", "version": VERSION}

    return app


app = create_app()
