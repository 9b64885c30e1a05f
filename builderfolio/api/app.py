"""
Builderfolio - FastAPI Application Factory

`create_app` wires routes, middleware, exception handlers and the health
endpoints around a `BuilderfolioApp` container that owns the Neo4j, chain
and IPFS clients. The module-level `app` is what uvicorn serves.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import sentry_sdk
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from neo4j.exceptions import (
    ClientError,
    DatabaseError,
    ServiceUnavailable,
    SessionExpired,
    TransientError,
)
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.exceptions import HTTPException as StarletteHTTPException

from builderfolio import __version__
from builderfolio.api.middleware import (
    CorrelationIdMiddleware,
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    RequestSizeLimitMiddleware,
    RequestTimeoutMiddleware,
    SecurityHeadersMiddleware,
)
from builderfolio.chain.contract_service import ContractService
from builderfolio.config import Settings, get_settings
from builderfolio.database.client import Neo4jClient
from builderfolio.database.schema import SchemaManager
from builderfolio.monitoring import configure_logging
from builderfolio.services.ipfs_service import IpfsService
from builderfolio.services.profile_service import (
    ProfileAlreadyMintedError,
    ProfileNotFoundError,
)

if TYPE_CHECKING:
    from sentry_sdk._types import Event as SentryEvent

logger = structlog.get_logger(__name__)

SHUTDOWN_TIMEOUT_SECONDS = 30.0
MAX_BODY_BYTES = 1024 * 1024

# Neo4j availability errors: (message, Retry-After seconds, log level).
DATABASE_RETRY_HINTS: dict[type[Exception], tuple[str, int, str]] = {
    ServiceUnavailable: ("Database temporarily unavailable", 5, "error"),
    SessionExpired: ("Database session expired, please retry", 1, "warning"),
    TransientError: ("Database temporarily unavailable, please retry", 2, "warning"),
}


def _drop_health_check_events(event: SentryEvent, hint: dict[str, Any]) -> SentryEvent | None:
    request_info = event.get("request") or {}
    url = request_info.get("url") if isinstance(request_info, dict) else None
    if isinstance(url, str) and url.rstrip("/").endswith(("/health", "/ready")):
        return None
    return event


def init_observability(settings: Settings) -> None:
    """Configure structlog and, when a DSN is set, Sentry."""
    production = settings.app_env == "production"
    configure_logging(level=settings.log_level, json_output=production, sanitize_logs=True)

    if not settings.sentry_dsn:
        logger.debug("sentry_not_configured")
        return

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        release=f"builderfolio@{__version__}",
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        traces_sample_rate=0.1 if production else 1.0,
        send_default_pii=False,
        before_send=_drop_health_check_events,
    )
    logger.info("sentry_initialized", environment=settings.app_env)


class BuilderfolioApp:
    """Owns the long-lived clients that route dependencies hand out."""

    def __init__(self) -> None:
        self.settings = get_settings()
        self.db_client: Neo4jClient | None = None
        self.contract_service: ContractService | None = None
        self.ipfs_service: IpfsService | None = None
        self.is_ready = False
        self.started_at: datetime | None = None

    async def initialize(self) -> None:
        """
        Bring up the clients in dependency order.

        A database that cannot be reached aborts startup. Schema statements
        that fail, and schema elements the database does not list afterwards,
        are logged and startup continues.
        """
        logger.info("builderfolio_initializing")

        db_client = Neo4jClient()
        try:
            await db_client.connect()
        except (ServiceUnavailable, SessionExpired, OSError) as e:
            logger.critical("database_connection_failed", error=str(e))
            raise RuntimeError(f"Database unreachable at startup: {e}") from e
        self.db_client = db_client

        await self._ensure_schema(db_client)

        self.contract_service = ContractService()
        await self.contract_service.initialize()
        self.ipfs_service = IpfsService()
        await self.ipfs_service.initialize()

        self.started_at = datetime.now(UTC)
        self.is_ready = True
        logger.info("builderfolio_ready", environment=self.settings.app_env)

    async def _ensure_schema(self, db_client: Neo4jClient) -> None:
        """Apply the schema, then report elements still missing from the database."""
        schema_manager = SchemaManager(db_client)
        schema = await schema_manager.setup_all()
        incomplete = sorted(name for name, applied in schema.items() if not applied)
        if incomplete:
            logger.warning("schema_setup_incomplete", failed=incomplete)

        try:
            report = await schema_manager.verify_schema()
        except (ClientError, DatabaseError) as e:
            logger.warning("schema_verification_failed", error=str(e))
            return
        if not report["valid"]:
            logger.warning(
                "schema_elements_missing",
                constraints=report["missing_constraints"],
                indexes=report["missing_indexes"],
            )

    async def shutdown(self) -> None:
        logger.info("builderfolio_shutting_down")
        self.is_ready = False

        ipfs, self.ipfs_service = self.ipfs_service, None
        if ipfs is not None:
            await ipfs.close()

        contracts, self.contract_service = self.contract_service, None
        if contracts is not None:
            try:
                await contracts.close()
            except (RuntimeError, OSError) as e:
                logger.warning("contract_service_shutdown_failed", error=str(e))

        db_client, self.db_client = self.db_client, None
        if db_client is not None:
            await db_client.close()

        logger.info("builderfolio_shutdown_complete")

    def uptime_seconds(self) -> float:
        if self.started_at is None:
            return 0
        return (datetime.now(UTC) - self.started_at).total_seconds()

    def get_status(self) -> dict[str, Any]:
        db_connected = self.db_client is not None and self.db_client.is_connected
        return {
            "status": "ready" if self.is_ready else "starting",
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "uptime_seconds": self.uptime_seconds(),
            "database": "connected" if db_connected else "disconnected",
        }


builderfolio_app = BuilderfolioApp()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    container: BuilderfolioApp = app.state.builderfolio
    try:
        await container.initialize()
        yield
    finally:
        try:
            await asyncio.wait_for(container.shutdown(), timeout=SHUTDOWN_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.error("builderfolio_shutdown_timeout", timeout_seconds=SHUTDOWN_TIMEOUT_SECONDS)


def error_response(
    request: Request,
    status_code: int,
    message: Any,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    """Every error leaves the API as {error, status_code, path, ...}."""
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "status_code": status_code, "path": request.url.path, **extra},
        headers=headers,
    )


def register_exception_handlers(app: FastAPI) -> None:
    async def on_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(request, exc.status_code, exc.detail, headers=exc.headers)

    async def on_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        # Submitted values are never echoed back.
        details = [
            {
                "loc": err.get("loc", []),
                "type": err.get("type", "unknown"),
                "msg": err.get("msg", "Validation failed"),
            }
            for err in exc.errors()
        ]
        return error_response(request, 422, "Validation error", details=details)

    async def on_profile_not_found(request: Request, exc: ProfileNotFoundError) -> JSONResponse:
        return error_response(request, 404, "Profile not found")

    async def on_already_minted(request: Request, exc: ProfileAlreadyMintedError) -> JSONResponse:
        return error_response(request, 400, "Profile NFT already minted", tokenId=exc.token_id)

    async def on_database_unavailable(request: Request, exc: Exception) -> JSONResponse:
        message, retry_after, level = next(
            hint for exc_type, hint in DATABASE_RETRY_HINTS.items() if isinstance(exc, exc_type)
        )
        getattr(logger, level)(
            "database_unavailable",
            error_type=type(exc).__name__,
            path=request.url.path,
            error=str(exc),
        )
        return error_response(
            request,
            503,
            message,
            headers={"Retry-After": str(retry_after)},
            retry_after=retry_after,
        )

    async def on_unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
        return error_response(request, 500, "Internal server error")

    app.add_exception_handler(StarletteHTTPException, on_http_error)
    app.add_exception_handler(RequestValidationError, on_validation_error)
    app.add_exception_handler(ProfileNotFoundError, on_profile_not_found)
    app.add_exception_handler(ProfileAlreadyMintedError, on_already_minted)
    for exc_type in DATABASE_RETRY_HINTS:
        app.add_exception_handler(exc_type, on_database_unavailable)
    app.add_exception_handler(Exception, on_unhandled)


def install_middleware(app: FastAPI, settings: Settings) -> None:
    """The last middleware added is the outermost, so CORS goes on last."""
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RequestSizeLimitMiddleware, max_content_length=MAX_BODY_BYTES)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    app.add_middleware(
        RequestTimeoutMiddleware,
        default_timeout=settings.request_timeout_seconds,
        extended_timeout=settings.tx_receipt_timeout_seconds + settings.request_timeout_seconds,
    )
    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.app_env != "development")

    origins = settings.cors_origins_list
    if not origins:
        logger.warning("cors_origins_empty")
        return
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Correlation-ID"],
    )


def add_health_routes(app: FastAPI, title: str, version: str) -> None:
    """Liveness at /health, readiness (including a database ping) at /ready."""

    def current() -> BuilderfolioApp:
        container: BuilderfolioApp = app.state.builderfolio
        return container

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {"name": title, "version": version, "status": current().get_status()}

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "healthy" if current().is_ready else "starting"}

    @app.get("/ready", include_in_schema=False)
    async def ready() -> JSONResponse:
        container = current()
        if not container.is_ready:
            return JSONResponse(status_code=503, content={"status": "not_ready"})

        if container.db_client is not None:
            try:
                reachable = await container.db_client.verify_connection()
            except (*DATABASE_RETRY_HINTS, OSError):
                reachable = False
            if not reachable:
                return JSONResponse(
                    status_code=503,
                    content={"status": "degraded", "reason": "database_unreachable"},
                    headers={"Retry-After": "5"},
                )
        return JSONResponse(content={"status": "ready"})


def create_app(
    title: str = "Builderfolio API",
    description: str = "Web3 developer profiles with on-chain support",
    version: str = __version__,
    docs_url: str | None = "/docs",
    redoc_url: str | None = "/redoc",
    container: BuilderfolioApp | None = None,
    use_lifespan: bool = True,
) -> FastAPI:
    """
    Build the API.

    Args:
        title: OpenAPI title
        description: OpenAPI description
        version: Reported API version
        docs_url: Swagger UI path, None to disable (always off in production)
        redoc_url: ReDoc path, None to disable (always off in production)
        container: Client container, the module-level one by default
        use_lifespan: Connect clients on startup; tests pass False
    """
    from builderfolio.api.routes import farcaster_router, profiles_router, support_router

    settings = get_settings()
    if settings.app_env == "production":
        docs_url = redoc_url = None

    app = FastAPI(
        title=title,
        description=description,
        version=version,
        docs_url=docs_url,
        redoc_url=redoc_url,
        debug=settings.debug,
        lifespan=lifespan if use_lifespan else None,
        openapi_tags=[
            {"name": "profiles", "description": "Developer profiles and profile NFTs"},
            {"name": "support", "description": "On-chain tips and their messages"},
            {"name": "farcaster", "description": "Farcaster account linking"},
        ],
    )
    app.state.builderfolio = container or builderfolio_app

    install_middleware(app, settings)
    register_exception_handlers(app)

    for router, tag in (
        (profiles_router, "profiles"),
        (support_router, "support"),
        (farcaster_router, "farcaster"),
    ):
        app.include_router(router, prefix="/api", tags=[tag])
    add_health_routes(app, title, version)

    logger.info("fastapi_app_created", title=title, version=version, docs_url=docs_url)
    return app


init_observability(get_settings())

app = create_app()


def run_server(
    host: str | None = None,
    port: int | None = None,
    reload: bool = False,
    workers: int = 1,
) -> None:
    """
    Serve the API with uvicorn.

    Development:
        python -m builderfolio.api.app

    Production:
        uvicorn builderfolio.api.app:app --host 0.0.0.0 --port 3001 --workers 4
    """
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "builderfolio.api.app:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=reload,
        workers=workers,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server(reload=True)
