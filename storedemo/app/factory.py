"""
Application factory — builds the FastAPI app around explicitly constructed stores.

The Stores bundle is created here (or injected by the caller, e.g. tests)
and lives on `app.state.stores`; nothing holds module-level clients.
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import Optional

from fastapi import Depends, FastAPI, Response
from fastapi.responses import JSONResponse, PlainTextResponse

# ── Core infrastructure ──
from storedemo.app.core.auth import DemoAuthMiddleware
from storedemo.app.core.config import Settings, get_settings as load_settings
from storedemo.app.core.errors import StartupError, register_error_handlers
from storedemo.app.core.health import run_readiness_check
from storedemo.app.core.logging_config import get_logger
from storedemo.app.core.middleware import RequestLoggingMiddleware
from storedemo.app.core.platform import describe_platform
from storedemo.app.core.telemetry import setup_tracing, shutdown_tracing

# ── Stores & diagnostics ──
from storedemo.app.api.dependencies import get_settings, get_stores
from storedemo.app.api.schemas import ReadinessOut
from storedemo.app.selftest.service import run_and_log_self_test, run_self_test
from storedemo.app.stores.container import Stores

# ── API routers ──
from storedemo.app.api.cache import router as cache_router
from storedemo.app.api.items import router as items_router
from storedemo.app.api.objects import router as objects_router

logger = get_logger(__name__)


# ── Startup sequence ──

async def start_dependencies(stores: Stores, config: Settings) -> None:
    """Wait for Postgres (fatal on exhaustion), migrate, then wait for S3."""
    if not await stores.items.wait_until_ready(config.DB_STARTUP_ATTEMPTS, config.DB_STARTUP_DELAY):
        raise StartupError("Postgres not ready after retries")
    await stores.items.migrate(seed=config.SEED_DB)

    if stores.objects.configured:
        # Best effort: a local MinIO bucket may appear a little later
        if not await stores.objects.wait_until_ready(config.DB_STARTUP_ATTEMPTS, config.DB_STARTUP_DELAY):
            logger.warning("S3 bucket %s not reachable yet; continuing", stores.objects.bucket)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown events."""
    config: Settings = app.state.settings
    stores: Stores = app.state.stores

    await start_dependencies(stores, config)
    logger.info(
        "[%s] env=%s %s level=%s listening on :%d",
        config.APP_NAME, config.APP_ENV, describe_platform(config.platform_override),
        config.LOG_LEVEL, config.PORT,
    )

    selftest_task: Optional[asyncio.Task] = None
    if config.SELF_TEST_ON_BOOT:
        selftest_task = asyncio.create_task(run_and_log_self_test(stores))

    yield

    if selftest_task is not None and not selftest_task.done():
        selftest_task.cancel()
        with suppress(asyncio.CancelledError):
            await selftest_task
    await stores.close()
    shutdown_tracing(app.state.tracer_provider)
    logger.info("Shutting down %s", config.APP_NAME)


# ── Root overview ──

def build_overview(config: Settings) -> str:
    public_endpoints = [
        "- GET  /           this overview",
        "- GET  /healthz    liveness (200 when the process is up)",
        "- GET  /robots.txt, /favicon.ico",
    ]
    protected_endpoints = [
        "- GET  /selftest   end-to-end CRUD across services",
        "- POST/GET/DELETE /s3/:id",
        "- POST/GET        /db/items",
        "- GET/PUT/DELETE  /db/items/:id",
        "- POST/GET/PUT/DELETE /cache/:key",
    ]
    readyz_line = "- GET  /readyz     readiness (checks S3/DB/Redis)"
    if config.READYZ_PUBLIC:
        public_endpoints.append(readyz_line)
    else:
        protected_endpoints.insert(0, readyz_line)

    return "\n".join([
        f"{config.APP_NAME} — backing store demo",
        "",
        f"Environment: {config.APP_ENV}",
        f"Log level: {config.LOG_LEVEL}",
        f"Port: {config.PORT}",
        "",
        f"- S3 bucket: {config.S3_BUCKET or '(not configured)'}",
        "- Postgres for data storage",
        "- Redis for cache/kv",
        "",
        "Public endpoints (no auth required):",
        *public_endpoints,
        "",
        "Protected endpoints (auth required):",
        *protected_endpoints,
        "",
        "How to authenticate:",
        "- Send Authorization: Bearer <APP_AUTH_SECRET>",
        "- Or append ?token=<APP_AUTH_SECRET> to the URL",
        "",
        "Operational notes:",
        "- Container health check targets /healthz",
        "- Set LOG_LEVEL=debug to log probe and asset requests",
    ])


# ── Create application ──

def create_app(config: Optional[Settings] = None, stores: Optional[Stores] = None) -> FastAPI:
    """Build the app around explicitly constructed stores."""
    config = config or load_settings()
    engine = None
    if stores is None:
        stores = Stores.from_settings(config)
        engine = stores.items.database.engine

    app = FastAPI(
        title=config.APP_NAME,
        description=(
            "Connectivity and CRUD demo against S3 object storage, "
            "Postgres and Redis, with readiness and self-test endpoints."
        ),
        version=config.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.settings = config
    app.state.stores = stores

    # ── Middleware stack (last added is outermost) ──
    app.add_middleware(
        DemoAuthMiddleware,
        secret=config.APP_AUTH_SECRET,
        readyz_public=config.READYZ_PUBLIC,
    )
    app.add_middleware(RequestLoggingMiddleware, debug=config.DEBUG)

    # ── Error handlers ──
    register_error_handlers(app, config)

    # ── Register routers ──
    app.include_router(objects_router)
    app.include_router(items_router)
    app.include_router(cache_router)

    # ── Root & diagnostics endpoints ──

    @app.get("/", tags=["root"], response_class=PlainTextResponse)
    async def root(config: Settings = Depends(get_settings)):
        logger.info("[root] overview served env=%s %s", config.APP_ENV, describe_platform(config.platform_override))
        return PlainTextResponse(build_overview(config))

    @app.get("/healthz", tags=["health"], response_class=PlainTextResponse)
    async def healthz():
        """Liveness probe — no backing-store checks."""
        logger.debug("[healthz] liveness check OK")
        return PlainTextResponse("ok")

    @app.get("/robots.txt", include_in_schema=False, response_class=PlainTextResponse)
    async def robots():
        return PlainTextResponse("User-agent: *\nDisallow:")

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    @app.get("/readyz", tags=["health"], response_model=ReadinessOut)
    async def readyz(
        stores: Stores = Depends(get_stores),
        config: Settings = Depends(get_settings),
    ):
        """Readiness probe — S3 (if configured), Postgres and Redis."""
        report = await run_readiness_check(stores, config)
        return report.to_dict()

    @app.get("/selftest", tags=["health"])
    async def selftest(stores: Stores = Depends(get_stores)):
        """End-to-end CRUD across all three stores."""
        try:
            result = await run_self_test(stores)
        except Exception as e:
            logger.exception("[selftest] unexpected failure")
            return JSONResponse(status_code=500, content={"error": str(e) or "selftest failed"})
        return result.to_dict()

    app.state.tracer_provider = setup_tracing(app, config, engine)
    return app


