"""
FastAPI application factory for the power monitor.

``create_app(settings)`` wires every router and a lifespan that builds the
shared components (store, Tuya client, fan-out, supervisor, health reporter,
chart cache), starts the polling loop as a background task, and tears it all
down again on shutdown. Tests pass pre-built components and
``start_polling=False`` to get the HTTP surface without a live loop.

CHANGELOG:
- 2026-10-20: Malformed request bodies get the 400 failure envelope (STORY-018)
- 2026-10-12: Register switch, admin and health routers (STORY-015)
- 2026-10-11: Build components in the lifespan (STORY-014)
- 2026-10-07: Initial creation (STORY-010)
"""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncEngine

from plug_monitor import __version__
from plug_monitor.api.admin import router as admin_router
from plug_monitor.api.charts import router as charts_router
from plug_monitor.api.deps import Components
from plug_monitor.api.health import router as health_router
from plug_monitor.api.live import router as live_router
from plug_monitor.api.switch import router as switch_router
from plug_monitor.cache.redis_client import ChartCache
from plug_monitor.config import Settings
from plug_monitor.db.session import create_engine, create_session_factory, init_schema
from plug_monitor.device.tuya import TuyaClient
from plug_monitor.errors import ValidationFailure
from plug_monitor.polling.restart import ProcessRestarter
from plug_monitor.polling.supervisor import PollingSupervisor
from plug_monitor.services.aggregation import AggregationEngine
from plug_monitor.services.fanout import LiveFanout
from plug_monitor.services.health import HealthReporter
from plug_monitor.services.store import TelemetryStore

logger = logging.getLogger(__name__)


async def build_components(settings: Settings) -> tuple[Components, AsyncEngine]:
    """Build the production components from settings.

    Creates the database schema if needed.

    Returns:
        The components and the engine backing the store (disposed on
        shutdown).
    """
    engine = create_engine(settings.database_url)
    await init_schema(engine)
    store = TelemetryStore(
        create_session_factory(engine),
        write_timeout_s=settings.store_write_timeout_s,
    )
    provider = TuyaClient(
        settings.tuya_client_id,
        settings.tuya_client_secret,
        settings.tuya_api_region,
        timeout_s=settings.fetch_timeout_s,
    )
    fanout = LiveFanout(send_timeout_s=settings.broadcast_send_timeout_s)
    restarter = ProcessRestarter()
    supervisor = PollingSupervisor(
        provider=provider,
        store=store,
        fanout=fanout,
        restarter=restarter,
        device_id=settings.tuya_device_id,
        interval_s=settings.poll_interval_s,
        fetch_timeout_s=settings.fetch_timeout_s,
        failure_threshold=settings.failure_threshold,
        failure_restart_delay_s=settings.failure_restart_delay_s,
        manual_restart_delay_s=settings.manual_restart_delay_s,
    )
    components = Components(
        store=store,
        aggregation=AggregationEngine(store),
        fanout=fanout,
        provider=provider,
        restarter=restarter,
        supervisor=supervisor,
        health=HealthReporter(lambda: supervisor.state),
        cache=ChartCache(settings.redis_url, ttl_s=settings.cache_ttl_s),
    )
    return components, engine


def create_app(
    settings: Settings,
    *,
    components: Components | None = None,
    start_polling: bool = True,
) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Runtime configuration.
        components: Pre-built components. When omitted they are built from
            ``settings`` at startup and closed at shutdown.
        start_polling: Whether to run the polling loop in the background.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Build components, start the poll loop, and tear down on exit."""
        engine: AsyncEngine | None = None
        if components is None:
            built, engine = await build_components(settings)
        else:
            built = components
        app.state.settings = settings
        app.state.components = built

        shutdown_event = asyncio.Event()
        poll_task: asyncio.Task[None] | None = None
        if start_polling:
            poll_task = asyncio.create_task(built.supervisor.run(shutdown_event))

        logger.info("Power monitor API ready (device=%s)", settings.tuya_device_id)
        yield
        logger.info("Power monitor API shutting down")

        shutdown_event.set()
        if poll_task is not None:
            await poll_task
        await built.restarter.cancel()
        if engine is not None:
            await built.provider.aclose()
            await engine.dispose()

    app = FastAPI(
        title="Smart Plug Power Monitor",
        description="Live and historical power telemetry for a Tuya smart plug.",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.exception_handler(ValidationFailure)
    async def validation_failure_handler(request: Request, exc: ValidationFailure) -> JSONResponse:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
        logger.info("Rejected malformed %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": f"Malformed request: {message}"},
        )

    app.include_router(health_router)
    app.include_router(charts_router)
    app.include_router(switch_router)
    app.include_router(admin_router)
    app.include_router(live_router)

    @app.get("/")
    async def root() -> dict:
        """Root health check endpoint."""
        return {"status": "ok"}

    return app
