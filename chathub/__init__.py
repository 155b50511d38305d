# Uvicorn application factory <https://www.uvicorn.org/#application-factories>
import os
import sys
from asyncio import gather
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from chathub.api.ws.protocol import JSONHubProtocol
from chathub.logging import logger
from chathub.managers.broadcast import BroadcastDispatcher
from chathub.managers.connection_registry import ConnectionRegistry
from chathub.middlewares.correlation_id import CorrelationIDMiddleware
from chathub.middlewares.logging_context import LoggingContextMiddleware
from chathub.middlewares.prometheus import PrometheusMiddleware
from chathub.routing import collect_subrouters
from chathub.schemas.hub import CloseMessage
from chathub.settings import app_settings

__version__ = "1.0.0"

DEFAULT_STATIC_DIR = os.path.join(os.path.dirname(__file__), "static")


async def close_all_connections(registry: ConnectionRegistry) -> int:
    """
    Gracefully close every live hub connection.

    Each client gets a close message, its pending frames are flushed
    (bounded by WS_CLOSE_TIMEOUT_SECONDS) and its socket is closed.

    Returns:
        Number of connections that were closed.
    """
    connections = registry.snapshot()
    if not connections:
        return 0

    close_frame = JSONHubProtocol().write_message(CloseMessage())
    for connection in connections:
        registry.unregister(connection.connection_id)

    await gather(
        *[connection.shutdown(close_frame) for connection in connections],
        return_exceptions=True,
    )

    return len(connections)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPI lifespan context manager for startup and shutdown.

    Startup:
    - Initializes the app_info Prometheus metric

    Shutdown:
    - Closes all live hub connections
    """
    logger.info("Application startup initiated")

    from chathub.utils.metrics import app_info

    app_info.labels(
        version=__version__,
        python_version=f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        environment=app_settings.ENVIRONMENT,
    ).set(1)
    logger.info("Initialized Prometheus metrics")

    yield  # Application runs here

    logger.info("Application shutdown initiated")

    closed = await close_all_connections(app.state.registry)
    if closed:
        logger.info(f"Closed {closed} hub connections")

    logger.info("Application shutdown complete")


def mount_static_files(app: FastAPI) -> None:
    """
    Serve static files at `/` with index.html as the default document.

    Mounted last so API and hub routes take precedence. Skipped when
    SERVE_STATIC is off or the directory does not exist.
    """
    if not app_settings.SERVE_STATIC:
        return

    directory = app_settings.STATIC_DIR or DEFAULT_STATIC_DIR
    if not os.path.isdir(directory):
        logger.warning(f"Static directory {directory} not found, skipping")
        return

    app.mount("/", StaticFiles(directory=directory, html=True), name="static")


def application() -> FastAPI:
    """
    Initializes and configures the FastAPI application.

    - Creates the ConnectionRegistry and BroadcastDispatcher owned by this
      application and stores them on `app.state`
    - Includes the routers collected by `collect_subrouters()` (HTTP APIs
      and the hub websocket endpoint)
    - Adds the correlation ID, logging context and Prometheus middlewares
    - Mounts static files
    """
    app = FastAPI(
        title="Chat hub",
        description="Real-time chat broadcast hub",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.registry = ConnectionRegistry()
    app.state.dispatcher = BroadcastDispatcher(app.state.registry)

    app.include_router(collect_subrouters())

    # Middlewares (execute in REVERSE order of registration)
    # Execution flow: CorrelationIDMiddleware → LoggingContextMiddleware → PrometheusMiddleware
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(LoggingContextMiddleware)
    app.add_middleware(CorrelationIDMiddleware)

    mount_static_files(app)

    return app
