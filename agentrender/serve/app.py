from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.routing import APIRouter
from loguru import logger
from sse_starlette.sse import AppStatus

from agentrender.log import setup_logging
from agentrender.serve.agents import load_agents
from agentrender.settings import get_settings
from agentrender.streaming.hub import StreamHub

# ---------------------------------------------------------------------------
# Shared singletons initialised during lifespan
# ---------------------------------------------------------------------------
hub = StreamHub()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # -- Startup ---------------------------------------------------------------
    settings = get_settings()
    setup_logging(settings.log_level)

    logger.info("agentrender starting (host={}, port={})", settings.host, settings.port)

    _app.state.hub = hub
    _app.state.agents = load_agents(settings)
    if not _app.state.agents:
        logger.warning("AGENTRENDER_AGENTS not set -- every invoke will be rejected")

    # -- SSE -------------------------------------------------------------------
    # Let open invocation streams complete naturally on shutdown instead of
    # being terminated immediately.
    AppStatus.disable_automatic_graceful_drain()

    yield

    # -- Shutdown --------------------------------------------------------------
    logger.info("agentrender shutting down (open_streams={})", hub.active_count)

    # 1. Stop accepting new invocations.
    hub.begin_shutdown()

    # 2. Wait for open streams to see all their channels complete.
    if hub.active_count > 0:
        timeout = settings.graceful_shutdown_timeout
        logger.info("Waiting for {} open streams to finish (timeout={}s)...", hub.active_count, timeout)
        await hub.wait_until_drained(timeout=timeout)

    # 3. Signal SSE responses to close.  Must happen AFTER the drain so that
    #    clients receive the final frames.
    AppStatus.should_exit = True
    logger.info("SSE: signalled streams to close")


app = FastAPI(title="agentrender", lifespan=lifespan)

# ---------------------------------------------------------------------------
# API router -- all endpoints live under /api
# ---------------------------------------------------------------------------
api = APIRouter(prefix="/api")

from agentrender.serve.routers.invoke import router as invoke_router  # noqa: E402
from agentrender.serve.routers.sessions import router as sessions_router  # noqa: E402

api.include_router(invoke_router)
api.include_router(sessions_router)

app.include_router(api)
