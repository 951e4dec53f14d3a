"""
HTTP surface.

POST /chat hands the body to the chat orchestrator; GET /health reports
database reachability and which provider keys are configured.
"""

import json
import sqlite3
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from framium import __version__
from framium.config.loader import FramiumConfig
from framium.core.orchestrator import ChatOrchestrator, build_orchestrator
from framium.storage.db import initialize_schema, ping

logger = structlog.get_logger(__name__)


def create_app(
    config: Optional[FramiumConfig] = None,
    orchestrator: Optional[ChatOrchestrator] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Collaborators are constructed once here and shared by every request.

    Args:
        config: Application configuration, defaults to FramiumConfig.default()
        orchestrator: Pre-built orchestrator, defaults to one built from config
    """
    config = config or FramiumConfig.default()
    owns_orchestrator = orchestrator is None
    if owns_orchestrator:
        initialize_schema(config.database)
        orchestrator = build_orchestrator(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Close provider clients on shutdown."""
        yield
        if owns_orchestrator:
            app.state.orchestrator.close()
            logger.info("provider_clients_closed")

    app = FastAPI(title="Framium", version=__version__, lifespan=lifespan)
    app.state.config = config
    app.state.orchestrator = orchestrator

    @app.post("/chat")
    async def chat(request: Request) -> JSONResponse:
        """Metered chat completion."""
        body = await request.body()
        try:
            payload = json.loads(body) if body else None
        except ValueError:
            payload = None
        # Orchestration does blocking database and provider I/O
        result = await run_in_threadpool(request.app.state.orchestrator.handle, payload)
        return JSONResponse(status_code=result.status_code, content=result.body)

    @app.get("/health")
    def health(request: Request) -> JSONResponse:
        cfg: FramiumConfig = request.app.state.config
        services = {"database": "unknown"}
        status = "healthy"

        try:
            ping(cfg.database)
            services["database"] = "healthy"
        except sqlite3.Error as e:
            logger.error("database_health_check_failed", error=str(e))
            services["database"] = "unhealthy"
            status = "unhealthy"

        # Key presence only, no live provider calls
        keys = cfg.api_keys
        services["openai"] = "configured" if keys.openai else "missing"
        services["anthropic"] = "configured" if keys.anthropic else "missing"
        services["gemini"] = "configured" if keys.gemini else "missing"

        return JSONResponse(
            status_code=200 if status == "healthy" else 503,
            content={
                "status": status,
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "services": services,
                "version": __version__,
            },
        )

    return app
