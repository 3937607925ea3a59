"""
envault API — FastAPI application.

Start:
  envault serve
  # or
  uvicorn envault.api.app:app --host 0.0.0.0 --port 4000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from envault import __version__
from envault.api.middleware import CorrelationMiddleware
from envault.api.workspace import router as workspace_router
from envault.config import Config, get_config
from envault.errors import init_error_tracking
from envault.store import create_store
from envault.store.base import DocumentStore

logger = logging.getLogger(__name__)


def create_app(store: DocumentStore | None = None, cfg: Config | None = None) -> FastAPI:
    """Build the API. ``store`` defaults to the backend selected by config."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        config = cfg or get_config()
        init_error_tracking(config.sentry)
        if getattr(app.state, "store", None) is None:
            app.state.store = create_store(config)
        logger.info("envault API started (store=%s)", app.state.store.backend)
        yield
        app.state.store.close()

    app = FastAPI(title="envault", version=__version__, lifespan=lifespan)
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationMiddleware)

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse({"message": exc.detail}, status_code=exc.status_code)

    @app.get("/health")
    async def health(request: Request):
        return {"status": "ok", "store": request.app.state.store.backend}

    app.include_router(workspace_router)
    return app


app = create_app()
