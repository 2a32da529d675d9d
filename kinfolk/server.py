"""FastAPI server for the Kinfolk assistant.

Run with:
    uvicorn kinfolk.server:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from kinfolk.agent import create_kinfolk_agent
from kinfolk.api.routes import router
from kinfolk.config import CORS_ORIGINS, PEOPLE_DATA_PATH, SERVER_HOST, SERVER_PORT
from kinfolk.orchestrator import RequestOrchestrator
from kinfolk.services.store import InMemoryStore

# ── Logging ──────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)


def _load_store() -> InMemoryStore:
    if PEOPLE_DATA_PATH:
        return InMemoryStore.from_json_file(PEOPLE_DATA_PATH)
    logger.info("PEOPLE_DATA_PATH not set, starting with an empty store")
    return InMemoryStore()


# ── Lifespan: initialise / tear-down shared resources ────────────────
@asynccontextmanager
async def lifespan(application: FastAPI):
    """Build the store, the orchestrator and the turn graph once."""
    application.state.store = _load_store()
    application.state.orchestrator = RequestOrchestrator()
    application.state.sessions = {}
    logger.info("Compiling turn graph…")
    application.state.agent = create_kinfolk_agent(
        application.state.store, application.state.orchestrator,
    )
    logger.info("Assistant ready.")
    yield


# ── FastAPI application ──────────────────────────────────────────────
app = FastAPI(
    title="Kinfolk Assistant",
    description=(
        "Conversational assistant for a personal family CRM: ask about the "
        "people in your life and add todos, health records, notes and finances."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS (needed for the web frontend) ───────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Request-ID middleware ────────────────────────────────────────────
@app.middleware("http")
async def add_request_id(request: Request, call_next) -> Response:
    """Attach a request ID (echoed as ``X-Request-ID``) for log correlation."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    request.state.request_id = request_id
    logger.info("[%s] %s %s", request_id, request.method, request.url.path)
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Register routes ──────────────────────────────────────────────────
app.include_router(router, prefix="/api")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "service": "Kinfolk Assistant",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/health",
    }


if __name__ == "__main__":
    logger.info("Starting Kinfolk API server on %s:%d", SERVER_HOST, SERVER_PORT)
    uvicorn.run(
        "kinfolk.server:app",
        host=SERVER_HOST,
        port=SERVER_PORT,
        reload=True,
    )
