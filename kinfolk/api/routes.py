"""FastAPI route definitions for the Kinfolk assistant API."""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, HTTPException, Request, Response

from kinfolk import config
from kinfolk.agent import dispatch_turn
from kinfolk.api.schemas import ChatRequest, ChatResponse, CreatePersonRequest, HealthResponse
from kinfolk.models import Person
from kinfolk.session import ConversationSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_agent(request: Request):
    """Retrieve the compiled turn graph from app state (set in the lifespan)."""
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return agent


def _get_session(request: Request, session_id: str) -> tuple[ConversationSession, asyncio.Lock]:
    """Return the session and its lock, creating both on first use.

    ``app.state.sessions`` is kept in least-recently-used order.  Once it
    holds more than ``config.MAX_SESSIONS`` entries the oldest sessions
    without a turn in flight are dropped.
    """
    sessions = request.app.state.sessions
    entry = sessions.pop(session_id, None)
    if entry is None:
        entry = (ConversationSession(session_id), asyncio.Lock())
    sessions[session_id] = entry

    for stale_id in list(sessions):
        if len(sessions) <= config.MAX_SESSIONS:
            break
        if stale_id == session_id or sessions[stale_id][1].locked():
            continue
        del sessions[stale_id]
        logger.info("Evicted idle session %s", stale_id)
    return entry


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Health check endpoint."""
    orchestrator = getattr(request.app.state, "orchestrator", None)
    return HealthResponse(model_configured=bool(orchestrator and orchestrator.configured))


@router.get("/people", response_model=list[Person])
async def list_people(request: Request):
    return request.app.state.store.list_people()


@router.post("/people", response_model=Person, status_code=201)
async def create_person(body: CreatePersonRequest, request: Request):
    return request.app.state.store.add_person(
        body.name, body.relation, birthday=body.birthday, email=body.email,
    )


@router.delete("/sessions/{session_id}", status_code=204)
async def forget_session(session_id: str, request: Request):
    """Drop a session's history and applied-call ledger."""
    if request.app.state.sessions.pop(session_id, None) is None:
        raise HTTPException(status_code=404, detail="Unknown session.")
    return Response(status_code=204)


@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest, http_request: Request):
    """Send a message to the assistant and get its reply and mutation report.

    Turns of the same session run one at a time (per-session lock) so their
    mutations are applied in the order the user sent them.  The graph call
    blocks on the model provider, so it runs in a worker thread.
    """
    agent = _get_agent(http_request)
    store = http_request.app.state.store
    request_id = getattr(http_request.state, "request_id", "?")
    session, lock = _get_session(http_request, request.session_id)

    try:
        async with lock:
            result = await asyncio.to_thread(
                dispatch_turn,
                agent,
                session,
                request.message,
                store.list_people(),
            )
    except Exception as e:
        # Log the traceback server-side only; never leak internals to the client.
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    return ChatResponse(
        reply=result.text,
        session_id=request.session_id,
        mutations=result.mutations,
    )
