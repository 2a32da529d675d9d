"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from kinfolk.models import MutationOutcome
from kinfolk.tools.registry import CATALOG_VERSION


class ChatRequest(BaseModel):
    """Incoming chat message from the frontend."""

    message: str = Field(..., min_length=1, max_length=2000, description="The user's message")
    session_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Unique session identifier for conversation continuity",
    )


class ChatResponse(BaseModel):
    """Reply text plus what happened to each tool call in the turn."""

    reply: str = Field(..., description="The assistant's response message")
    session_id: str = Field(..., description="The session ID for this conversation")
    mutations: list[MutationOutcome] = Field(default_factory=list)


class CreatePersonRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    relation: str = Field(..., min_length=1, max_length=100)
    birthday: str | None = None
    email: str | None = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "kinfolk-assistant"
    model_configured: bool = False
    catalog_version: str = CATALOG_VERSION
