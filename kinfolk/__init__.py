"""Kinfolk Assistant, a conversational helper for a personal family CRM.

Architecture Overview
=====================

Each user message is one **turn**, run as a small LangGraph pipeline:

1. **assistant**: builds a system prompt around a compact JSON snapshot of
   the user's people (``context.py``), replays recent user turns
   (``session.py``) and makes exactly one Claude call with the tool catalog
   bound (``orchestrator.py``).

2. **resolve**: every tool call the model proposes is validated against the
   catalog and matched to exactly one person (``tools/resolver.py``).

3. **apply**: validated commands append new records to the store, each
   reported back as applied, failed or skipped (``tools/applier.py``).

Key Design Decisions
--------------------
- **One round trip per turn**: the model never sees tool results; the turn's
  text is returned as-is next to the mutation report.
- **Single tool catalog**: ``tools/registry.py`` is both what the model is
  told and what the resolver enforces.
- **Fail soft**: missing API key or provider errors produce a fixed apology
  text, never an exception.  Per-call failures never block sibling calls.
- **Privacy boundary**: financial records can be written via tools but are
  never put in the model's context.

Package Structure
-----------------
- ``kinfolk/agent.py``: turn graph and ``dispatch_turn``
- ``kinfolk/config.py``: configuration from environment variables
- ``kinfolk/context.py``: people snapshot for the prompt
- ``kinfolk/models.py``: domain and pipeline models
- ``kinfolk/orchestrator.py``: model call and response parsing
- ``kinfolk/prompts.py``: system prompt
- ``kinfolk/session.py``: per-session history
- ``kinfolk/server.py``: FastAPI application
- ``kinfolk/main.py``: CLI chat interface
- ``kinfolk/services/``: in-memory store and metrics
- ``kinfolk/tools/``: tool catalog, resolver, applier
- ``kinfolk/api/``: FastAPI routes and Pydantic schemas
"""
