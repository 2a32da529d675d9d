"""LangGraph turn pipeline for the Kinfolk assistant.

Architecture:
  One user message runs through a StateGraph with three nodes:

    1. **assistant**: a single model round trip via the
                       :class:`~kinfolk.orchestrator.RequestOrchestrator`
    2. **resolve**  : validates each proposed tool call and binds it to a person
    3. **apply**    : appends the resulting records to the store

  Routing:
    assistant → (tool calls?)    → resolve → apply → END
              → (no tool calls?) → END

  There is no edge back from ``apply`` to ``assistant``: the model proposes
  its tool calls once per turn and never sees their results.

  History:
    The graph is stateless between turns.  Callers own a
    :class:`~kinfolk.session.ConversationSession` and pass it to
    :func:`dispatch_turn`, which builds the request turns and records the
    exchange afterwards.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from langchain_core.messages import AnyMessage
from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from kinfolk.models import MutationOutcome, MutationStatus, Person, Resolution, TurnResult
from kinfolk.orchestrator import ModelReply, RequestOrchestrator
from kinfolk.services.store import RecordStore
from kinfolk.session import ConversationSession
from kinfolk.tools.applier import apply_resolutions
from kinfolk.tools.registry import CATALOG_VERSION
from kinfolk.tools.resolver import resolve_tool_calls

logger = logging.getLogger(__name__)


# ── State schema ─────────────────────────────────────────────────────


class TurnState(TypedDict, total=False):
    """Everything one turn needs and produces.

    ``people`` is a read-only snapshot for this turn only.
    ``applied_call_ids`` holds tool-call ids this session has already
    applied; ``apply`` skips them.
    """

    turns: list[AnyMessage]
    people: list[Person]
    applied_call_ids: set[str]
    reply: ModelReply
    resolutions: list[Resolution]
    outcomes: list[MutationOutcome]


# ── Nodes ────────────────────────────────────────────────────────────


def _make_assistant_node(orchestrator: RequestOrchestrator):
    def assistant_node(state: TurnState) -> dict:
        """Ask the model once; failures come back as the fallback reply."""
        reply = orchestrator.request(state["turns"], state.get("people", []))
        return {"reply": reply}

    return assistant_node


def _make_resolve_node():
    def resolve_node(state: TurnState) -> dict:
        reply = state["reply"]
        resolutions = resolve_tool_calls(reply.tool_calls, state.get("people", []))
        logger.debug(
            "Resolved %d/%d tool call(s)",
            sum(1 for r in resolutions if r.ok), len(resolutions),
        )
        return {"resolutions": resolutions}

    return resolve_node


def _make_apply_node(store: RecordStore):
    def apply_node(state: TurnState) -> dict:
        outcomes = apply_resolutions(
            state.get("resolutions", []),
            store,
            already_applied=set(state.get("applied_call_ids", ())),
        )
        return {"outcomes": outcomes}

    return apply_node


# ── Conditional edges ────────────────────────────────────────────────


def should_resolve_tools(state: TurnState) -> str:
    """Go on to resolution only when the reply carries tool calls."""
    reply = state.get("reply")
    if reply is not None and reply.tool_calls:
        return "resolve"
    return END


# ── Graph assembly ───────────────────────────────────────────────────


def create_kinfolk_agent(
    store: RecordStore,
    orchestrator: RequestOrchestrator | None = None,
):
    """Build and compile the turn graph writing to *store*.

    Returns a compiled graph; use :func:`dispatch_turn` to run it.
    """
    orchestrator = orchestrator or RequestOrchestrator()
    graph = StateGraph(TurnState)

    graph.add_node("assistant", _make_assistant_node(orchestrator))
    graph.add_node("resolve", _make_resolve_node())
    graph.add_node("apply", _make_apply_node(store))

    graph.set_entry_point("assistant")
    graph.add_conditional_edges(
        "assistant", should_resolve_tools, {"resolve": "resolve", END: END},
    )
    graph.add_edge("resolve", "apply")
    graph.add_edge("apply", END)

    compiled = graph.compile()
    logger.debug(
        "Kinfolk agent compiled (tool catalog %s, model configured: %s)",
        CATALOG_VERSION, orchestrator.configured,
    )
    return compiled


# ── Entry point ──────────────────────────────────────────────────────


def dispatch_turn(
    agent,
    session: ConversationSession,
    message: str,
    people: Sequence[Person],
) -> TurnResult:
    """Run one turn and return the reply text plus a report per tool call.

    The exchange is recorded in *session* and the ids of applied tool calls
    are remembered so a replayed response cannot apply them twice.
    """
    result = agent.invoke(
        {
            "turns": session.build_turns(message),
            "people": list(people),
            "applied_call_ids": set(session.applied_call_ids),
            "outcomes": [],
        }
    )
    reply: ModelReply = result["reply"]
    outcomes: list[MutationOutcome] = result.get("outcomes") or []

    session.record_turn(message, reply.text)
    session.applied_call_ids.update(
        o.call_id for o in outcomes if o.status is MutationStatus.APPLIED and o.call_id
    )
    return TurnResult(text=reply.text, mutations=outcomes)
