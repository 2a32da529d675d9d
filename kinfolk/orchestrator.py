"""One request/response round trip with the chat model.

The orchestrator frames the request (system prompt with the people snapshot,
replayed user turns, the tool catalog), calls the model once and turns the
answer into a :class:`ModelReply`.

It never raises.  A missing API key, a provider error or a response that
cannot be parsed all produce :meth:`ModelReply.fallback`, whose text is the
fixed :data:`FALLBACK_TEXT`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import BaseMessage, SystemMessage
from pydantic import BaseModel, Field

from kinfolk import config
from kinfolk.context import format_context
from kinfolk.models import Person, ToolCallProposal
from kinfolk.prompts import get_system_prompt
from kinfolk.services.metrics import metrics
from kinfolk.tools.registry import as_provider_tools

logger = logging.getLogger(__name__)

FALLBACK_TEXT = "I had a little trouble thinking through that. Could you try asking again?"
TOOL_ONLY_TEXT = "I'm on it."
EMPTY_REPLY_TEXT = "I'm not sure how to answer that, but I'm here to help!"


class MalformedResponse(ValueError):
    """The provider answered, but not in a shape we can use."""


class ModelReply(BaseModel):
    """Result of a round trip: either a real answer or the fallback."""

    ok: bool = True
    text: str
    tool_calls: list[ToolCallProposal] = Field(default_factory=list)

    @classmethod
    def fallback(cls) -> ModelReply:
        return cls(ok=False, text=FALLBACK_TEXT)


# ── LLM builder ─────────────────────────────────────────────────────


def _build_llm(api_key: str):
    """Build the chat model with the tool catalog bound to it."""
    llm = ChatAnthropic(
        model=config.MODEL_NAME,
        api_key=api_key,
        temperature=config.MODEL_TEMPERATURE,
        max_tokens=config.MODEL_MAX_TOKENS,
        timeout=config.REQUEST_TIMEOUT_SECONDS,
    )
    return llm.bind_tools(as_provider_tools())


# ── Response parsing ────────────────────────────────────────────────


def _extract_text(content: Any) -> str:
    """Join the text parts of a message ``content`` (string or block list)."""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(str(block.get("text", "")))
        return "".join(parts).strip()
    raise MalformedResponse(f"unexpected content type {type(content).__name__}")


def _proposal(call: Any) -> ToolCallProposal:
    """Wrap one raw tool call; unusable entries become nameless proposals.

    The resolver rejects those as unknown tools, so a broken entry is
    reported without discarding its siblings or the reply text.
    """
    if not isinstance(call, dict):
        logger.warning("Unexpected tool call entry %r", call)
        return ToolCallProposal(name="", args=call)
    name = call.get("name")
    call_id = call.get("id")
    return ToolCallProposal(
        name=name if isinstance(name, str) else str(name or ""),
        args=call.get("args"),
        call_id=call_id if isinstance(call_id, str) else None,
    )


def parse_response(response: Any) -> ModelReply:
    """Convert a LangChain ``AIMessage`` into a :class:`ModelReply`.

    Tool calls whose arguments the provider could not decode
    (``invalid_tool_calls``) are kept as proposals with their raw arguments
    so the resolver reports them instead of dropping them.
    """
    content = getattr(response, "content", None)
    if content is None:
        raise MalformedResponse("response has no content")
    text = _extract_text(content)

    raw_calls = list(getattr(response, "tool_calls", None) or [])
    raw_calls += list(getattr(response, "invalid_tool_calls", None) or [])
    proposals = [_proposal(call) for call in raw_calls]

    if not text:
        text = TOOL_ONLY_TEXT if proposals else EMPTY_REPLY_TEXT
    return ModelReply(text=text, tool_calls=proposals)


# ── Orchestrator ────────────────────────────────────────────────────


class RequestOrchestrator:
    """Frames the request and performs the single model call for a turn."""

    def __init__(self, api_key: str | None = None) -> None:
        api_key = api_key or config.ANTHROPIC_API_KEY
        self._llm = None
        if not api_key:
            logger.warning("ANTHROPIC_API_KEY is not configured; replies will use the fallback text")
            return
        try:
            self._llm = _build_llm(api_key)
        except Exception:
            logger.exception("Could not build the chat model; replies will use the fallback text")

    @property
    def configured(self) -> bool:
        return self._llm is not None

    def build_messages(
        self, turns: Sequence[BaseMessage], people: Sequence[Person],
    ) -> list[BaseMessage]:
        system = SystemMessage(content=get_system_prompt(format_context(people)))
        return [system, *turns]

    def request(self, turns: Sequence[BaseMessage], people: Sequence[Person]) -> ModelReply:
        """Send one request and return the reply, or the fallback on any problem."""
        if self._llm is None:
            metrics.record_failure("anthropic", "llm_invoke", error_type="MissingCredential")
            return ModelReply.fallback()

        messages = self.build_messages(turns, people)
        t0 = time.perf_counter()
        try:
            response = self._llm.invoke(messages)
            reply = parse_response(response)
        except Exception as exc:
            elapsed = (time.perf_counter() - t0) * 1000
            metrics.record_failure(
                "anthropic", "llm_invoke",
                error_type=type(exc).__name__, latency_ms=elapsed,
            )
            logger.warning("Model request failed, using fallback reply: %s", exc)
            return ModelReply.fallback()

        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_success("anthropic", "llm_invoke", latency_ms=elapsed)
        logger.debug(
            "Model replied in %.0fms with %d tool call(s)", elapsed, len(reply.tool_calls),
        )
        return reply
