"""Per-session conversation history.

A :class:`ConversationSession` is created by whoever owns the conversation
(the HTTP server keeps one per ``session_id``, the CLI keeps one per run)
and passed into every turn.  There is no module-level history.

Only the user's own messages are replayed to the model.  The assistant's
earlier replies are kept for display but not sent back; continuity comes
from recent user turns plus the fresh data snapshot.
"""

from __future__ import annotations

from langchain_core.messages import HumanMessage

from kinfolk.config import MAX_HISTORY_TURNS
from kinfolk.models import ChatMessage, Role


class ConversationSession:
    """Ordered chat history for one user session, bounded in size."""

    def __init__(self, session_id: str, *, max_history_turns: int = MAX_HISTORY_TURNS) -> None:
        if max_history_turns < 0:
            raise ValueError("max_history_turns must be >= 0")
        self.session_id = session_id
        self.max_history_turns = max_history_turns
        self.messages: list[ChatMessage] = []
        # Provider tool-call ids already applied in this session.
        self.applied_call_ids: set[str] = set()

    def add_user_message(self, text: str) -> None:
        self._append(ChatMessage(role=Role.USER, text=text))

    def add_model_message(self, text: str) -> None:
        self._append(ChatMessage(role=Role.MODEL, text=text))

    def record_turn(self, user_text: str, reply_text: str) -> None:
        self.add_user_message(user_text)
        self.add_model_message(reply_text)

    def user_history(self) -> list[ChatMessage]:
        """The most recent user messages that will be replayed."""
        if self.max_history_turns == 0:
            return []
        user_messages = [m for m in self.messages if m.role is Role.USER]
        return user_messages[-self.max_history_turns:]

    def build_turns(self, new_message: str) -> list[HumanMessage]:
        """History turns followed by *new_message* as the final turn."""
        turns = [HumanMessage(content=m.text) for m in self.user_history()]
        turns.append(HumanMessage(content=new_message))
        return turns

    def clear(self) -> None:
        self.messages.clear()
        self.applied_call_ids.clear()

    def _append(self, message: ChatMessage) -> None:
        self.messages.append(message)
        limit = max(2 * self.max_history_turns, 2)
        if len(self.messages) > limit:
            del self.messages[:-limit]
