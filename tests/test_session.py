"""Tests for conversation history handling."""

from __future__ import annotations

import pytest
from langchain_core.messages import HumanMessage

from kinfolk.session import ConversationSession


class TestBuildTurns:
    def test_new_message_is_last(self):
        session = ConversationSession("s1")
        turns = session.build_turns("Hello")
        assert len(turns) == 1
        assert isinstance(turns[0], HumanMessage)
        assert turns[0].content == "Hello"

    def test_only_user_messages_are_replayed(self):
        session = ConversationSession("s1")
        session.record_turn("Remind me about Mom", "Sure, what should I add?")
        session.record_turn("Her dentist on Friday", "Added!")
        turns = session.build_turns("Thanks")
        assert [t.content for t in turns] == ["Remind me about Mom", "Her dentist on Friday", "Thanks"]
        assert all(isinstance(t, HumanMessage) for t in turns)

    def test_history_is_truncated(self):
        session = ConversationSession("s1", max_history_turns=2)
        for i in range(5):
            session.record_turn(f"q{i}", f"a{i}")
        turns = session.build_turns("latest")
        assert [t.content for t in turns] == ["q3", "q4", "latest"]

    def test_zero_history(self):
        session = ConversationSession("s1", max_history_turns=0)
        session.record_turn("old", "reply")
        assert [t.content for t in session.build_turns("new")] == ["new"]

    def test_negative_bound_rejected(self):
        with pytest.raises(ValueError):
            ConversationSession("s1", max_history_turns=-1)


class TestStorage:
    def test_stored_messages_are_bounded(self):
        session = ConversationSession("s1", max_history_turns=3)
        for i in range(50):
            session.record_turn(f"q{i}", f"a{i}")
        assert len(session.messages) == 6
        assert session.messages[-1].text == "a49"

    def test_clear_resets_ledger(self):
        session = ConversationSession("s1")
        session.record_turn("q", "a")
        session.applied_call_ids.add("call-1")
        session.clear()
        assert session.messages == []
        assert session.applied_call_ids == set()
