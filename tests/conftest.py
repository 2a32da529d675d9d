"""Shared test fixtures for the Kinfolk test suite."""

from __future__ import annotations

import os
from unittest.mock import MagicMock

import pytest
from langchain_core.messages import AIMessage

from kinfolk.models import FinanceRecord, FinanceType, HealthRecord, HealthType, Note, Person, Todo
from kinfolk.services.store import InMemoryStore


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py picks up the test values.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("METRICS_ENABLED", "false")


@pytest.fixture
def mom() -> Person:
    return Person(
        id="p-mom",
        name="Mom",
        relation="Mother",
        health=[HealthRecord(id="h1", title="Flu shot", date="2024-10-01", type=HealthType.VACCINE)],
        todos=[
            Todo(id="t1", title="Call about insurance", due_date="2025-01-10"),
            Todo(id="t2", title="Buy birthday cake", due_date="2024-12-01", is_completed=True),
        ],
        notes=[Note(id="n1", title="Favorite flowers", content="Peonies, never lilies")],
        financial=[
            FinanceRecord(id="f1", title="Spa voucher", amount=120.0, type=FinanceType.GIFT, date="2024-12-24"),
        ],
    )


@pytest.fixture
def dad() -> Person:
    return Person(id="p-dad", name="Dad", relation="Father")


@pytest.fixture
def people(mom, dad) -> list[Person]:
    return [mom, dad]


@pytest.fixture
def store(people) -> InMemoryStore:
    return InMemoryStore(people)


@pytest.fixture
def make_llm():
    """Factory for a mock chat model that answers every call with one AIMessage."""

    def _make(content: str = "", tool_calls: list | None = None, **kwargs):
        llm = MagicMock()
        llm.invoke.return_value = AIMessage(content=content, tool_calls=tool_calls or [], **kwargs)
        return llm

    return _make
