"""Domain and pipeline models.

The first half mirrors the relationship dataset (people and the four record
collections they own).  The second half holds the values that flow through
a single conversational turn: proposals from the model, resolved commands,
and the per-call outcomes reported back to the caller.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ── Record vocabularies ─────────────────────────────────────────────


class HealthType(str, Enum):
    CHECKUP = "CHECKUP"
    MEDICATION = "MEDICATION"
    VACCINE = "VACCINE"
    OTHER = "OTHER"


class FinanceType(str, Enum):
    EXPENSE = "EXPENSE"
    GIFT = "GIFT"
    OWED = "OWED"
    LENT = "LENT"


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class RecordKind(str, Enum):
    """Which of a person's collections a record belongs to."""

    TODO = "todo"
    HEALTH = "health"
    NOTE = "note"
    FINANCE = "finance"

    @property
    def label(self) -> str:
        """Human-readable name used in confirmations."""
        return {
            RecordKind.TODO: "todo",
            RecordKind.HEALTH: "health record",
            RecordKind.NOTE: "note",
            RecordKind.FINANCE: "finance record",
        }[self]


# ── Records ─────────────────────────────────────────────────────────


class HealthRecord(BaseModel):
    id: str | None = None
    title: str
    date: str
    notes: str = ""
    type: HealthType = HealthType.OTHER


class Todo(BaseModel):
    id: str | None = None
    title: str
    due_date: str
    is_completed: bool = False
    priority: Priority = Priority.MEDIUM
    description: str = ""


class Note(BaseModel):
    id: str | None = None
    title: str
    content: str
    tags: list[str] = Field(default_factory=list)


class FinanceRecord(BaseModel):
    id: str | None = None
    title: str
    amount: float
    type: FinanceType = FinanceType.EXPENSE
    date: str


Record = HealthRecord | Todo | Note | FinanceRecord


class Person(BaseModel):
    """A person in the user's circle and everything recorded about them."""

    id: str
    name: str
    relation: str
    birthday: str | None = None
    email: str | None = None
    health: list[HealthRecord] = Field(default_factory=list)
    todos: list[Todo] = Field(default_factory=list)
    notes: list[Note] = Field(default_factory=list)
    financial: list[FinanceRecord] = Field(default_factory=list)

    def collection(self, kind: RecordKind) -> list:
        """Return the list that holds records of *kind*."""
        return {
            RecordKind.TODO: self.todos,
            RecordKind.HEALTH: self.health,
            RecordKind.NOTE: self.notes,
            RecordKind.FINANCE: self.financial,
        }[kind]


# ── Conversation ────────────────────────────────────────────────────


class Role(str, Enum):
    USER = "user"
    MODEL = "model"


class ChatMessage(BaseModel):
    role: Role
    text: str


# ── Turn pipeline ───────────────────────────────────────────────────


class ToolCallProposal(BaseModel):
    """A tool invocation suggested by the model.

    ``args`` is whatever the provider handed back and must be treated as
    untrusted until the resolver has checked it.
    """

    name: str
    args: Any = None
    call_id: str | None = None


class FailureReason(str, Enum):
    UNKNOWN_TOOL = "unknown_tool"
    SCHEMA_VIOLATION = "schema_violation"
    UNRESOLVED_PERSON = "unresolved_person"
    MUTATION_FAILED = "mutation_failed"
    DUPLICATE_CALL = "duplicate_call"


class ResolutionFailure(BaseModel):
    reason: FailureReason
    message: str


class MutationCommand(BaseModel):
    """A validated proposal bound to a concrete person, ready to apply."""

    tool_name: str
    call_id: str | None = None
    person: Person
    kind: RecordKind
    record: Record


class Resolution(BaseModel):
    """Resolver output for one proposal: a command or a failure, never both."""

    proposal: ToolCallProposal
    command: MutationCommand | None = None
    failure: ResolutionFailure | None = None

    @property
    def ok(self) -> bool:
        return self.command is not None


class MutationStatus(str, Enum):
    APPLIED = "applied"
    FAILED = "failed"
    SKIPPED = "skipped"


class MutationOutcome(BaseModel):
    """What happened to one tool call, ready to show to the user."""

    tool_name: str
    call_id: str | None = None
    person_name: str | None = None
    status: MutationStatus
    reason: FailureReason | None = None
    message: str
    record_id: str | None = None


class TurnResult(BaseModel):
    text: str
    mutations: list[MutationOutcome] = Field(default_factory=list)
