"""Catalog of the mutating operations the assistant may call.

These declarations are handed to the model as its tool list **and** used by
the resolver to validate whatever the model sends back, so there is exactly
one place where a tool's parameters are defined.

To add a capability: declare it here and add a record builder for it in
``kinfolk/tools/resolver.py``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kinfolk.models import FinanceType, HealthType

# Bump when a tool name or argument changes; reported by /api/health.
CATALOG_VERSION = "2025-01"

STRING = "string"
NUMBER = "number"


@dataclass(frozen=True)
class ParameterSpec:
    """One argument of a tool."""

    name: str
    type: str
    description: str
    required: bool = True
    enum: tuple[str, ...] = ()
    default: str | None = None
    # "date" means a calendar date in YYYY-MM-DD form
    format: str | None = None

    def to_json_schema(self) -> dict[str, Any]:
        schema: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.enum:
            schema["enum"] = list(self.enum)
        if self.format:
            schema["format"] = self.format
        return schema


@dataclass(frozen=True)
class ToolDeclaration:
    name: str
    description: str
    parameters: tuple[ParameterSpec, ...] = field(default_factory=tuple)

    def required_fields(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def parameter(self, name: str) -> ParameterSpec | None:
        for param in self.parameters:
            if param.name == name:
                return param
        return None

    def to_json_schema(self) -> dict[str, Any]:
        """JSON Schema object describing this tool's arguments."""
        return {
            "type": "object",
            "properties": {p.name: p.to_json_schema() for p in self.parameters},
            "required": self.required_fields(),
        }

    def to_provider_tool(self) -> dict[str, Any]:
        """Anthropic tool format, accepted as-is by ``ChatAnthropic.bind_tools``."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.to_json_schema(),
        }


_PERSON_NAME = ParameterSpec(
    "person_name", STRING, "Name of the person, exactly as it appears in the data",
)

TOOLS: tuple[ToolDeclaration, ...] = (
    ToolDeclaration(
        name="add_todo",
        description="Add a new todo task for a person.",
        parameters=(
            _PERSON_NAME,
            ParameterSpec("title", STRING, "Task title"),
            ParameterSpec("due_date", STRING, "Due date in YYYY-MM-DD format", format="date"),
        ),
    ),
    ToolDeclaration(
        name="add_health_record",
        description="Add a health record (appointment, medication, vaccine...) for a person.",
        parameters=(
            _PERSON_NAME,
            ParameterSpec("title", STRING, "Record title (e.g. Dentist Appt)"),
            ParameterSpec("date", STRING, "Date in YYYY-MM-DD format", format="date"),
            ParameterSpec("notes", STRING, "Optional notes", required=False),
            ParameterSpec(
                "type", STRING,
                "Type: CHECKUP, MEDICATION, VACCINE or OTHER",
                required=False,
                enum=tuple(t.value for t in HealthType),
                default=HealthType.OTHER.value,
            ),
        ),
    ),
    ToolDeclaration(
        name="add_note",
        description="Add a note for a person.",
        parameters=(
            _PERSON_NAME,
            ParameterSpec("title", STRING, "Note title"),
            ParameterSpec("content", STRING, "Note content"),
        ),
    ),
    ToolDeclaration(
        name="add_finance_record",
        description="Add a financial record (expense, gift, money owed or lent) for a person.",
        parameters=(
            _PERSON_NAME,
            ParameterSpec("title", STRING, "Description of the expense or gift"),
            ParameterSpec("amount", NUMBER, "Amount of money"),
            ParameterSpec(
                "type", STRING,
                "Type: EXPENSE, GIFT, OWED or LENT",
                required=False,
                enum=tuple(t.value for t in FinanceType),
                default=FinanceType.EXPENSE.value,
            ),
            ParameterSpec("date", STRING, "Date in YYYY-MM-DD format", format="date"),
        ),
    ),
)

_BY_NAME: dict[str, ToolDeclaration] = {t.name: t for t in TOOLS}


def get_declaration(name: str) -> ToolDeclaration | None:
    """Return the declaration called *name*, or ``None`` if it is not registered."""
    return _BY_NAME.get(name)


def tool_names() -> list[str]:
    return [t.name for t in TOOLS]


def as_provider_tools() -> list[dict[str, Any]]:
    """The full catalog in the form bound to the chat model."""
    return [t.to_provider_tool() for t in TOOLS]
