"""Turn untrusted tool-call proposals into validated mutation commands.

Every proposal is checked against its declaration in the registry, then the
``person_name`` argument is matched against the people snapshot.  Each
proposal is resolved on its own: a bad one produces a failure and never
stops its siblings.  Nothing here touches the store.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Callable, Iterable, Sequence
from datetime import date
from typing import Any

from kinfolk.models import (
    FailureReason,
    FinanceRecord,
    FinanceType,
    HealthRecord,
    HealthType,
    MutationCommand,
    Note,
    Person,
    Record,
    RecordKind,
    Resolution,
    ResolutionFailure,
    Todo,
    ToolCallProposal,
)
from kinfolk.tools.registry import (
    NUMBER,
    STRING,
    ParameterSpec,
    ToolDeclaration,
    get_declaration,
    tool_names,
)

logger = logging.getLogger(__name__)

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
# Commas are only accepted as thousands separators ("1,250.50").
_THOUSANDS_RE = re.compile(r"^[-+]?\d{1,3}(,\d{3})+(\.\d+)?$")


class SchemaViolation(ValueError):
    """An argument does not match its declared type or format."""


# ── Argument validation ─────────────────────────────────────────────


def _coerce_number(param: ParameterSpec, value: Any) -> float:
    # bool is an int subclass but never a meaningful amount
    if isinstance(value, bool):
        raise SchemaViolation(f"'{param.name}' must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if "," in text:
            if not _THOUSANDS_RE.match(text):
                raise SchemaViolation(f"'{param.name}' must be a number, got {value!r}")
            text = text.replace(",", "")
        try:
            number = float(text)
        except ValueError:
            raise SchemaViolation(f"'{param.name}' must be a number, got {value!r}") from None
    else:
        raise SchemaViolation(f"'{param.name}' must be a number")
    if not math.isfinite(number):
        raise SchemaViolation(f"'{param.name}' must be a finite number")
    return number


def _coerce_date(param: ParameterSpec, value: str) -> str:
    if not _ISO_DATE_RE.match(value):
        raise SchemaViolation(f"'{param.name}' must be a date in YYYY-MM-DD format, got {value!r}")
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise SchemaViolation(f"'{param.name}' is not a valid calendar date: {value!r}") from None


def _coerce_enum(param: ParameterSpec, value: Any) -> str:
    """Map *value* onto the declared vocabulary, falling back to the default."""
    if isinstance(value, str):
        candidate = value.strip().upper()
        if candidate in param.enum:
            return candidate
    if value is not None:
        logger.debug("Unrecognized %s %r, using default %s", param.name, value, param.default)
    return param.default


def validate_arguments(declaration: ToolDeclaration, args: Any) -> dict[str, Any]:
    """Check *args* against *declaration* and return normalized values.

    Raises :class:`SchemaViolation` on the first problem found.  Optional
    fields that are absent come back as their declared default (or ``None``).
    """
    if not isinstance(args, dict):
        raise SchemaViolation("arguments must be an object")

    values: dict[str, Any] = {}
    for param in declaration.parameters:
        raw = args.get(param.name)

        if param.enum:
            values[param.name] = _coerce_enum(param, raw)
            continue

        if raw is None or (isinstance(raw, str) and not raw.strip()):
            if param.required:
                raise SchemaViolation(f"missing required field '{param.name}'")
            values[param.name] = param.default
            continue

        if param.type == NUMBER:
            values[param.name] = _coerce_number(param, raw)
        elif param.type == STRING:
            if not isinstance(raw, str):
                raise SchemaViolation(f"'{param.name}' must be a string")
            text = raw.strip()
            values[param.name] = _coerce_date(param, text) if param.format == "date" else text
        else:
            raise SchemaViolation(f"'{param.name}' has unsupported type {param.type!r}")

    return values


# ── Person resolution ───────────────────────────────────────────────


def find_person(name: str, people: Iterable[Person]) -> list[Person]:
    """Return every person whose name equals *name*, ignoring case."""
    wanted = name.strip().casefold()
    return [p for p in people if p.name.strip().casefold() == wanted]


# ── Record builders (one per tool) ──────────────────────────────────


def _todo(values: dict[str, Any]) -> Todo:
    return Todo(title=values["title"], due_date=values["due_date"])


def _health(values: dict[str, Any]) -> HealthRecord:
    return HealthRecord(
        title=values["title"],
        date=values["date"],
        notes=values.get("notes") or "",
        type=HealthType(values["type"]),
    )


def _note(values: dict[str, Any]) -> Note:
    return Note(title=values["title"], content=values["content"])


def _finance(values: dict[str, Any]) -> FinanceRecord:
    return FinanceRecord(
        title=values["title"],
        amount=values["amount"],
        type=FinanceType(values["type"]),
        date=values["date"],
    )


_BUILDERS: dict[str, tuple[RecordKind, Callable[[dict[str, Any]], Record]]] = {
    "add_todo": (RecordKind.TODO, _todo),
    "add_health_record": (RecordKind.HEALTH, _health),
    "add_note": (RecordKind.NOTE, _note),
    "add_finance_record": (RecordKind.FINANCE, _finance),
}

_UNMATCHED = set(tool_names()) ^ set(_BUILDERS)
if _UNMATCHED:
    raise RuntimeError(f"Tool catalog and record builders disagree on: {sorted(_UNMATCHED)}")


# ── Public API ──────────────────────────────────────────────────────


def _fail(proposal: ToolCallProposal, reason: FailureReason, message: str) -> Resolution:
    logger.info("Tool call %s rejected (%s): %s", proposal.name, reason.value, message)
    return Resolution(proposal=proposal, failure=ResolutionFailure(reason=reason, message=message))


def resolve_tool_call(proposal: ToolCallProposal, people: Sequence[Person]) -> Resolution:
    """Validate one proposal and bind it to a person."""
    declaration = get_declaration(proposal.name)
    builder = _BUILDERS.get(proposal.name)
    if declaration is None or builder is None:
        return _fail(
            proposal, FailureReason.UNKNOWN_TOOL,
            f"I don't know how to '{proposal.name}'.",
        )

    try:
        values = validate_arguments(declaration, proposal.args)
    except SchemaViolation as exc:
        return _fail(
            proposal, FailureReason.SCHEMA_VIOLATION,
            f"I couldn't run {proposal.name}: {exc}.",
        )

    person_name = values["person_name"]
    matches = find_person(person_name, people)
    if len(matches) != 1:
        detail = "more than one person is" if matches else "no one is"
        return _fail(
            proposal, FailureReason.UNRESOLVED_PERSON,
            f'I couldn\'t find a person named "{person_name}" ({detail} called that). '
            "Please check the name.",
        )

    kind, build = builder
    command = MutationCommand(
        tool_name=proposal.name,
        call_id=proposal.call_id,
        person=matches[0],
        kind=kind,
        record=build(values),
    )
    return Resolution(proposal=proposal, command=command)


def resolve_tool_calls(
    proposals: Iterable[ToolCallProposal], people: Sequence[Person],
) -> list[Resolution]:
    """Resolve each proposal independently, preserving the model's order."""
    return [resolve_tool_call(p, people) for p in proposals]
