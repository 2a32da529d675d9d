"""Tests for tool-call validation and person resolution."""

from __future__ import annotations

import pytest

from kinfolk.models import (
    FailureReason,
    FinanceType,
    HealthType,
    Person,
    RecordKind,
    ToolCallProposal,
)
from kinfolk.tools.resolver import resolve_tool_call, resolve_tool_calls


def _proposal(name: str, **args) -> ToolCallProposal:
    return ToolCallProposal(name=name, args=args, call_id="call-1")


class TestUnknownTools:
    def test_unknown_name_fails(self, people):
        res = resolve_tool_call(_proposal("delete_person", person_name="Mom"), people)
        assert not res.ok
        assert res.command is None
        assert res.failure.reason is FailureReason.UNKNOWN_TOOL

    def test_nameless_call_is_unknown(self, people):
        res = resolve_tool_call(ToolCallProposal(name="", args="{}", call_id="x1"), people)
        assert res.failure.reason is FailureReason.UNKNOWN_TOOL


class TestSchemaValidation:
    def test_missing_required_field(self, people):
        res = resolve_tool_call(_proposal("add_todo", person_name="Mom", title="Book flight"), people)
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION
        assert "due_date" in res.failure.message

    def test_blank_required_field_counts_as_missing(self, people):
        res = resolve_tool_call(
            _proposal("add_note", person_name="Mom", title="  ", content="x"), people,
        )
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION

    def test_wrong_type_for_string(self, people):
        res = resolve_tool_call(
            _proposal("add_note", person_name="Mom", title=42, content="x"), people,
        )
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION
        assert "title" in res.failure.message

    def test_non_numeric_amount(self, people):
        res = resolve_tool_call(
            _proposal("add_finance_record", person_name="Mom", title="Gift", amount="lots", date="2025-01-01"),
            people,
        )
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION
        assert "amount" in res.failure.message

    def test_boolean_amount_rejected(self, people):
        res = resolve_tool_call(
            _proposal("add_finance_record", person_name="Mom", title="Gift", amount=True, date="2025-01-01"),
            people,
        )
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION

    @pytest.mark.parametrize("bad_date", ["next friday", "01/02/2025", "2025-02-30"])
    def test_bad_dates_rejected(self, people, bad_date):
        res = resolve_tool_call(
            _proposal("add_todo", person_name="Mom", title="Book flight", due_date=bad_date), people,
        )
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION

    @pytest.mark.parametrize("amount", ["12,50", "1,2,3", "12,5000"])
    def test_decimal_commas_rejected(self, people, amount):
        res = resolve_tool_call(
            _proposal("add_finance_record", person_name="Mom", title="Gift", amount=amount, date="2025-01-01"),
            people,
        )
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION
        assert amount in res.failure.message

    def test_args_must_be_an_object(self, people):
        res = resolve_tool_call(ToolCallProposal(name="add_note", args='{"title": '), people)
        assert res.failure.reason is FailureReason.SCHEMA_VIOLATION


class TestPersonResolution:
    def test_case_insensitive_exact_match(self, people, mom):
        res = resolve_tool_call(
            _proposal("add_todo", person_name="mom", title="Book flight", due_date="2025-02-01"), people,
        )
        assert res.ok
        assert res.command.person is mom

    def test_partial_name_does_not_match(self, people):
        res = resolve_tool_call(
            _proposal("add_todo", person_name="Mo", title="Book flight", due_date="2025-02-01"), people,
        )
        assert res.failure.reason is FailureReason.UNRESOLVED_PERSON

    def test_unknown_person(self, people):
        res = resolve_tool_call(
            _proposal("add_todo", person_name="Uncle", title="Book flight", due_date="2025-02-01"), people,
        )
        assert res.failure.reason is FailureReason.UNRESOLVED_PERSON
        assert "Uncle" in res.failure.message

    def test_ambiguous_person(self):
        twins = [
            Person(id="a", name="Sam", relation="Cousin"),
            Person(id="b", name="sam", relation="Friend"),
        ]
        res = resolve_tool_call(
            _proposal("add_note", person_name="SAM", title="Hi", content="x"), twins,
        )
        assert res.failure.reason is FailureReason.UNRESOLVED_PERSON


class TestTypeTags:
    def test_health_type_defaults_to_other(self, people):
        res = resolve_tool_call(
            _proposal("add_health_record", person_name="Dad", title="Dentist", date="2025-03-04"), people,
        )
        assert res.ok
        assert res.command.record.type is HealthType.OTHER

    def test_health_type_is_case_insensitive(self, people):
        res = resolve_tool_call(
            _proposal("add_health_record", person_name="Dad", title="Dentist", date="2025-03-04", type="checkup"),
            people,
        )
        assert res.command.record.type is HealthType.CHECKUP

    def test_unrecognized_finance_type_defaults_to_expense(self, people):
        res = resolve_tool_call(
            _proposal(
                "add_finance_record", person_name="Dad", title="Lunch",
                amount=18.5, date="2025-03-04", type="DINNER",
            ),
            people,
        )
        assert res.ok
        assert res.command.record.type is FinanceType.EXPENSE


class TestCommands:
    def test_todo_command(self, people, mom):
        res = resolve_tool_call(
            _proposal("add_todo", person_name=" Mom ", title=" Book flight ", due_date="2025-02-01"), people,
        )
        command = res.command
        assert command.kind is RecordKind.TODO
        assert command.tool_name == "add_todo"
        assert command.call_id == "call-1"
        assert command.record.title == "Book flight"
        assert command.record.due_date == "2025-02-01"
        assert command.record.is_completed is False
        assert command.record.id is None

    def test_amount_coerced_to_float(self, people):
        res = resolve_tool_call(
            _proposal("add_finance_record", person_name="Dad", title="Loan", amount="1,250.50",
                      type="lent", date="2025-03-04"),
            people,
        )
        assert res.command.record.amount == 1250.5
        assert res.command.record.type is FinanceType.LENT

    def test_health_notes_default_to_empty(self, people):
        res = resolve_tool_call(
            _proposal("add_health_record", person_name="Dad", title="Dentist", date="2025-03-04"), people,
        )
        assert res.command.record.notes == ""

    def test_resolution_does_not_mutate(self, people, mom):
        resolve_tool_call(
            _proposal("add_todo", person_name="Mom", title="Book flight", due_date="2025-02-01"), people,
        )
        assert len(mom.todos) == 2


class TestBatch:
    def test_bad_proposal_does_not_block_siblings(self, people):
        results = resolve_tool_calls(
            [
                _proposal("add_note", person_name="Mom", title="Trip", content="Lisbon in May"),
                _proposal("add_finance_record", person_name="Mom", title="Flights", date="2025-05-01"),
                _proposal("nope"),
            ],
            people,
        )
        assert [r.ok for r in results] == [True, False, False]
        assert results[1].failure.reason is FailureReason.SCHEMA_VIOLATION
        assert results[2].failure.reason is FailureReason.UNKNOWN_TOOL
