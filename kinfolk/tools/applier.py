"""Apply resolved mutation commands to the store.

Commands are applied in the order the model proposed them.  Each one stands
alone: a store fault is reported as a failed outcome for that command and
the rest of the batch carries on.  There is no rollback.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable

from kinfolk.models import (
    FailureReason,
    MutationCommand,
    MutationOutcome,
    MutationStatus,
    Resolution,
)
from kinfolk.services.metrics import metrics
from kinfolk.services.store import RecordStore

logger = logging.getLogger(__name__)


def _confirmation(command: MutationCommand) -> str:
    return f"Added {command.kind.label} '{command.record.title}' for {command.person.name}"


def apply_command(command: MutationCommand, store: RecordStore) -> MutationOutcome:
    """Append one record and report how it went."""
    operation = f"append_{command.kind.value}"
    t0 = time.perf_counter()
    try:
        saved = store.append_record(command.person.id, command.kind, command.record)
    except Exception as exc:
        elapsed = (time.perf_counter() - t0) * 1000
        metrics.record_failure("store", operation, error_type=type(exc).__name__, latency_ms=elapsed)
        logger.exception("Failed to apply %s for %s", command.tool_name, command.person.name)
        return MutationOutcome(
            tool_name=command.tool_name,
            call_id=command.call_id,
            person_name=command.person.name,
            status=MutationStatus.FAILED,
            reason=FailureReason.MUTATION_FAILED,
            message=(
                f"Sorry, I couldn't save the {command.kind.label} "
                f"'{command.record.title}' for {command.person.name}."
            ),
        )

    elapsed = (time.perf_counter() - t0) * 1000
    metrics.record_success("store", operation, latency_ms=elapsed)
    message = _confirmation(command)
    logger.info("Applied: %s", message)
    return MutationOutcome(
        tool_name=command.tool_name,
        call_id=command.call_id,
        person_name=command.person.name,
        status=MutationStatus.APPLIED,
        message=message,
        record_id=saved.id,
    )


def apply_commands(
    commands: Iterable[MutationCommand],
    store: RecordStore,
    *,
    already_applied: set[str] | None = None,
) -> list[MutationOutcome]:
    """Apply *commands* in order, each at most once.

    Commands whose ``call_id`` is in *already_applied* are skipped; ids of
    newly applied commands are added to it.
    """
    outcomes: list[MutationOutcome] = []
    for command in commands:
        if already_applied is not None and command.call_id and command.call_id in already_applied:
            logger.warning("Skipping already applied tool call %s", command.call_id)
            outcomes.append(
                MutationOutcome(
                    tool_name=command.tool_name,
                    call_id=command.call_id,
                    person_name=command.person.name,
                    status=MutationStatus.SKIPPED,
                    reason=FailureReason.DUPLICATE_CALL,
                    message=f"Already added '{command.record.title}' for {command.person.name}.",
                )
            )
            continue

        outcome = apply_command(command, store)
        if outcome.status is MutationStatus.APPLIED and already_applied is not None and command.call_id:
            already_applied.add(command.call_id)
        outcomes.append(outcome)
    return outcomes


def failure_outcome(resolution: Resolution) -> MutationOutcome:
    """Report a proposal the resolver rejected."""
    args = resolution.proposal.args
    person_name = args.get("person_name") if isinstance(args, dict) else None
    return MutationOutcome(
        tool_name=resolution.proposal.name,
        call_id=resolution.proposal.call_id,
        person_name=person_name if isinstance(person_name, str) else None,
        status=MutationStatus.FAILED,
        reason=resolution.failure.reason,
        message=resolution.failure.message,
    )


def apply_resolutions(
    resolutions: Iterable[Resolution],
    store: RecordStore,
    *,
    already_applied: set[str] | None = None,
) -> list[MutationOutcome]:
    """Apply the successful resolutions and report every proposal in order."""
    outcomes: list[MutationOutcome] = []
    for resolution in resolutions:
        if resolution.ok:
            outcomes.extend(
                apply_commands([resolution.command], store, already_applied=already_applied)
            )
        else:
            outcomes.append(failure_outcome(resolution))
    return outcomes
