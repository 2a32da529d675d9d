"""Compact, model-legible snapshot of the people dataset.

Only what the assistant needs to answer questions goes in: health record
titles with dates, upcoming (incomplete) todos and note titles.  Note bodies,
completed todos and all financial data are left out.
"""

from __future__ import annotations

import json
from collections.abc import Iterable

from kinfolk.models import Person


def _summarize(person: Person) -> dict:
    return {
        "id": person.id,
        "name": person.name,
        "relation": person.relation,
        "health": [f"{h.title} ({h.date})" for h in person.health],
        "upcoming_todos": [
            f"{t.title} due {t.due_date}" for t in person.todos if not t.is_completed
        ],
        "notes": [n.title for n in person.notes],
    }


def format_context(people: Iterable[Person]) -> str:
    """Serialize *people* into the JSON snapshot embedded in the system prompt."""
    return json.dumps(
        [_summarize(p) for p in people],
        ensure_ascii=False,
        separators=(",", ":"),
    )
