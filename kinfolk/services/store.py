"""In-memory people store.

This is the only thing the assistant writes to.  Persistence is someone
else's job: the store keeps people in a dict, assigns record ids on append,
and can be seeded from a JSON file for local use.

Writes are guarded by a lock, since HTTP turns of different sessions run in
parallel worker threads.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from pathlib import Path
from typing import Protocol

from pydantic import TypeAdapter

from kinfolk.models import Person, Record, RecordKind

logger = logging.getLogger(__name__)

_PEOPLE_ADAPTER = TypeAdapter(list[Person])


class StoreError(Exception):
    """Raised when a write cannot be carried out."""


class RecordStore(Protocol):
    """The one mutation primitive the turn pipeline needs."""

    def append_record(self, person_id: str, kind: RecordKind, record: Record) -> Record: ...


class InMemoryStore:
    """Dict-backed store of :class:`Person` objects keyed by id."""

    def __init__(self, people: list[Person] | None = None) -> None:
        self._people: dict[str, Person] = {}
        self._lock = threading.Lock()
        for person in people or []:
            self._people[person.id] = person

    # ── Reads ────────────────────────────────────────────────────────

    def list_people(self) -> list[Person]:
        with self._lock:
            return list(self._people.values())

    def get_person(self, person_id: str) -> Person | None:
        return self._people.get(person_id)

    # ── Writes ───────────────────────────────────────────────────────

    def add_person(
        self,
        name: str,
        relation: str,
        *,
        birthday: str | None = None,
        email: str | None = None,
    ) -> Person:
        person = Person(
            id=str(uuid.uuid4()),
            name=name,
            relation=relation,
            birthday=birthday,
            email=email,
        )
        with self._lock:
            self._people[person.id] = person
        logger.info("Added person %s (%s)", person.name, person.id)
        return person

    def append_record(self, person_id: str, kind: RecordKind, record: Record) -> Record:
        """Assign an id to *record* and append it to the person's collection."""
        saved = record.model_copy(update={"id": str(uuid.uuid4())})
        with self._lock:
            person = self._people.get(person_id)
            if person is None:
                raise StoreError(f"No person with id {person_id!r}")
            person.collection(kind).append(saved)
        logger.debug("Appended %s %s to %s", kind.value, saved.id, person.name)
        return saved

    # ── Seeding ──────────────────────────────────────────────────────

    @classmethod
    def from_json_file(cls, path: str | Path) -> InMemoryStore:
        """Load people from a JSON array on disk (the shape of ``Person``)."""
        raw = Path(path).read_text(encoding="utf-8")
        people = _PEOPLE_ADAPTER.validate_python(json.loads(raw))
        logger.info("Loaded %d people from %s", len(people), path)
        return cls(people)
