"""Process-local citation store.

Used for the CLI, tests and single-process deployments. The check and the
insert run under one lock, so (message_id, reference_number) stays unique
even with concurrent writers.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable

from medcite.application.ports.citation_store_port import CitationStorePort
from medcite.application.ports.clock_port import ClockPort
from medcite.domain.errors import CitationConflictError
from medcite.domain.models import NewCitation, PersistedCitation


class InMemoryCitationStore(CitationStorePort):
    def __init__(
        self,
        clock: ClockPort,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.Lock()
        self._records: dict[tuple[str, int], PersistedCitation] = {}

    def find_by_message_and_reference(
        self, message_id: str, reference_number: int
    ) -> PersistedCitation | None:
        with self._lock:
            return self._records.get((message_id, reference_number))

    def insert(self, record: NewCitation) -> PersistedCitation:
        key = (record.message_id, record.reference_number)
        with self._lock:
            if key in self._records:
                raise CitationConflictError(record.message_id, record.reference_number)
            now = self._clock.now()
            persisted = PersistedCitation.from_new(self._id_factory(), record, now, now)
            self._records[key] = persisted
            return persisted

    def list_for_message(self, message_id: str) -> list[PersistedCitation]:
        with self._lock:
            found = [c for (mid, _), c in self._records.items() if mid == message_id]
        return sorted(found, key=lambda c: c.reference_number)
