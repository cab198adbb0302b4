from __future__ import annotations

from abc import ABC, abstractmethod

from medcite.domain.models import NewCitation, PersistedCitation


class CitationStorePort(ABC):
    """Persistence of parsed citations keyed by (message_id, reference_number).

    Why (SAM): Uniqueness of the key is enforced by the store itself, so two
    writers racing on the same message can never both insert. ``insert``
    raises CitationConflictError when the key already exists and
    CitationPersistenceError for any other backend failure.
    """

    @abstractmethod
    def find_by_message_and_reference(
        self, message_id: str, reference_number: int
    ) -> PersistedCitation | None: ...

    @abstractmethod
    def insert(self, record: NewCitation) -> PersistedCitation: ...

    @abstractmethod
    def list_for_message(self, message_id: str) -> list[PersistedCitation]:
        """All citations of a message ordered by reference number."""
        ...
