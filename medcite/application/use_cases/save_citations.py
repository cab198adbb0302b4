# medcite/application/use_cases/save_citations.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from types import MappingProxyType

from medcite.application.ports.citation_store_port import CitationStorePort
from medcite.domain.errors import (
    CitationConflictError,
    CitationPersistenceError,
    DomainError,
    ValidationError,
)
from medcite.domain.models import ExtractedCitation, NewCitation, PersistedCitation
from medcite.domain.services.citation_parsing import CitationParser
from medcite.domain.types import Result

logger = logging.getLogger(__name__)


class SaveCitations:
    """
    Persist parsed citations of one message, idempotently.

    Existing (message_id, reference_number) records are reused, never
    duplicated. A citation that cannot be saved is logged and skipped; the
    rest of the batch still goes through.
    """

    def __init__(self, store: CitationStorePort) -> None:
        self.store = store

    def execute(
        self, message_id: str, citations: Sequence[ExtractedCitation]
    ) -> Result[list[PersistedCitation], DomainError]:
        if not message_id or not message_id.strip():
            return Result.failure(ValidationError("message_id must not be empty"))

        saved: list[PersistedCitation] = []
        for citation in citations:
            try:
                saved.append(self._save_one(message_id, citation))
            except CitationPersistenceError as err:
                logger.warning("skipping citation: %s", err)
        return Result.success(saved)

    def _save_one(self, message_id: str, citation: ExtractedCitation) -> PersistedCitation:
        number = citation.reference_number
        existing = self._find(message_id, number)
        if existing is not None:
            return existing

        record = NewCitation(
            message_id=message_id,
            reference_number=number,
            citation_text=citation.citation.title,
            metadata=MappingProxyType(citation.citation.metadata()),
        )
        try:
            return self.store.insert(record)
        except CitationConflictError:
            # Another writer won the race for this key; reuse its record.
            logger.info("citation %d of %s inserted concurrently, reusing", number, message_id)
            winner = self._find(message_id, number)
            if winner is None:
                raise CitationPersistenceError(
                    message_id, number, "conflict reported but no record found"
                ) from None
            return winner
        except CitationPersistenceError:
            raise
        except Exception as ex:  # noqa: BLE001
            raise CitationPersistenceError(message_id, number, f"insert failed: {ex}") from ex

    def _find(self, message_id: str, number: int) -> PersistedCitation | None:
        try:
            return self.store.find_by_message_and_reference(message_id, number)
        except Exception as ex:  # noqa: BLE001
            raise CitationPersistenceError(message_id, number, f"lookup failed: {ex}") from ex


class ExtractAndSaveCitations:
    """Parse an answer and persist its citations in one call."""

    def __init__(self, parser: CitationParser, saver: SaveCitations) -> None:
        self.parser = parser
        self.saver = saver

    def execute(
        self, message_id: str, answer_text: str
    ) -> Result[list[PersistedCitation], DomainError]:
        if not message_id or not message_id.strip():
            return Result.failure(ValidationError("message_id must not be empty"))
        extraction = self.parser.extract(answer_text)
        if not extraction.citations:
            return Result.success([])
        return self.saver.execute(message_id, extraction.citations)
