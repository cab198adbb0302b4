"""Domain errors (typed) for the retrieval and citation pipeline.

Why: Unified error family for the Application layer, without Infra leaks.
Use cases return these inside Result; adapters raise them.
"""

from dataclasses import dataclass


class DomainError(Exception):
    """Base class for domain-specific errors."""


class ValidationError(DomainError):
    """Invalid input/domain state (e.g. empty query text)."""


class EmbeddingError(DomainError):
    """Embedding backend failed or returned a malformed vector."""


class RetrievalError(DomainError):
    """Similarity search failed (after infra errors were mapped)."""


class VectorStoreError(DomainError):
    """Vector store backend failed or is misconfigured."""


class LLMError(DomainError):
    """LLM backend failed or is misconfigured."""


class CompositionOverflow(DomainError):
    """A passage does not fit the remaining prompt budget.

    Internal signal of the prompt composer; never surfaced to callers.
    """


@dataclass(frozen=True)
class CitationPersistenceError(DomainError):
    """Saving one citation failed; logged and skipped by the batch."""

    message_id: str
    reference_number: int
    detail: str = ""

    def __str__(self) -> str:
        return (
            f"citation {self.reference_number} of message {self.message_id} "
            f"not saved: {self.detail}"
        )


@dataclass(frozen=True)
class CitationConflictError(DomainError):
    """A citation for (message_id, reference_number) already exists in the store."""

    message_id: str
    reference_number: int

    def __str__(self) -> str:
        return f"citation {self.reference_number} already stored for message {self.message_id}"


class CitationStoreError(DomainError):
    """Citation store backend failed or is misconfigured (not tied to one citation)."""
