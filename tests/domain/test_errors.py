"""Tests for domain errors."""

import pytest

from medcite.domain.errors import (
    CitationConflictError,
    CitationPersistenceError,
    CitationStoreError,
    CompositionOverflow,
    DomainError,
    EmbeddingError,
    LLMError,
    RetrievalError,
    ValidationError,
    VectorStoreError,
)


@pytest.mark.parametrize(
    "cls",
    [
        ValidationError,
        EmbeddingError,
        RetrievalError,
        VectorStoreError,
        LLMError,
        CompositionOverflow,
        CitationStoreError,
    ],
)
def test_message_errors_are_domain_errors(cls):
    err = cls("boom")
    assert isinstance(err, DomainError)
    assert str(err) == "boom"


def test_persistence_error_carries_key_and_detail():
    """CitationPersistenceError names the citation that was not saved."""
    err = CitationPersistenceError(message_id="m1", reference_number=3, detail="timeout")
    assert isinstance(err, DomainError)
    assert err.message_id == "m1"
    assert err.reference_number == 3
    assert "timeout" in str(err)
    assert "m1" in str(err)


def test_persistence_error_is_frozen():
    err = CitationPersistenceError(message_id="m1", reference_number=1)
    with pytest.raises(AttributeError):
        err.detail = "changed"  # type: ignore[misc]


def test_conflict_error_can_be_raised_and_caught():
    with pytest.raises(CitationConflictError) as info:
        raise CitationConflictError("m1", 2)
    assert info.value.reference_number == 2
    assert "already stored" in str(info.value)
