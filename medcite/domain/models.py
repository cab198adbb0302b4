# medcite/domain/models.py
# Domain models must be pure (no I/O, no external libs)
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

_KNOWN_METADATA_FIELDS = ("title", "authors", "journal", "year", "doi", "url")


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(v) for v in value if v is not None)
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class Query:
    """A user question as issued to the retriever. Immutable once created."""

    text: str
    specialty_id: str | None = None
    threshold: float = 0.7
    limit: int = 5


@dataclass(frozen=True)
class PassageMetadata:
    """
    Structured view over the open-ended metadata a store returns for a passage.

    Named optional fields cover what citations need; everything else lands in
    ``extra`` untouched so unexpected keys from the store are tolerated.
    """

    title: str | None = None
    authors: str | None = None
    journal: str | None = None
    year: str | None = None
    doi: str | None = None
    url: str | None = None
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any] | None) -> PassageMetadata:
        if not raw:
            return cls()
        known = {name: _clean(raw.get(name)) for name in _KNOWN_METADATA_FIELDS}
        extra = {k: v for k, v in raw.items() if k not in _KNOWN_METADATA_FIELDS}
        return cls(**known, extra=MappingProxyType(extra))

    def citation_fields(self) -> list[str]:
        """Title, authors, journal, year (in that order), skipping absent ones."""
        return [v for v in (self.title, self.authors, self.journal, self.year) if v]

    def year_as_int(self) -> int | None:
        if not self.year:
            return None
        digits = self.year.strip()[:4]
        return int(digits) if digits.isdigit() else None


@dataclass(frozen=True)
class RetrievedPassage:
    """
    Immutable passage returned by the similarity search.

    - id:         stable identifier assigned by the content store
    - content:    passage text
    - metadata:   structured metadata (title, authors, journal, year, ...)
    - similarity: store similarity in [0, 1]
    """

    id: str
    content: str
    metadata: PassageMetadata
    similarity: float

    @classmethod
    def create(
        cls,
        id: str,
        content: str,
        metadata: Mapping[str, Any] | None,
        similarity: float,
    ) -> RetrievedPassage:
        score = min(max(float(similarity), 0.0), 1.0)
        return cls(
            id=str(id),
            content=content or "",
            metadata=PassageMetadata.from_mapping(metadata),
            similarity=score,
        )


@dataclass(frozen=True)
class RankedPassage:
    """A retrieved passage with its heuristic score (capped at 1.0)."""

    passage: RetrievedPassage
    enhanced_score: float

    @property
    def id(self) -> str:
        return self.passage.id

    @property
    def content(self) -> str:
        return self.passage.content

    @property
    def metadata(self) -> PassageMetadata:
        return self.passage.metadata

    @property
    def similarity(self) -> float:
        return self.passage.similarity


@dataclass(frozen=True)
class ComposedPrompt:
    """Instruction prompt plus the index each included passage was given."""

    text: str
    citation_index_map: Mapping[str, int] = field(
        default_factory=lambda: MappingProxyType({})
    )


@dataclass(frozen=True)
class CitationMarker:
    reference_number: int
    positions: tuple[int, ...]


@dataclass(frozen=True)
class CitationEntry:
    """One raw block from the reference section, not parsed yet."""

    reference_number: int
    text: str


@dataclass(frozen=True)
class ParsedCitation:
    title: str
    authors: str | None = None
    journal: str | None = None
    year: str | None = None
    doi: str | None = None
    url: str | None = None

    def metadata(self) -> dict[str, str]:
        """Non-empty optional fields only (what gets stored next to the title)."""
        fields = {
            "authors": self.authors,
            "journal": self.journal,
            "year": self.year,
            "doi": self.doi,
            "url": self.url,
        }
        return {k: v for k, v in fields.items() if v}


@dataclass(frozen=True)
class ExtractedCitation:
    reference_number: int
    citation: ParsedCitation
    positions: tuple[int, ...]
    raw_text: str


@dataclass(frozen=True)
class CitationExtraction:
    """Parser output: answer text without the reference section, plus citations."""

    clean_text: str
    citations: tuple[ExtractedCitation, ...] = ()


@dataclass(frozen=True)
class NewCitation:
    """Insert payload handed to the citation store."""

    message_id: str
    reference_number: int
    citation_text: str
    metadata: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class PersistedCitation:
    id: str
    message_id: str
    reference_number: int
    title: str
    created_at: datetime
    updated_at: datetime
    authors: str | None = None
    journal: str | None = None
    year: str | None = None
    doi: str | None = None
    url: str | None = None

    @classmethod
    def from_new(
        cls, id: str, record: NewCitation, created_at: datetime, updated_at: datetime
    ) -> PersistedCitation:
        meta = record.metadata
        return cls(
            id=id,
            message_id=record.message_id,
            reference_number=record.reference_number,
            title=record.citation_text,
            created_at=created_at,
            updated_at=updated_at,
            authors=meta.get("authors"),
            journal=meta.get("journal"),
            year=meta.get("year"),
            doi=meta.get("doi"),
            url=meta.get("url"),
        )
