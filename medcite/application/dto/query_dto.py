# medcite/application/dto/query_dto.py
from __future__ import annotations

from dataclasses import dataclass, field

from medcite.domain.models import ExtractedCitation, PersistedCitation, Query, RankedPassage

DEFAULT_THRESHOLD = 0.7
DEFAULT_LIMIT = 5


@dataclass(frozen=True)
class RetrievalRequest:
    """
    DTO for a similarity retrieval.

    - query: user question (non-empty)
    - specialty_id: restrict to one specialty; None searches all of them
    - threshold: minimum similarity in [0, 1]
    - limit: maximum number of passages (> 0)
    """

    query: str
    specialty_id: str | None = None
    threshold: float = DEFAULT_THRESHOLD
    limit: int = DEFAULT_LIMIT

    def to_query(self) -> Query:
        return Query(
            text=self.query,
            specialty_id=self.specialty_id,
            threshold=self.threshold,
            limit=self.limit,
        )


@dataclass(frozen=True)
class AnswerRequest:
    """
    DTO for a full question -> answer round.

    - message_id: when set, parsed citations are persisted under this id
    - use_terms: run the two-pass term-aware retrieval instead of a single search
    """

    question: str
    specialty_id: str | None = None
    message_id: str | None = None
    threshold: float = DEFAULT_THRESHOLD
    limit: int = DEFAULT_LIMIT
    use_terms: bool = False
    include_user_context: bool = True
    temperature: float = 0.2
    max_tokens: int = 1024


@dataclass(frozen=True)
class MedicalAnswer:
    """Generated answer with its parsed citations.

    ``retrieval_error`` carries the reason when retrieval failed and the answer
    was produced without passages.
    """

    text: str
    clean_text: str
    citations: tuple[ExtractedCitation, ...] = ()
    passages: tuple[RankedPassage, ...] = ()
    citation_index_map: dict[str, int] = field(default_factory=dict)
    persisted: tuple[PersistedCitation, ...] = ()
    retrieval_error: str | None = None
