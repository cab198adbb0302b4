# medcite/application/use_cases/retrieve_passages.py
from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace
from numbers import Real
from typing import Any

from medcite.application.dto.query_dto import RetrievalRequest
from medcite.application.ports.clock_port import ClockPort
from medcite.application.ports.embedding_port import EmbeddingPort
from medcite.application.ports.similarity_search_port import SimilaritySearchPort
from medcite.application.ports.telemetry_port import TelemetryPort
from medcite.domain.errors import DomainError, EmbeddingError, RetrievalError, ValidationError
from medcite.domain.models import Query, RankedPassage, RetrievedPassage
from medcite.domain.services.ranking import merge_unique_by_id, rank_passages
from medcite.domain.services.term_extraction import extract_terms
from medcite.domain.types import Result, Vector

logger = logging.getLogger(__name__)

# Two-pass term-aware retrieval: the full message is searched a little more
# loosely than the joined clinical terms.
FULL_MESSAGE_THRESHOLD = 0.65
TERMS_THRESHOLD = 0.7
PASS_LIMIT = 3

PROBE_QUERY = "health check"


class RetrievePassages:
    """
    Application Use-Case: question -> embedded query -> filtered similarity
    search -> ranked passages.
    Uses only ports; every outcome is a Result, nothing is raised.
    """

    def __init__(
        self,
        embedding: EmbeddingPort,
        search: SimilaritySearchPort,
        clock: ClockPort,
        embedding_dim: int | None = None,
        embedding_model: str | None = None,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self.embedding = embedding
        self.search = search
        self.clock = clock
        self.embedding_dim = embedding_dim
        self.embedding_model = embedding_model
        self.telemetry = telemetry

    def execute(self, req: RetrievalRequest) -> Result[list[RankedPassage], DomainError]:
        invalid = _validate(req)
        if invalid is not None:
            return Result.failure(invalid)

        found = self._search_pass(req.to_query())
        if not found.ok:
            self._incr("retrieval.failures")
            return Result.failure(found.error)

        return Result.success(self._rank(found.value or [], req.query))

    def execute_with_terms(self, req: RetrievalRequest) -> Result[list[RankedPassage], DomainError]:
        """Search the full message and the extracted clinical terms, then merge.

        Falls back to ``execute`` when the query has no recognizable terms.
        Fails only when both searches fail.
        """
        invalid = _validate(req)
        if invalid is not None:
            return Result.failure(invalid)

        terms = extract_terms(req.query)
        if not terms:
            return self.execute(req)

        query = req.to_query()
        full = self._search_pass(replace(query, threshold=FULL_MESSAGE_THRESHOLD, limit=PASS_LIMIT))
        by_terms = self._search_pass(
            replace(query, text=" ".join(sorted(terms)), threshold=TERMS_THRESHOLD, limit=PASS_LIMIT)
        )
        if not full.ok and not by_terms.ok:
            self._incr("retrieval.failures")
            return Result.failure(full.error)
        for failed in (r for r in (full, by_terms) if not r.ok):
            logger.warning("one retrieval pass failed, continuing with the other: %s", failed.error)

        merged = merge_unique_by_id(full.value or [], by_terms.value or [])
        return Result.success(self._rank(merged, req.query))

    def is_available(self) -> bool:
        """Probe with a one-passage query; an empty result still counts as available."""
        probe = self.execute(RetrievalRequest(query=PROBE_QUERY, limit=1))
        if not probe.ok:
            logger.info("retrieval unavailable: %s", probe.error)
        return probe.ok

    def diagnostics(self) -> dict[str, Any]:
        report: dict[str, Any] = {
            "status": "unhealthy",
            "timestamp": self.clock.now().isoformat(),
            "embedding": {"model": self.embedding_model, "dimension": None, "ok": False},
            "vector_store": {"connected": False},
            "error": None,
        }

        vector = self._embed("diagnostic test")
        if vector.ok:
            report["embedding"]["ok"] = True
            report["embedding"]["dimension"] = len(vector.value or ())
        else:
            report["error"] = str(vector.error)

        try:
            connected = bool(self.search.ping())
        except Exception as ex:  # noqa: BLE001
            connected = False
            report["error"] = report["error"] or f"vector store ping failed: {ex}"
        report["vector_store"]["connected"] = connected

        if not connected:
            report["error"] = report["error"] or "vector store unreachable"
        elif vector.ok:
            report["status"] = "healthy"
        return report

    def _embed(self, text: str) -> Result[Vector, DomainError]:
        try:
            raw = self.embedding.embed_query(text)
        except Exception as ex:  # noqa: BLE001
            return Result.failure(EmbeddingError(f"embedding failed: {ex}"))

        if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence) or not raw:
            return Result.failure(EmbeddingError("embedding is not a non-empty numeric sequence"))
        if not all(isinstance(v, Real) and not isinstance(v, bool) for v in raw):
            return Result.failure(EmbeddingError("embedding contains non-numeric values"))
        if self.embedding_dim is not None and len(raw) != self.embedding_dim:
            return Result.failure(
                EmbeddingError(f"embedding has {len(raw)} dims, expected {self.embedding_dim}")
            )
        return Result.success(tuple(float(v) for v in raw))

    def _search_pass(self, query: Query) -> Result[list[RetrievedPassage], DomainError]:
        vector = self._embed(query.text)
        if not vector.ok:
            return Result.failure(vector.error)

        try:
            hits = self.search.search(
                vector.value,
                threshold=query.threshold,
                limit=query.limit,
                specialty_filter=query.specialty_id,
            )
            passages = [
                RetrievedPassage.create(h.id, h.content, h.metadata, h.similarity) for h in hits
            ]
        except Exception as ex:  # noqa: BLE001
            return Result.failure(RetrievalError(f"similarity search failed: {ex}"))

        passages = [p for p in passages if p.similarity >= query.threshold][: query.limit]
        logger.debug(
            "search pass returned %d passages (threshold=%.2f)", len(passages), query.threshold
        )
        return Result.success(passages)

    def _rank(self, passages: list[RetrievedPassage], query_text: str) -> list[RankedPassage]:
        ranked = rank_passages(passages, query_text, self.clock.now().year)
        self._incr("retrieval.requests")
        if self.telemetry is not None:
            self.telemetry.observe("retrieval.passages", float(len(ranked)))
        return ranked

    def _incr(self, name: str) -> None:
        if self.telemetry is not None:
            self.telemetry.incr(name)


def _validate(req: RetrievalRequest) -> ValidationError | None:
    if not req.query or not req.query.strip():
        return ValidationError("query must not be empty")
    if not 0.0 <= req.threshold <= 1.0:
        return ValidationError("threshold must be within [0, 1]")
    if req.limit <= 0:
        return ValidationError("limit must be > 0")
    return None
