"""Tests for the RetrievePassages use case."""

from collections.abc import Sequence
from datetime import UTC, datetime

import pytest

from medcite.application.dto.query_dto import RetrievalRequest
from medcite.application.ports.clock_port import ClockPort
from medcite.application.ports.similarity_search_port import SearchHit
from medcite.application.use_cases.retrieve_passages import RetrievePassages
from medcite.domain.errors import EmbeddingError, RetrievalError, ValidationError, VectorStoreError
from medcite.domain.models import Query
from medcite.domain.services.prompt_composition import PromptComposer


class FixedClock(ClockPort):
    def now(self) -> datetime:
        return datetime(2025, 6, 1, tzinfo=UTC)


class FakeEmbedding:
    def __init__(self, vector: object = (0.1, 0.2, 0.3), error: Exception | None = None) -> None:
        self.vector = vector
        self.error = error
        self.calls: list[str] = []

    def embed_query(self, text: str):  # type: ignore[no-untyped-def]
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.vector

    def embed_texts(self, texts: Sequence[str]) -> list[list[float]]:
        return [list(self.vector) for _ in texts]  # type: ignore[call-overload]


class FakeSearch:
    """Honors threshold and limit like a real store would."""

    def __init__(self, hits: list[SearchHit] | None = None, fail_calls: set[int] | None = None):
        self.hits = hits or []
        self.fail_calls = fail_calls or set()
        self.calls: list[dict] = []
        self.reachable = True

    def search(self, query_vector, threshold, limit, specialty_filter=None):  # type: ignore[no-untyped-def]
        self.calls.append(
            {"threshold": threshold, "limit": limit, "specialty_filter": specialty_filter}
        )
        if len(self.calls) in self.fail_calls:
            raise VectorStoreError("store down")
        return [h for h in self.hits if h.similarity >= threshold][:limit]

    def ping(self) -> bool:
        return self.reachable


def _hit(pid: str, similarity: float, content: str = "text", **meta) -> SearchHit:
    return SearchHit(id=pid, content=content, similarity=similarity, metadata=meta)


def _uc(embedding=None, search=None, dim=None) -> RetrievePassages:  # type: ignore[no-untyped-def]
    return RetrievePassages(
        embedding=embedding or FakeEmbedding(),
        search=search or FakeSearch(),
        clock=FixedClock(),
        embedding_dim=dim,
        embedding_model="fake-model",
    )


def test_request_maps_onto_domain_query():
    req = RetrievalRequest(query="chest pain", specialty_id="cardiology", threshold=0.5, limit=2)
    assert req.to_query() == Query(
        text="chest pain", specialty_id="cardiology", threshold=0.5, limit=2
    )


class TestValidation:
    @pytest.mark.parametrize(
        "req",
        [
            RetrievalRequest(query="   "),
            RetrievalRequest(query="q", threshold=1.5),
            RetrievalRequest(query="q", threshold=-0.1),
            RetrievalRequest(query="q", limit=0),
        ],
    )
    def test_invalid_requests(self, req):
        res = _uc().execute(req)
        assert not res.ok
        assert isinstance(res.error, ValidationError)


class TestExecute:
    def test_ranks_hits(self):
        search = FakeSearch(
            [
                _hit("plain", 0.8, "unrelated content"),
                _hit("match", 0.75, "asthma control in adults", year="2024"),
            ]
        )
        res = _uc(search=search).execute(RetrievalRequest(query="asthma control"))
        assert res.ok
        assert [p.id for p in res.value] == ["match", "plain"]
        assert res.value[0].metadata.year == "2024"

    def test_passes_specialty_filter_and_defaults(self):
        search = FakeSearch()
        _uc(search=search).execute(RetrievalRequest(query="q", specialty_id="cardiology"))
        assert search.calls == [{"threshold": 0.7, "limit": 5, "specialty_filter": "cardiology"}]

    def test_embedding_failure(self):
        res = _uc(embedding=FakeEmbedding(error=RuntimeError("quota"))).execute(
            RetrievalRequest(query="q")
        )
        assert isinstance(res.error, EmbeddingError)
        assert "quota" in str(res.error)

    @pytest.mark.parametrize("vector", ["abc", [], None, [0.1, "x"], [True, False]])
    def test_malformed_embedding(self, vector):
        res = _uc(embedding=FakeEmbedding(vector=vector)).execute(RetrievalRequest(query="q"))
        assert isinstance(res.error, EmbeddingError)

    def test_dimension_mismatch(self):
        res = _uc(dim=1536).execute(RetrievalRequest(query="q"))
        assert isinstance(res.error, EmbeddingError)
        assert "1536" in str(res.error)

    def test_store_failure_maps_to_retrieval_error(self):
        res = _uc(search=FakeSearch(fail_calls={1})).execute(RetrievalRequest(query="q"))
        assert isinstance(res.error, RetrievalError)

    def test_high_threshold_yields_no_passages_and_no_passage_block(self):
        search = FakeSearch([_hit("best", 0.5, "hypertension therapy")])
        res = _uc(search=search).execute(RetrievalRequest(query="hypertension", threshold=0.99))
        assert res.ok
        assert res.value == []

        prompt = PromptComposer().compose("Base.", None, res.value, False)
        assert "RELEVANT MEDICAL INFORMATION" not in prompt.text
        assert prompt.text == "Base."

    def test_out_of_contract_hits_are_filtered(self):
        class LooseSearch(FakeSearch):
            def search(self, query_vector, threshold, limit, specialty_filter=None):  # type: ignore[no-untyped-def]
                return [_hit("low", 0.1), _hit("a", 0.9), _hit("b", 0.8)]

        res = _uc(search=LooseSearch()).execute(RetrievalRequest(query="q", limit=1))
        assert [p.id for p in res.value] == ["a"]


class TestExecuteWithTerms:
    def test_two_passes_with_their_own_thresholds(self):
        embedding = FakeEmbedding()
        search = FakeSearch([_hit("a", 0.9), _hit("b", 0.68)])
        res = _uc(embedding=embedding, search=search).execute_with_terms(
            RetrievalRequest(query="BP 150 mmHg and hypertension")
        )
        assert res.ok
        assert [c["threshold"] for c in search.calls] == [0.65, 0.7]
        assert all(c["limit"] == 3 for c in search.calls)
        assert embedding.calls[1] == "150 mmHg BP hypertension"
        assert sorted(p.id for p in res.value) == ["a", "b"]  # deduplicated

    def test_one_failed_pass_is_tolerated(self):
        search = FakeSearch([_hit("a", 0.9)], fail_calls={1})
        res = _uc(search=search).execute_with_terms(RetrievalRequest(query="asthma in COPD"))
        assert res.ok
        assert [p.id for p in res.value] == ["a"]

    def test_both_failed(self):
        search = FakeSearch(fail_calls={1, 2})
        res = _uc(search=search).execute_with_terms(RetrievalRequest(query="asthma in COPD"))
        assert isinstance(res.error, RetrievalError)

    def test_without_terms_falls_back_to_single_search(self):
        search = FakeSearch()
        _uc(search=search).execute_with_terms(RetrievalRequest(query="what should i eat"))
        assert search.calls == [{"threshold": 0.7, "limit": 5, "specialty_filter": None}]


class TestHealth:
    def test_available_with_empty_result(self):
        assert _uc().is_available() is True

    def test_unavailable_on_failure(self):
        assert _uc(search=FakeSearch(fail_calls={1})).is_available() is False

    def test_diagnostics_healthy(self):
        report = _uc().diagnostics()
        assert report["status"] == "healthy"
        assert report["timestamp"].startswith("2025-06-01")
        assert report["embedding"] == {"model": "fake-model", "dimension": 3, "ok": True}
        assert report["vector_store"] == {"connected": True}
        assert report["error"] is None

    def test_diagnostics_unreachable_store(self):
        search = FakeSearch()
        search.reachable = False
        report = _uc(search=search).diagnostics()
        assert report["status"] == "unhealthy"
        assert report["error"] == "vector store unreachable"

    def test_diagnostics_embedding_failure(self):
        report = _uc(embedding=FakeEmbedding(error=RuntimeError("no key"))).diagnostics()
        assert report["status"] == "unhealthy"
        assert "no key" in report["error"]
