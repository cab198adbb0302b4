"""HTTP API for retrieval, answering and citation extraction.

Why: Consumable API without business logic; pure delegation to use cases.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

try:
    from fastapi import FastAPI, HTTPException, Request
    from pydantic import BaseModel
except ImportError as err:
    raise ImportError("FastAPI not installed. Install with: pip install medcite") from err

from medcite.application.dto.query_dto import AnswerRequest, RetrievalRequest
from medcite.config.logging import configure_logging, request_id_var
from medcite.domain.errors import DomainError
from medcite.domain.models import ExtractedCitation, PersistedCitation, RankedPassage
from medcite.domain.services.citation_parsing import clean_citation_text, format_doi_link

logger = logging.getLogger(__name__)


# Pydantic models for request/response validation
class RetrieveRequestModel(BaseModel):
    """Request model for /v1/retrieve.

    Unset threshold, limit and use_terms fall back to the RAG_* settings.
    """

    query: str
    specialty_id: str | None = None
    threshold: float | None = None
    limit: int | None = None
    use_terms: bool | None = None


class PassageModel(BaseModel):
    id: str
    content: str
    similarity: float
    enhanced_score: float
    metadata: dict[str, Any]


class RetrieveResponseModel(BaseModel):
    status: str
    passages: list[PassageModel] | None = None
    error: str | None = None


class CitationModel(BaseModel):
    reference_number: int
    title: str
    authors: str | None = None
    journal: str | None = None
    year: str | None = None
    doi: str | None = None
    doi_link: str | None = None
    url: str | None = None
    positions: list[int] = []


class AnswerRequestModel(BaseModel):
    """Request model for /v1/answer."""

    question: str
    specialty_id: str | None = None
    message_id: str | None = None
    threshold: float | None = None
    limit: int | None = None
    use_terms: bool | None = None


class AnswerResponseModel(BaseModel):
    status: str
    text: str | None = None
    clean_text: str | None = None
    citations: list[CitationModel] = []
    persisted: int = 0
    retrieval_error: str | None = None
    error: str | None = None


class StoredCitationsResponseModel(BaseModel):
    status: str
    message_id: str
    citations: list[CitationModel] = []
    error: str | None = None


class ExtractRequestModel(BaseModel):
    """Request model for /v1/citations/extract; message_id also persists them."""

    text: str
    message_id: str | None = None


class ExtractResponseModel(BaseModel):
    status: str
    clean_text: str
    citations: list[CitationModel]
    persisted: int = 0
    error: str | None = None


def _passage_model(p: RankedPassage) -> PassageModel:
    meta = p.metadata
    fields = {
        "title": meta.title,
        "authors": meta.authors,
        "journal": meta.journal,
        "year": meta.year,
        "doi": meta.doi,
        "url": meta.url,
    }
    metadata = {k: v for k, v in fields.items() if v} | dict(meta.extra)
    return PassageModel(
        id=p.id,
        content=p.content,
        similarity=p.similarity,
        enhanced_score=p.enhanced_score,
        metadata=metadata,
    )


def _display(value: str | None) -> str | None:
    return clean_citation_text(value) or None


def _citation_model(c: ExtractedCitation | PersistedCitation) -> CitationModel:
    parsed = c.citation if isinstance(c, ExtractedCitation) else c
    return CitationModel(
        reference_number=c.reference_number,
        title=_display(parsed.title) or parsed.title,
        authors=_display(parsed.authors),
        journal=_display(parsed.journal),
        year=parsed.year,
        doi=parsed.doi,
        doi_link=format_doi_link(parsed.doi),
        url=parsed.url,
        positions=list(c.positions) if isinstance(c, ExtractedCitation) else [],
    )


# Global state (initialized on startup unless a test injected one)
container: Any | None = None


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    global container

    if container is None:
        from medcite.config.compose import build_container

        container = build_container()
        configure_logging(container.settings)
    yield


app = FastAPI(title="medcite API", version="1.0.0", lifespan=lifespan)


@app.middleware("http")
async def bind_request_id(request: Request, call_next):  # type: ignore[no-untyped-def]
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


def _require_container() -> Any:
    if container is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return container


def _retrieval_options(
    settings: Any, threshold: float | None, limit: int | None, use_terms: bool | None
) -> tuple[float, int, bool]:
    return (
        settings.rag_threshold if threshold is None else threshold,
        settings.rag_limit if limit is None else limit,
        settings.rag_use_terms if use_terms is None else use_terms,
    )


@app.post("/v1/retrieve", response_model=RetrieveResponseModel)
def retrieve(req: RetrieveRequestModel) -> RetrieveResponseModel:
    """Ranked passages for a question (no generation)."""
    c = _require_container()
    uc = c.get_retrieve_use_case()
    threshold, limit, use_terms = _retrieval_options(
        c.settings, req.threshold, req.limit, req.use_terms
    )
    dto = RetrievalRequest(
        query=req.query, specialty_id=req.specialty_id, threshold=threshold, limit=limit
    )
    result = uc.execute_with_terms(dto) if use_terms else uc.execute(dto)
    if not result.ok:
        return RetrieveResponseModel(status="error", error=str(result.error))
    return RetrieveResponseModel(
        status="success", passages=[_passage_model(p) for p in result.value or []]
    )


@app.post("/v1/answer", response_model=AnswerResponseModel)
def answer(req: AnswerRequestModel) -> AnswerResponseModel:
    """Grounded answer with parsed (and, given a message_id, persisted) citations."""
    c = _require_container()
    threshold, limit, use_terms = _retrieval_options(
        c.settings, req.threshold, req.limit, req.use_terms
    )
    result = c.get_answer_use_case().execute(
        AnswerRequest(
            question=req.question,
            specialty_id=req.specialty_id,
            message_id=req.message_id,
            threshold=threshold,
            limit=limit,
            use_terms=use_terms,
        )
    )
    if not result.ok or result.value is None:
        return AnswerResponseModel(status="error", error=str(result.error))
    value = result.value
    return AnswerResponseModel(
        status="success",
        text=value.text,
        clean_text=value.clean_text,
        citations=[_citation_model(x) for x in value.citations],
        persisted=len(value.persisted),
        retrieval_error=value.retrieval_error,
    )


@app.post("/v1/citations/extract", response_model=ExtractResponseModel)
def extract_citations(req: ExtractRequestModel) -> ExtractResponseModel:
    c = _require_container()
    extraction = c.parser.extract(req.text)
    response = ExtractResponseModel(
        status="success",
        clean_text=extraction.clean_text,
        citations=[_citation_model(x) for x in extraction.citations],
    )
    if req.message_id and extraction.citations:
        saved = c.get_save_citations_use_case().execute(req.message_id, extraction.citations)
        if saved.ok:
            response.persisted = len(saved.value or [])
        else:
            response.status = "error"
            response.error = str(saved.error)
    return response


@app.get("/v1/messages/{message_id}/citations", response_model=StoredCitationsResponseModel)
def stored_citations(message_id: str) -> StoredCitationsResponseModel:
    """Citations persisted for a message, ordered by reference number."""
    store = _require_container().get_citation_store()
    try:
        stored = store.list_for_message(message_id)
    except DomainError as ex:
        return StoredCitationsResponseModel(status="error", message_id=message_id, error=str(ex))
    return StoredCitationsResponseModel(
        status="success", message_id=message_id, citations=[_citation_model(x) for x in stored]
    )


@app.get("/v1/specialties")
def specialties() -> dict[str, list[str]]:
    return {"specialties": _require_container().get_catalog().specialty_ids()}


@app.get("/v1/diagnostics")
def diagnostics() -> dict[str, Any]:
    return _require_container().get_retrieve_use_case().diagnostics()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "healthy", "service": "medcite"}
