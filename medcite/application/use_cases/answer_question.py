# medcite/application/use_cases/answer_question.py
from __future__ import annotations

import logging

from medcite.application.dto.query_dto import AnswerRequest, MedicalAnswer, RetrievalRequest
from medcite.application.ports.llm_port import ChatMessage, LLMPort
from medcite.application.ports.telemetry_port import TelemetryPort
from medcite.application.specialty_prompts import SpecialtyPromptService
from medcite.application.use_cases.retrieve_passages import RetrievePassages
from medcite.application.use_cases.save_citations import SaveCitations
from medcite.domain.errors import DomainError, LLMError, ValidationError
from medcite.domain.models import PersistedCitation, RankedPassage
from medcite.domain.services.citation_parsing import CitationParser
from medcite.domain.services.term_extraction import (
    enhance_query_with_specialty_context,
    sanitize_user_message,
)
from medcite.domain.types import Result

logger = logging.getLogger(__name__)


class AnswerQuestion:
    """
    Application Use-Case: retrieve -> compose -> generate -> parse citations
    -> (optionally) persist them.

    Retrieval problems never block an answer: the prompt is then composed
    without passages and the reason is reported on the result. Only an
    invalid request or a failed generation yields a failure.
    """

    def __init__(
        self,
        retriever: RetrievePassages,
        prompts: SpecialtyPromptService,
        llm: LLMPort,
        parser: CitationParser | None = None,
        saver: SaveCitations | None = None,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self.retriever = retriever
        self.prompts = prompts
        self.llm = llm
        self.parser = parser or CitationParser()
        self.saver = saver
        self.telemetry = telemetry

    def execute(self, req: AnswerRequest) -> Result[MedicalAnswer, DomainError]:
        # 1) Validate
        question = sanitize_user_message(req.question)
        if not question:
            return Result.failure(ValidationError("question must not be empty"))

        # 2) Retrieve (degrades to no passages)
        passages, retrieval_error = self._retrieve(question, req)
        if isinstance(retrieval_error, ValidationError):
            return Result.failure(retrieval_error)

        # 3) Compose
        prompt = self.prompts.system_prompt(req.specialty_id, passages, req.include_user_context)
        user_message = enhance_query_with_specialty_context(
            question, req.specialty_id, self.prompts.specialty_text(req.specialty_id)
        )

        # 4) Generate
        messages = [
            ChatMessage(role="system", content=prompt.text),
            ChatMessage(role="user", content=user_message),
        ]
        try:
            response = self.llm.chat(
                messages, temperature=req.temperature, max_tokens=req.max_tokens
            )
        except LLMError as ex:
            return Result.failure(ex)
        except Exception as ex:  # noqa: BLE001
            return Result.failure(LLMError(f"llm generation failed: {ex}"))

        # 5) Parse and persist citations
        extraction = self.parser.extract(response.text)
        persisted: tuple[PersistedCitation, ...] = ()
        if req.message_id and self.saver is not None and extraction.citations:
            saved = self.saver.execute(req.message_id, extraction.citations)
            if saved.ok:
                persisted = tuple(saved.value or [])
            else:
                logger.warning("citations of %s not persisted: %s", req.message_id, saved.error)

        if self.telemetry is not None:
            self.telemetry.incr("answer.requests", {"grounded": bool(passages)})
            self.telemetry.observe("answer.citations", float(len(extraction.citations)))

        return Result.success(
            MedicalAnswer(
                text=response.text,
                clean_text=extraction.clean_text,
                citations=extraction.citations,
                passages=tuple(passages),
                citation_index_map=dict(prompt.citation_index_map),
                persisted=persisted,
                retrieval_error=str(retrieval_error) if retrieval_error else None,
            )
        )

    def _retrieve(
        self, question: str, req: AnswerRequest
    ) -> tuple[list[RankedPassage], DomainError | None]:
        retrieval = RetrievalRequest(
            query=question,
            specialty_id=req.specialty_id,
            threshold=req.threshold,
            limit=req.limit,
        )
        if req.use_terms:
            found = self.retriever.execute_with_terms(retrieval)
        else:
            found = self.retriever.execute(retrieval)
        if found.ok:
            return list(found.value or []), None
        logger.warning("answering without passages: %s", found.error)
        return [], found.error
