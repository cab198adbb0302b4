"""Dependency injection container.

Why: Single place for wiring; all other layers remain pure. Adapters are
built lazily so that e.g. the ``cite`` CLI command never needs a vector
store or an API key.
"""

from __future__ import annotations

from medcite.application.ports.citation_store_port import CitationStorePort
from medcite.application.ports.clock_port import ClockPort
from medcite.application.ports.embedding_port import EmbeddingPort
from medcite.application.ports.llm_port import LLMPort
from medcite.application.ports.prompt_cache_port import PromptCachePort
from medcite.application.ports.similarity_search_port import SimilaritySearchPort
from medcite.application.ports.specialty_catalog_port import SpecialtyCatalogPort
from medcite.application.ports.telemetry_port import TelemetryPort
from medcite.application.specialty_prompts import SpecialtyPromptService
from medcite.application.use_cases.answer_question import AnswerQuestion
from medcite.application.use_cases.retrieve_passages import RetrievePassages
from medcite.application.use_cases.save_citations import ExtractAndSaveCitations, SaveCitations
from medcite.config import composition
from medcite.config.settings import AppSettings
from medcite.domain.services.citation_parsing import CitationParser
from medcite.domain.services.prompt_composition import PromptComposer

_UNSET = object()


class Container:
    """Holds settings plus one lazily built instance per adapter.

    Any adapter can be passed in up front (tests hand in fakes); the rest is
    built from settings on first use.
    """

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        embedding: EmbeddingPort | None = None,
        search: SimilaritySearchPort | None = None,
        llm: LLMPort | None = None,
        clock: ClockPort | None = None,
        citation_store: CitationStorePort | None = None,
        catalog: SpecialtyCatalogPort | None = None,
        prompt_cache: PromptCachePort | None = None,
        telemetry: TelemetryPort | None | object = _UNSET,
    ) -> None:
        self.settings = settings or AppSettings()
        self._embedding = embedding
        self._search = search
        self._llm = llm
        self._clock = clock
        self._citation_store = citation_store
        self._catalog = catalog
        self._prompt_cache = prompt_cache
        self._telemetry = telemetry
        self.parser = CitationParser()

    # ===== Adapters =====

    def get_embedding(self) -> EmbeddingPort:
        if self._embedding is None:
            self._embedding = composition.build_embedding(self.settings)
        return self._embedding

    def get_search(self) -> SimilaritySearchPort:
        if self._search is None:
            self._search = composition.build_similarity_search(self.settings)
        return self._search

    def get_llm(self) -> LLMPort:
        if self._llm is None:
            self._llm = composition.build_llm(self.settings)
        return self._llm

    def get_clock(self) -> ClockPort:
        if self._clock is None:
            self._clock = composition.build_clock()
        return self._clock

    def get_citation_store(self) -> CitationStorePort:
        if self._citation_store is None:
            self._citation_store = composition.build_citation_store(
                self.settings, self.get_clock()
            )
        return self._citation_store

    def get_catalog(self) -> SpecialtyCatalogPort:
        if self._catalog is None:
            self._catalog = composition.build_specialty_catalog()
        return self._catalog

    def get_prompt_cache(self) -> PromptCachePort:
        if self._prompt_cache is None:
            self._prompt_cache = composition.build_prompt_cache()
        return self._prompt_cache

    def get_telemetry(self) -> TelemetryPort | None:
        if self._telemetry is _UNSET:
            self._telemetry = composition.build_telemetry(self.settings)
        return self._telemetry  # type: ignore[return-value]

    # ===== Use Cases =====

    def get_retrieve_use_case(self) -> RetrievePassages:
        dim = self.settings.embedding_dim
        return RetrievePassages(
            embedding=self.get_embedding(),
            search=self.get_search(),
            clock=self.get_clock(),
            embedding_dim=dim if dim > 0 else None,
            embedding_model=self.settings.embedding_model,
            telemetry=self.get_telemetry(),
        )

    def get_prompt_service(self) -> SpecialtyPromptService:
        return SpecialtyPromptService(
            catalog=self.get_catalog(),
            cache=self.get_prompt_cache(),
            composer=PromptComposer(),
            max_length=self.settings.max_prompt_length,
        )

    def get_save_citations_use_case(self) -> SaveCitations:
        return SaveCitations(self.get_citation_store())

    def get_extract_and_save_use_case(self) -> ExtractAndSaveCitations:
        return ExtractAndSaveCitations(self.parser, self.get_save_citations_use_case())

    def get_answer_use_case(self) -> AnswerQuestion:
        return AnswerQuestion(
            retriever=self.get_retrieve_use_case(),
            prompts=self.get_prompt_service(),
            llm=self.get_llm(),
            parser=self.parser,
            saver=self.get_save_citations_use_case(),
            telemetry=self.get_telemetry(),
        )


def build_container(settings: AppSettings | None = None) -> Container:
    """Container wired from settings (default: load from environment)."""
    return Container(settings)
