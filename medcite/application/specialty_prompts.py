# medcite/application/specialty_prompts.py
from __future__ import annotations

import logging
from collections.abc import Sequence

from medcite.application.ports.prompt_cache_port import PromptCachePort
from medcite.application.ports.specialty_catalog_port import SpecialtyCatalogPort
from medcite.domain.models import ComposedPrompt, RankedPassage
from medcite.domain.prompts import (
    CLINICAL_CASE_BLOCK,
    format_base_prompt,
    specialty_transition_message,
    topic_focus_block,
)
from medcite.domain.services.prompt_composition import MAX_PROMPT_LENGTH, PromptComposer

logger = logging.getLogger(__name__)

GENERAL_KEY = "general"


class SpecialtyPromptService:
    """
    Builds system prompts for a specialty on top of the base instructions.

    Retrieval-free prompts depend only on the specialty id, so they are
    memoized in the injected cache; prompts with passages are always composed
    fresh. The service never evicts cache entries.
    """

    def __init__(
        self,
        catalog: SpecialtyCatalogPort,
        cache: PromptCachePort,
        composer: PromptComposer | None = None,
        max_length: int = MAX_PROMPT_LENGTH,
        include_user_context: bool = True,
    ) -> None:
        self.catalog = catalog
        self.cache = cache
        self.composer = composer or PromptComposer()
        self.max_length = max_length
        self.include_user_context = include_user_context

    def specialty_text(self, specialty_id: str | None) -> str | None:
        if not specialty_id:
            return None
        return self.catalog.get_prompt_text(specialty_id)

    def system_prompt(
        self,
        specialty_id: str | None = None,
        passages: Sequence[RankedPassage] = (),
        include_user_context: bool | None = None,
    ) -> ComposedPrompt:
        with_user_context = (
            self.include_user_context if include_user_context is None else include_user_context
        )
        key = f"{specialty_id or GENERAL_KEY}:{int(with_user_context)}"
        if not passages:
            cached = self.cache.get(key)
            if cached is not None:
                return ComposedPrompt(text=cached)

        composed = self.composer.compose(
            format_base_prompt(),
            self.specialty_text(specialty_id),
            passages,
            with_user_context,
            self.max_length,
        )
        if not passages:
            self.cache.set(key, composed.text)
            logger.debug("cached system prompt for %s", key)
        return composed

    def compose_topic_prompt(self, topic: str, specialty_id: str | None = None) -> str:
        """System prompt focused on one medical topic."""
        return self._with_extra_block(topic_focus_block(topic), specialty_id)

    def compose_clinical_case_prompt(self, specialty_id: str | None = None) -> str:
        """System prompt framing the conversation as a clinical case discussion."""
        return self._with_extra_block(CLINICAL_CASE_BLOCK, specialty_id)

    def transition_prompt(
        self,
        current_specialty_id: str,
        new_specialty_id: str,
        conversation_context: str | None = None,
    ) -> str:
        return specialty_transition_message(
            current_specialty_id,
            new_specialty_id,
            self.specialty_text(current_specialty_id),
            self.specialty_text(new_specialty_id),
            conversation_context,
        )

    def _with_extra_block(self, block: str, specialty_id: str | None) -> str:
        specialty = self.specialty_text(specialty_id)
        combined = f"{specialty.strip()}\n\n{block}" if specialty and specialty.strip() else block
        return self.composer.compose(
            format_base_prompt(), combined, (), False, self.max_length
        ).text
