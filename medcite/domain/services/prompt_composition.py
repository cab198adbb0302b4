"""Length-bounded assembly of the instruction prompt.

Why (SAM): Composition is pure string work over already-ranked passages, so it
lives in the domain and is tested without any adapter. Identical inputs give
byte-identical output; the only time-dependent input (the recency boost) is
computed upstream by the ranker.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from types import MappingProxyType

from medcite.domain.errors import CompositionOverflow
from medcite.domain.models import ComposedPrompt, RankedPassage
from medcite.domain.prompts import PASSAGE_BLOCK_HEADER, USER_CONTEXT_BLOCK

MAX_PROMPT_LENGTH = 4000
PASSAGE_BUDGET_RESERVE = 50
MIN_PASSAGE_BUDGET = 200
CLEAN_CUT_RATIO = 0.8
SECTION_SEPARATOR = "\n\n"


def format_passage_entry(index: int, passage: RankedPassage) -> str:
    """``[i] <content>`` followed by a CITATION line when metadata is present."""
    citation = ", ".join(passage.metadata.citation_fields())
    entry = f"[{index}] {passage.content}\n"
    return entry + (f"CITATION: {citation}\n\n" if citation else "\n")


@dataclass(frozen=True)
class PassageBlock:
    text: str
    citation_index_map: dict[str, int]


class _BlockBuilder:
    def __init__(self, budget: int) -> None:
        self.budget = budget
        self.text = PASSAGE_BLOCK_HEADER

    def append(self, entry: str) -> None:
        if len(self.text) + len(entry) > self.budget:
            raise CompositionOverflow(f"entry of {len(entry)} chars exceeds budget {self.budget}")
        self.text += entry


def format_passage_block(passages: Sequence[RankedPassage], budget: int) -> PassageBlock:
    """
    Header plus one entry per passage that fits the budget.

    A passage that would overflow is skipped whole (never cut), later ones are
    still tried. Indices are consecutive over included passages only.
    Returns an empty block when no passage fits.
    """
    builder = _BlockBuilder(budget)
    index_map: dict[str, int] = {}
    for passage in passages:
        if passage.id in index_map:
            continue
        try:
            builder.append(format_passage_entry(len(index_map) + 1, passage))
        except CompositionOverflow:
            continue
        index_map[passage.id] = len(index_map) + 1

    if not index_map:
        return PassageBlock(text="", citation_index_map={})
    return PassageBlock(text=builder.text.strip(), citation_index_map=index_map)


def truncate_at_boundary(text: str, max_length: int) -> str:
    """Hard cut to max_length, preferring the last paragraph break past 80% of it."""
    if len(text) <= max_length:
        return text
    cut = text[: max(max_length, 0)]
    last_break = cut.rfind(SECTION_SEPARATOR)
    if last_break > max_length * CLEAN_CUT_RATIO:
        cut = cut[:last_break]
    return cut


class PromptComposer:
    """
    Merges base instructions, specialty knowledge, user framing and ranked
    passages into one prompt of at most ``max_length`` characters.
    """

    def __init__(self, user_context_block: str = USER_CONTEXT_BLOCK) -> None:
        self.user_context_block = user_context_block

    def compose(
        self,
        base_instructions: str,
        specialty_block: str | None,
        ranked_passages: Sequence[RankedPassage],
        include_user_context: bool,
        max_length: int = MAX_PROMPT_LENGTH,
    ) -> ComposedPrompt:
        prompt = base_instructions

        if specialty_block and specialty_block.strip():
            prompt += SECTION_SEPARATOR + specialty_block.strip()

        if include_user_context:
            prompt += SECTION_SEPARATOR + self.user_context_block

        index_map: dict[str, int] = {}
        if ranked_passages:
            available = max_length - len(prompt) - PASSAGE_BUDGET_RESERVE
            if available > MIN_PASSAGE_BUDGET:
                block = format_passage_block(ranked_passages, available)
                if block.text:
                    prompt += SECTION_SEPARATOR + block.text
                    index_map = block.citation_index_map

        # The block is sized to fit, so only an oversized instruction part is ever cut here.
        text = truncate_at_boundary(prompt, max_length).strip()
        return ComposedPrompt(text=text, citation_index_map=MappingProxyType(index_map))
