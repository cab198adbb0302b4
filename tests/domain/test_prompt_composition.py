"""Tests for length-bounded prompt composition."""

from medcite.domain.models import RankedPassage, RetrievedPassage
from medcite.domain.prompts import (
    PASSAGE_BLOCK_HEADER,
    USER_CONTEXT_BLOCK,
    format_base_prompt,
    specialty_transition_message,
)
from medcite.domain.services.prompt_composition import (
    MAX_PROMPT_LENGTH,
    PromptComposer,
    format_passage_block,
    format_passage_entry,
    truncate_at_boundary,
)

BASE = "You are a medical assistant."


def _ranked(pid: str, content: str, meta: dict | None = None, score: float = 0.8) -> RankedPassage:
    return RankedPassage(RetrievedPassage.create(pid, content, meta, score), score)


class TestPassageEntries:
    def test_entry_with_citation_line(self):
        p = _ranked("a", "ACE inhibitors lower BP.", {"title": "T", "authors": "A", "year": 2023})
        assert format_passage_entry(1, p) == "[1] ACE inhibitors lower BP.\nCITATION: T, A, 2023\n\n"

    def test_entry_without_metadata(self):
        assert format_passage_entry(2, _ranked("b", "Plain text.")) == "[2] Plain text.\n\n"

    def test_oversized_passage_is_skipped_and_numbering_stays_consecutive(self):
        passages = [
            _ranked("small-1", "short one"),
            _ranked("huge", "x" * 500),
            _ranked("small-2", "short two"),
        ]
        block = format_passage_block(passages, budget=len(PASSAGE_BLOCK_HEADER) + 60)
        assert block.citation_index_map == {"small-1": 1, "small-2": 2}
        assert "[1] short one" in block.text
        assert "[2] short two" in block.text
        assert "x" * 50 not in block.text

    def test_no_fitting_passage_gives_empty_block(self):
        block = format_passage_block([_ranked("huge", "x" * 500)], budget=300)
        assert block.text == ""
        assert block.citation_index_map == {}


class TestCompose:
    def test_base_only(self):
        out = PromptComposer().compose(BASE, None, [], False)
        assert out.text == BASE
        assert dict(out.citation_index_map) == {}

    def test_section_order(self):
        out = PromptComposer().compose(BASE, "## CARDIOLOGY", [_ranked("a", "text")], True)
        text = out.text
        assert text.index(BASE) < text.index("## CARDIOLOGY") < text.index(USER_CONTEXT_BLOCK)
        assert text.index(USER_CONTEXT_BLOCK) < text.index("## RELEVANT MEDICAL INFORMATION")
        assert out.citation_index_map == {"a": 1}

    def test_blank_specialty_block_is_ignored(self):
        out = PromptComposer().compose(BASE, "   ", [], False)
        assert out.text == BASE

    def test_no_block_when_budget_below_minimum(self):
        base = "b" * 3800  # 4000 - 3800 - 50 leaves 150 < 200
        out = PromptComposer().compose(base, None, [_ranked("a", "short")], False)
        assert "RELEVANT MEDICAL INFORMATION" not in out.text
        assert dict(out.citation_index_map) == {}

    def test_length_never_exceeds_budget(self):
        passages = [_ranked(str(i), "evidence " * 60, {"title": f"T{i}"}) for i in range(20)]
        for max_length in (300, 1000, MAX_PROMPT_LENGTH):
            out = PromptComposer().compose(format_base_prompt(), "specialty " * 100, passages, True, max_length)
            assert 0 < len(out.text) <= max_length

    def test_oversized_instructions_are_cut(self):
        out = PromptComposer().compose("z" * 5000, None, [], False, max_length=1000)
        assert len(out.text) == 1000

    def test_deterministic(self):
        passages = [_ranked("a", "alpha", {"title": "A"}), _ranked("b", "beta")]
        first = PromptComposer().compose(BASE, "## CARDIOLOGY", passages, True)
        second = PromptComposer().compose(BASE, "## CARDIOLOGY", passages, True)
        assert first == second


class TestTruncate:
    def test_clean_cut_at_late_paragraph_break(self):
        text = "a" * 90 + "\n\n" + "b" * 20
        assert truncate_at_boundary(text, 100) == "a" * 90

    def test_hard_cut_when_break_is_early(self):
        text = "a" * 50 + "\n\n" + "b" * 60
        assert truncate_at_boundary(text, 100) == text[:100]

    def test_short_text_untouched(self):
        assert truncate_at_boundary("abc", 10) == "abc"


class TestPromptCatalog:
    def test_base_prompt_sections_can_be_dropped(self):
        full = format_base_prompt()
        assert "## RESPONSE FORMAT" in full and "## RAG INTEGRATION" in full
        trimmed = format_base_prompt(include_citation_instructions=False, include_rag_instructions=False)
        assert "## RESPONSE FORMAT" not in trimmed
        assert "## RAG INTEGRATION" not in trimmed
        assert "## COMMUNICATION STYLE" in trimmed

    def test_transition_message_generic_without_texts(self):
        msg = specialty_transition_message("cardiology", "neurology", None, "x")
        assert "specialty focus is being changed" in msg

    def test_transition_message_with_context(self):
        msg = specialty_transition_message("a", "b", "A text", "B text", "chest pain")
        assert "from a to b" in msg
        assert "B text" in msg
        assert "chest pain" in msg
