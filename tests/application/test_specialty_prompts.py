"""Tests for specialty-aware system prompt assembly."""

from medcite.application.specialty_prompts import SpecialtyPromptService
from medcite.domain.models import RankedPassage, RetrievedPassage
from medcite.domain.prompts import GENERIC_TRANSITION, USER_CONTEXT_BLOCK


class FakeCatalog:
    def __init__(self, texts: dict[str, str]) -> None:
        self.texts = texts
        self.lookups: list[str] = []

    def get_prompt_text(self, specialty_id: str) -> str | None:
        self.lookups.append(specialty_id)
        return self.texts.get(specialty_id)

    def specialty_ids(self) -> list[str]:
        return sorted(self.texts)


class DictCache:
    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value


CARDIOLOGY = "## CARDIOLOGY EXPERTISE\n- Heart failure management\n- Arrhythmia"
NEUROLOGY = "## NEUROLOGY EXPERTISE\n- Stroke care"


def _service(cache: DictCache | None = None) -> SpecialtyPromptService:
    catalog = FakeCatalog({"cardiology": CARDIOLOGY, "neurology": NEUROLOGY})
    return SpecialtyPromptService(catalog, cache or DictCache())


def _ranked(pid: str, content: str) -> RankedPassage:
    return RankedPassage(RetrievedPassage.create(pid, content, {"title": "Guideline"}, 0.9), 0.9)


class TestSystemPrompt:
    def test_general_prompt_is_cached(self):
        cache = DictCache()
        service = _service(cache)
        first = service.system_prompt()
        assert cache.data == {"general:1": first.text}
        assert USER_CONTEXT_BLOCK in first.text

        cache.data["general:1"] = "cached"
        assert service.system_prompt().text == "cached"

    def test_specialty_text_follows_base(self):
        text = _service().system_prompt("cardiology").text
        assert text.startswith("You are AttendMe")
        assert text.index("## CARDIOLOGY EXPERTISE") < text.index("## USER CONTEXT")

    def test_cache_key_includes_user_context_flag(self):
        cache = DictCache()
        service = _service(cache)
        without = service.system_prompt("cardiology", include_user_context=False)
        assert "## USER CONTEXT" not in without.text
        assert set(cache.data) == {"cardiology:0"}

    def test_prompts_with_passages_are_not_cached(self):
        cache = DictCache()
        out = _service(cache).system_prompt("cardiology", [_ranked("p1", "Beta blockers.")])
        assert cache.data == {}
        assert "[1] Beta blockers." in out.text
        assert dict(out.citation_index_map) == {"p1": 1}

    def test_unknown_specialty_gets_base_prompt_only(self):
        text = _service().system_prompt("dermatology", include_user_context=False).text
        assert "EXPERTISE" not in text


class TestSpecialisedPrompts:
    def test_topic_prompt(self):
        text = _service().compose_topic_prompt("atrial fibrillation", "cardiology")
        assert "## CARDIOLOGY EXPERTISE" in text
        assert "following medical topic: atrial fibrillation." in text
        assert "## USER CONTEXT" not in text

    def test_clinical_case_prompt_without_specialty(self):
        text = _service().compose_clinical_case_prompt()
        assert "## CLINICAL CASE DISCUSSION" in text
        assert "EXPERTISE" not in text

    def test_transition_between_known_specialties(self):
        text = _service().transition_prompt("cardiology", "neurology", "chest pain work-up")
        assert text.startswith("I'm now transitioning from cardiology to neurology expertise.")
        assert NEUROLOGY in text
        assert "The conversation so far has been about: chest pain work-up" in text

    def test_transition_to_unknown_specialty_is_generic(self):
        assert _service().transition_prompt("cardiology", "astrology") == GENERIC_TRANSITION
