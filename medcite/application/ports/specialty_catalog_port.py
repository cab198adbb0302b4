from typing import Protocol, runtime_checkable


@runtime_checkable
class SpecialtyCatalogPort(Protocol):
    def get_prompt_text(self, specialty_id: str) -> str | None:
        """Knowledge text for a specialty id, or None if the catalog has nothing."""
        ...

    def specialty_ids(self) -> list[str]: ...
