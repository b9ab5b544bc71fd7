import copy
from typing import Any, Protocol

from study_note_gen.models import StudyContent

STUDY_CONTENT_FIELDS = frozenset(StudyContent.model_fields)


class StudyContentStore(Protocol):
    async def get_study_content(self, note_id: str) -> StudyContent: ...

    async def save_study_content(self, note_id: str, payload: dict[str, Any]) -> StudyContent: ...


class InMemoryStudyContentStore:
    """Process-local store keyed by note id. Saves are partial upserts."""

    def __init__(self) -> None:
        self._rows: dict[str, dict[str, Any]] = {}

    async def get_study_content(self, note_id: str) -> StudyContent:
        return StudyContent(**copy.deepcopy(self._rows.get(note_id, {})))

    async def save_study_content(self, note_id: str, payload: dict[str, Any]) -> StudyContent:
        unknown = set(payload) - STUDY_CONTENT_FIELDS
        if unknown:
            raise ValueError(f"Unknown study content fields: {sorted(unknown)}")
        row = self._rows.setdefault(note_id, {})
        row.update(copy.deepcopy(payload))
        return StudyContent(**copy.deepcopy(row))
