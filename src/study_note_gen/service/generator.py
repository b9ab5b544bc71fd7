import asyncio
import logging
from typing import Any

from study_note_gen.errors import GenerationError, QuotaSignal
from study_note_gen.models import ContentKind, DetailLevel, GenerationRequest, GenerationResult, StudyContent
from study_note_gen.providers.store.memory import InMemoryStudyContentStore, StudyContentStore
from study_note_gen.workflow.generation import GenerationWorkflow, build_request

logger = logging.getLogger(__name__)

FIELD_BY_KIND: dict[ContentKind, str] = {
    ContentKind.SUMMARY: "summary",
    ContentKind.FLASHCARDS: "flashcards",
    ContentKind.QUIZ: "quiz_questions",
    ContentKind.EXERCISES: "exercises",
    ContentKind.TOPICS: "feynman_topics",
}


class StudyContentService:
    def __init__(
        self,
        workflow: GenerationWorkflow | None = None,
        store: StudyContentStore | None = None,
    ) -> None:
        self.workflow = workflow or GenerationWorkflow()
        self.store = store or InMemoryStudyContentStore()
        self.settings = self.workflow.settings

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        result = await self.workflow.run(request)
        logger.info("generate.done kind=%s meta=%s", request.kind.value, result.meta)
        return result

    async def generate_for_note(
        self,
        note_id: str,
        corpus: str,
        documents: list[dict[str, str]] | None = None,
        detail_level: DetailLevel | str | None = None,
    ) -> dict[str, Any]:
        """Fill every empty study-content field of a note.

        Kinds run concurrently. Fields that come back empty are not saved, and an
        existing summary is never replaced. A ``QuotaSignal`` from any kind is
        re-raised once the successful fields are stored.
        """
        if len(corpus.strip()) < self.settings.min_note_chars:
            logger.info("note.skipped note_id=%s chars=%d", note_id, len(corpus.strip()))
            return self._outcome(note_id, None, [], {}, await self.store.get_study_content(note_id), skipped=True)

        existing = await self.store.get_study_content(note_id)
        missing = [kind for kind, field in FIELD_BY_KIND.items() if not getattr(existing, field)]
        if not missing:
            logger.info("note.complete note_id=%s", note_id)
            return self._outcome(note_id, None, [], {}, existing)

        language = await self.workflow.detect_language(corpus)
        level = detail_level or self.settings.summary_detail_level
        logger.info(
            "note.generate note_id=%s language=%s detail=%s kinds=%s",
            note_id,
            language,
            level,
            ",".join(kind.value for kind in missing),
        )
        outcomes = await asyncio.gather(
            *[
                self.workflow.run(build_request(kind, corpus, documents, level, language=language))
                for kind in missing
            ],
            return_exceptions=True,
        )

        updates: dict[str, Any] = {}
        errors: dict[str, str] = {}
        quota: QuotaSignal | None = None
        unexpected: BaseException | None = None
        for kind, outcome in zip(missing, outcomes):
            field = FIELD_BY_KIND[kind]
            if isinstance(outcome, QuotaSignal):
                quota = quota or outcome
                errors[field] = outcome.message
            elif isinstance(outcome, GenerationError):
                logger.error("note.kind_failed note_id=%s kind=%s detail=%s", note_id, kind.value, outcome.message)
                errors[field] = outcome.message
            elif isinstance(outcome, BaseException):
                logger.error("note.kind_crashed note_id=%s kind=%s type=%s", note_id, kind.value, outcome.__class__.__name__)
                unexpected = unexpected or outcome
            elif outcome.content:
                updates[field] = outcome.content

        if "summary" in updates and (await self.store.get_study_content(note_id)).summary:
            logger.info("note.summary_kept note_id=%s", note_id)
            updates.pop("summary")

        saved = existing
        if updates:
            saved = await self.store.save_study_content(note_id, updates)
        logger.info(
            "note.saved note_id=%s fields=%s failed=%s quota=%s",
            note_id,
            ",".join(sorted(updates)) or "-",
            ",".join(sorted(errors)) or "-",
            quota.code.value if quota else "-",
        )
        if quota is not None:
            raise quota
        if unexpected is not None:
            raise unexpected
        return self._outcome(note_id, language, sorted(updates), errors, saved)

    async def generate_content_type(
        self,
        note_id: str,
        kind: ContentKind | str,
        corpus: str,
        documents: list[dict[str, str]] | None = None,
        detail_level: DetailLevel | str | None = None,
        target_count: int | None = None,
    ) -> StudyContent:
        kind = ContentKind(kind)
        if kind not in FIELD_BY_KIND:
            raise ValueError(f"{kind.value} is not stored as study content")
        field = FIELD_BY_KIND[kind]
        existing = await self.store.get_study_content(note_id)
        if getattr(existing, field):
            logger.info("note.field_exists note_id=%s field=%s", note_id, field)
            return existing

        language = await self.workflow.detect_language(corpus)
        request = build_request(
            kind,
            corpus,
            documents,
            detail_level or self.settings.summary_detail_level,
            target_count=target_count,
            language=language,
        )
        result = await self.workflow.run(request)
        if not result.content:
            logger.info("note.field_empty note_id=%s field=%s", note_id, field)
            return existing
        return await self.store.save_study_content(note_id, {field: result.content})

    @staticmethod
    def _outcome(
        note_id: str,
        language: str | None,
        generated: list[str],
        errors: dict[str, str],
        content: StudyContent,
        skipped: bool = False,
    ) -> dict[str, Any]:
        return {
            "note_id": note_id,
            "language": language,
            "skipped": skipped,
            "generated": generated,
            "errors": errors,
            "content": content.model_dump(),
        }
