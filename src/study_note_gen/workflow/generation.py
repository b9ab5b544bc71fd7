import asyncio
import logging
import re
from typing import Any, TypedDict

from pydantic import BaseModel, ValidationError

from study_note_gen.config import Settings, get_settings
from study_note_gen.errors import GenerationCancelled, GenerationError, QuotaSignal
from study_note_gen.logtext import clip
from study_note_gen.models import (
    ContentChunk,
    ContentKind,
    DetailLevel,
    DocumentMeta,
    Exercise,
    Flashcard,
    GenerationRequest,
    GenerationResult,
    ModelConfig,
    QuizQuestion,
    Topic,
)
from study_note_gen.pipeline import prompts
from study_note_gen.pipeline.balance import ContextBalancer, truncate_words
from study_note_gen.pipeline.chunking import split_into_chunks
from study_note_gen.pipeline.extract import looks_like_refusal, parse_json_items
from study_note_gen.pipeline.sanitize import sanitize_markup
from study_note_gen.providers.llm.classifier import classify_exception, unwrap
from study_note_gen.providers.llm.factory import ChatClient, build_chat_client

logger = logging.getLogger(__name__)
ERROR_LOG_LIMIT = 200

Messages = list[dict[str, str]]


class SummaryState(TypedDict):
    chunks: list[ContentChunk]
    partials: list[str]
    result: str


class GenerationWorkflow:
    """Generates study content from a note corpus.

    Summary: balance -> split -> single-shot or sequential map-reduce (LangGraph).
    Flashcards/quiz/exercises: balance -> single-shot -> JSON extraction.
    Topics/title/chat: truncate -> single-shot.

    ``QuotaSignal`` propagates from every entry point except ``title`` and
    ``detect_language``, which are best-effort.
    """

    def __init__(self, settings: Settings | None = None, client: ChatClient | None = None) -> None:
        self.settings = settings or get_settings()
        self.client = client or build_chat_client(self.settings)
        self.balancer = ContextBalancer(self.settings.truncation_marker)

    async def run(self, request: GenerationRequest, cancel_event: asyncio.Event | None = None) -> GenerationResult:
        logger.info(
            "generate kind=%s words=%d documents=%d",
            request.kind.value,
            len(request.corpus.split()),
            len(request.documents),
        )
        if request.kind == ContentKind.SUMMARY:
            content: Any = await self.summarize(request, cancel_event=cancel_event)
        elif request.kind == ContentKind.FLASHCARDS:
            content = await self.flashcards(request)
        elif request.kind == ContentKind.QUIZ:
            content = await self.quiz(request)
        elif request.kind == ContentKind.EXERCISES:
            content = await self.exercises(request)
        elif request.kind == ContentKind.TOPICS:
            content = await self.topics(request)
        elif request.kind == ContentKind.TITLE:
            content = await self.title(request)
        else:
            content = await self.chat(request)

        meta: dict[str, Any] = {"language": request.language}
        if isinstance(content, list):
            meta["items"] = len(content)
        return GenerationResult(kind=request.kind, content=content, meta=meta)

    async def summarize(self, request: GenerationRequest, cancel_event: asyncio.Event | None = None) -> str:
        detail = request.detail_level
        chunk_words = self.settings.chunk_words_for(detail.value)
        balanced = self.balancer.balance(request.corpus, chunk_words * 2)
        chunks = split_into_chunks(balanced, chunk_words)
        logger.info(
            "summary.split detail=%s words=%d chunk_words=%d chunks=%d",
            detail.value,
            len(balanced.split()),
            chunk_words,
            len(chunks),
        )

        config = self._config(request, self.settings.summary_temperature)
        system = prompts.summary_system_prompt(detail, request.language, request.documents)
        if len(chunks) == 1:
            self._check_cancelled(cancel_event, "summary")
            user = self._summary_prompt(chunks[0].text, request, part=None)
            raw = await self._ask_llm(self._pair(system, user), config, stage="summary")
            return sanitize_markup(raw)
        return await self._map_reduce(request, chunks, system, config, cancel_event)

    async def _map_reduce(
        self,
        request: GenerationRequest,
        chunks: list[ContentChunk],
        system: str,
        config: ModelConfig,
        cancel_event: asyncio.Event | None,
    ) -> str:
        from langgraph.graph import END, START, StateGraph

        merge_config = config
        if request.model_config is None:
            merge_config = ModelConfig(model=config.model, temperature=self.settings.merge_temperature)

        async def map_chunk_node(state: SummaryState) -> dict[str, list[str]]:
            chunk = state["chunks"][len(state["partials"])]
            self._check_cancelled(cancel_event, f"chunk {chunk.index}/{chunk.total}")
            logger.info("summary.chunk index=%d total=%d words=%d", chunk.index, chunk.total, chunk.word_count)
            user = self._summary_prompt(chunk.text, request, part=chunk)
            raw = await self._ask_llm(self._pair(system, user), config, stage=f"summary.part{chunk.index}")
            return {"partials": [*state["partials"], sanitize_markup(raw)]}

        def route_after_chunk(state: SummaryState) -> str:
            return "map_chunk_step" if len(state["partials"]) < len(state["chunks"]) else "merge_step"

        async def merge_node(state: SummaryState) -> dict[str, str]:
            self._check_cancelled(cancel_event, "merge")
            logger.info("summary.merge parts=%d", len(state["partials"]))
            user = prompts.summary_merge_prompt(state["partials"], request.detail_level, request.language)
            raw = await self._ask_llm(self._pair(system, user), merge_config, stage="summary.merge")
            return {"result": sanitize_markup(raw)}

        graph = StateGraph(SummaryState)
        graph.add_node("map_chunk_step", map_chunk_node)
        graph.add_node("merge_step", merge_node)
        graph.add_edge(START, "map_chunk_step")
        graph.add_conditional_edges(
            "map_chunk_step",
            route_after_chunk,
            {"map_chunk_step": "map_chunk_step", "merge_step": "merge_step"},
        )
        graph.add_edge("merge_step", END)

        app = graph.compile()
        final_state = await app.ainvoke(
            {"chunks": chunks, "partials": [], "result": ""},
            config={"recursion_limit": len(chunks) + 5},
        )
        return str(final_state.get("result", "")).strip()

    async def flashcards(self, request: GenerationRequest) -> list[dict[str, Any]]:
        count = request.target_count or self.settings.item_counts.flashcards
        content = self.balancer.balance(request.corpus, self.settings.structured_context_words)
        messages = prompts.flashcards_messages(
            content,
            count,
            request.language,
            documents=request.documents,
            hint_limit=self.settings.document_hint_limit,
        )
        return await self._structured_items(request, messages, Flashcard, count)

    async def quiz(self, request: GenerationRequest) -> list[dict[str, Any]]:
        count = request.target_count or self.settings.item_counts.quiz
        content = self.balancer.balance(request.corpus, self.settings.structured_context_words)
        messages = prompts.quiz_messages(
            content,
            count,
            request.language,
            documents=request.documents,
            hint_limit=self.settings.document_hint_limit,
        )
        return await self._structured_items(request, messages, QuizQuestion, count)

    async def exercises(self, request: GenerationRequest) -> list[dict[str, Any]]:
        count = request.target_count or self.settings.item_counts.exercises
        content = self.balancer.balance(request.corpus, self.settings.structured_context_words)
        messages = prompts.exercises_messages(
            content,
            count,
            request.language,
            documents=request.documents,
            hint_limit=self.settings.document_hint_limit,
        )
        return await self._structured_items(request, messages, Exercise, count)

    async def topics(self, request: GenerationRequest) -> list[dict[str, Any]]:
        count = request.target_count or self.settings.item_counts.topics
        content = self._truncate(request.corpus)
        messages = prompts.topics_messages(
            content,
            count,
            request.language,
            documents=request.documents,
            hint_limit=self.settings.document_hint_limit,
        )
        items = await self._json_items(request, messages)

        topics: list[dict[str, Any]] = []
        for position, item in enumerate(items[:count], start=1):
            if not isinstance(item, dict):
                continue
            topic = Topic(
                id=str(position),
                title=str(item.get("title") or f"Topic {position}"),
                description=str(item.get("description") or ""),
            )
            topics.append(topic.model_dump())
        return topics

    async def title(self, request: GenerationRequest) -> str:
        fallback = self.settings.fallback_title
        trimmed = request.corpus.strip()
        if not trimmed:
            return fallback
        messages = prompts.title_messages(
            self._truncate(trimmed),
            request.documents,
            self.settings.document_hint_limit,
        )
        try:
            raw = await self._ask_llm(messages, self._config(request, self.settings.title_temperature), stage="title")
        except Exception as exc:
            logger.warning("title.fallback type=%s detail=%s", exc.__class__.__name__, clip(str(exc), ERROR_LOG_LIMIT))
            return fallback
        return self._clean_title(raw)

    async def chat(self, request: GenerationRequest) -> str:
        context = self._truncate(request.corpus) if request.corpus.strip() else None
        messages = [
            {"role": "system", "content": prompts.chat_system_prompt(context)},
            *[message.as_dict() for message in request.messages],
        ]
        return await self._ask_llm(messages, self._config(request, self.settings.default_temperature), stage="chat")

    async def edit_summary(
        self,
        current_summary: str,
        instruction: str,
        original_content: str | None = None,
        model_config: ModelConfig | None = None,
    ) -> str:
        context = None
        if original_content and original_content.strip():
            context = truncate_words(original_content, self.settings.edit_context_words, self.settings.truncation_marker)
        messages = prompts.edit_summary_messages(current_summary, instruction, context)
        config = model_config or ModelConfig(self.settings.openai_model, self.settings.default_temperature)
        raw = await self._ask_llm(messages, config, stage="summary.edit")
        return sanitize_markup(raw)

    async def detect_language(self, text: str) -> str:
        if not text.strip():
            return "en"
        sample = text[: self.settings.language_sample_chars]
        config = ModelConfig(self.settings.openai_model, self.settings.language_temperature)
        try:
            raw = await self._ask_llm(prompts.detect_language_messages(sample), config, stage="language")
        except Exception as exc:
            logger.warning("language.fallback type=%s detail=%s", exc.__class__.__name__, clip(str(exc), ERROR_LOG_LIMIT))
            return "en"
        code = raw.strip().strip("`\"'.").lower()
        if re.fullmatch(r"[a-z]{2}", code):
            return code
        logger.warning("language.invalid code=%s fallback=en", clip(code, 20))
        return "en"

    async def _structured_items(
        self,
        request: GenerationRequest,
        messages: Messages,
        item_model: type[BaseModel],
        count: int,
    ) -> list[dict[str, Any]]:
        items = await self._json_items(request, messages)
        validated: list[dict[str, Any]] = []
        for position, item in enumerate(items):
            try:
                model = item_model.model_validate(item)
            except ValidationError as exc:
                logger.warning(
                    "%s.item_invalid position=%d errors=%d",
                    request.kind.value,
                    position,
                    exc.error_count(),
                )
                continue
            validated.append(model.model_dump(by_alias=True, exclude_none=True))
        if len(validated) < count:
            logger.info("%s.short requested=%d produced=%d", request.kind.value, count, len(validated))
        return validated[:count]

    async def _json_items(self, request: GenerationRequest, messages: Messages) -> list[Any]:
        stage = request.kind.value
        config = self._config(request, self.settings.default_temperature)
        try:
            raw = await self._ask_llm(messages, config, stage=stage)
            if looks_like_refusal(raw):
                raise GenerationError(f"AI service returned an error: {clip(raw, ERROR_LOG_LIMIT)}")
        except QuotaSignal:
            raise
        except GenerationError as exc:
            logger.error("%s.failed detail=%s", stage, exc.message)
            return []
        return parse_json_items(raw)

    async def _ask_llm(self, messages: Messages, config: ModelConfig, stage: str) -> str:
        logger.info("llm.request stage=%s model=%s messages=%d", stage, config.model, len(messages))
        logger.debug("llm.request.full stage=%s\n%s", stage, messages[-1]["content"] if messages else "")
        try:
            text = await self.client.chat_completion(messages, config)
        except QuotaSignal as exc:
            logger.warning("llm.quota stage=%s code=%s remaining=%s", stage, exc.code.value, exc.remaining)
            raise
        except GenerationError as exc:
            logger.error("llm.error stage=%s detail=%s", stage, clip(exc.message, ERROR_LOG_LIMIT))
            raise
        except Exception as exc:
            logger.error("llm.error stage=%s type=%s", stage, exc.__class__.__name__)
            return unwrap(classify_exception(exc))
        logger.info("llm.response stage=%s chars=%d", stage, len(text))
        logger.debug("llm.response.full stage=%s\n%s", stage, text)
        return text

    def _summary_prompt(self, content: str, request: GenerationRequest, part: ContentChunk | None) -> str:
        return prompts.summary_user_prompt(
            content,
            request.detail_level,
            documents=request.documents,
            part=part,
            language=request.language,
            hint_limit=self.settings.document_hint_limit,
        )

    def _config(self, request: GenerationRequest, temperature: float) -> ModelConfig:
        return request.model_config or ModelConfig(model=self.settings.openai_model, temperature=temperature)

    def _truncate(self, text: str) -> str:
        return truncate_words(text, self.settings.prompt_context_words, self.settings.truncation_marker)

    def _clean_title(self, raw: str) -> str:
        title = raw.strip()
        if len(title) >= 2 and title[0] in ('"', "'") and title[-1] == title[0]:
            title = title[1:-1].strip()
        title = re.sub(r"^`+|`+$", "", title).strip()

        max_chars = self.settings.title_max_chars
        if len(title) > max_chars:
            cut_mid_word = not title[max_chars].isspace() and not title[max_chars - 1].isspace()
            title = title[:max_chars].strip()
            words = title.split()
            if cut_mid_word and len(words) > 1:
                title = " ".join(words[:-1])

        words = title.split()
        if len(words) > self.settings.title_max_words:
            title = " ".join(words[: self.settings.title_max_words])
        title = re.sub(r"[.!?\s]+$", "", title)
        return title or self.settings.fallback_title

    @staticmethod
    def _pair(system: str, user: str) -> Messages:
        return [{"role": "system", "content": system}, {"role": "user", "content": user}]

    @staticmethod
    def _check_cancelled(cancel_event: asyncio.Event | None, stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("summary.cancelled before=%s", stage)
            raise GenerationCancelled(f"Generation cancelled before {stage}")


def build_request(
    kind: ContentKind | str,
    corpus: str,
    documents: list[dict[str, str]] | None = None,
    detail_level: DetailLevel | str | None = None,
    target_count: int | None = None,
    language: str | None = None,
    model_config: ModelConfig | None = None,
) -> GenerationRequest:
    """Build a ``GenerationRequest`` from loosely typed caller input."""
    return GenerationRequest(
        kind=ContentKind(kind),
        corpus=corpus,
        documents=tuple(DocumentMeta(name=str(doc["name"]), type=str(doc.get("type", ""))) for doc in documents or []),
        detail_level=DetailLevel(detail_level) if detail_level else DetailLevel.STANDARD,
        target_count=target_count,
        language=language,
        model_config=model_config,
    )
