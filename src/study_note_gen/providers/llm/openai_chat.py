import logging
from typing import Any

from study_note_gen.config import Settings
from study_note_gen.logtext import clip
from study_note_gen.models import ModelConfig
from study_note_gen.providers.llm.classifier import ChatOk, ChatResult, classify_exception, unwrap

logger = logging.getLogger(__name__)
ERROR_LOG_LIMIT = 1000


class OpenAIChatClient:
    """Direct OpenAI-compatible chat completions via langchain-openai."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._llms: dict[tuple[str, float], Any] = {}

    async def chat_completion(self, messages: list[dict[str, str]], config: ModelConfig) -> str:
        return unwrap(await self.complete(messages, config))

    async def complete(self, messages: list[dict[str, str]], config: ModelConfig) -> ChatResult:
        llm = self._get_llm(config)
        logger.info(
            "llm.call model=%s temperature=%.2f timeout=%.1fs retries=%d",
            config.model,
            config.temperature,
            self.settings.llm_timeout_seconds,
            self.settings.llm_num_retries,
        )
        try:
            response = await llm.ainvoke([(message["role"], message["content"]) for message in messages])
        except Exception as exc:
            logger.error(
                "llm.error model=%s type=%s detail=%s",
                config.model,
                exc.__class__.__name__,
                self._extract_error_detail(exc),
            )
            return classify_exception(exc)
        return ChatOk(self._message_text(getattr(response, "content", response)))

    def _get_llm(self, config: ModelConfig):
        key = (config.model, config.temperature)
        if key not in self._llms:
            from langchain_openai import ChatOpenAI

            self._llms[key] = ChatOpenAI(
                model=self._strip_provider_prefix(config.model),
                temperature=config.temperature,
                api_key=self.settings.openai_api_key or None,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=self.settings.llm_num_retries,
            )
        return self._llms[key]

    @staticmethod
    def _message_text(content: Any) -> str:
        if isinstance(content, str):
            return content.strip()
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if isinstance(item, dict):
                    parts.append(str(item.get("text", item)))
                else:
                    parts.append(str(item))
            return "\n".join(parts).strip()
        return str(content).strip()

    def _extract_error_detail(self, exc: Exception) -> str:
        status_code = getattr(exc, "status_code", None)
        message = getattr(exc, "message", None) or str(exc)
        body = getattr(exc, "body", None)
        details = [f"status_code={status_code}" if status_code is not None else ""]
        if body is not None:
            details.append(f"body={body}")
        details.append(f"message={message}")
        return clip(" ".join([part for part in details if part]).strip(), ERROR_LOG_LIMIT)

    @staticmethod
    def _strip_provider_prefix(model: str) -> str:
        if "/" not in model:
            return model
        return model.split("/", 1)[1]
