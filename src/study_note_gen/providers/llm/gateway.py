import json
import logging
from typing import Any

import httpx

from study_note_gen.config import Settings
from study_note_gen.logtext import clip
from study_note_gen.models import ModelConfig
from study_note_gen.providers.llm.classifier import (
    TIMEOUT_MESSAGE,
    ChatFailed,
    ChatOk,
    ChatResult,
    classify_error,
    unwrap,
)

logger = logging.getLogger(__name__)
PAYLOAD_LOG_LIMIT = 1000


class GatewayChatClient:
    """Chat completions through the `ai-generate` edge function.

    The function enforces per-user quotas and answers either ``{"content": ...}``
    or an error body such as ``{"code": "DAILY_LIMIT_REACHED", "limit": 15, ...}``.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient | None = None) -> None:
        self.settings = settings
        self.url = settings.ai_gateway_url
        self._http_client = http_client

    async def chat_completion(self, messages: list[dict[str, str]], config: ModelConfig) -> str:
        return unwrap(await self.complete(messages, config))

    async def complete(self, messages: list[dict[str, str]], config: ModelConfig) -> ChatResult:
        if not self.url:
            return ChatFailed("AI gateway URL is not configured (set AI_GATEWAY_URL)")
        body = {
            "type": "chat",
            "messages": messages,
            "model": config.model,
            "temperature": config.temperature,
        }
        logger.info(
            "gateway.request model=%s temperature=%.2f messages=%d chars=%d",
            config.model,
            config.temperature,
            len(messages),
            sum(len(message.get("content", "")) for message in messages),
        )
        try:
            response = await self._post(body)
        except httpx.TimeoutException as exc:
            logger.warning("gateway.timeout model=%s", config.model)
            return ChatFailed(TIMEOUT_MESSAGE, cause=exc)
        except httpx.HTTPError as exc:
            logger.error("gateway.transport_error type=%s detail=%s", exc.__class__.__name__, exc)
            return classify_error(None, message=str(exc) or exc.__class__.__name__, cause=exc)

        payload = self._decode(response)
        result = self._classify(response.status_code, payload)
        if isinstance(result, ChatOk):
            logger.info("gateway.response status=%d chars=%d", response.status_code, len(result.text))
        else:
            logger.warning(
                "gateway.error status=%d result=%s payload=%s",
                response.status_code,
                result.__class__.__name__,
                clip(self._to_json(payload), PAYLOAD_LOG_LIMIT),
            )
        return result

    async def _post(self, body: dict[str, Any]) -> httpx.Response:
        headers = self._headers()
        if self._http_client is not None:
            return await self._http_client.post(self.url, json=body, headers=headers)
        async with httpx.AsyncClient(timeout=self.settings.llm_timeout_seconds) as client:
            return await client.post(self.url, json=body, headers=headers)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.settings.ai_gateway_api_key:
            headers["apikey"] = self.settings.ai_gateway_api_key
        token = self.settings.ai_gateway_access_token or self.settings.ai_gateway_api_key
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text

    @staticmethod
    def _classify(status_code: int, payload: Any) -> ChatResult:
        if 200 <= status_code < 300 and isinstance(payload, dict) and "error" not in payload and "code" not in payload:
            content = payload.get("content")
            if isinstance(content, str) and content.strip():
                return ChatOk(content)
            return ChatFailed("Chat completion returned empty content")
        message = payload if isinstance(payload, str) else ""
        return classify_error(payload, message=message, status_code=status_code)

    @staticmethod
    def _to_json(payload: Any) -> str:
        try:
            return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
        except (TypeError, ValueError):
            return str(payload)
