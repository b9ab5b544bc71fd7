import asyncio
import json

import httpx
import pytest

from study_note_gen.config import Settings
from study_note_gen.errors import GenerationError, QuotaCode, QuotaSignal
from study_note_gen.models import ModelConfig
from study_note_gen.providers.llm.classifier import TIMEOUT_MESSAGE
from study_note_gen.providers.llm.gateway import GatewayChatClient

GATEWAY_URL = "https://gateway.test/functions/v1/ai-generate"
MESSAGES = [{"role": "system", "content": "be brief"}, {"role": "user", "content": "hi"}]
CONFIG = ModelConfig(model="gpt-4o-mini", temperature=0.3)


def _settings(**overrides) -> Settings:
    values = {"AI_GATEWAY_URL": GATEWAY_URL, "AI_GATEWAY_API_KEY": "anon-key", "AI_GATEWAY_ACCESS_TOKEN": "user-jwt"}
    values.update(overrides)
    return Settings(**values)


def _complete(handler, settings: Settings | None = None) -> str:
    async def _run() -> str:
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            gateway = GatewayChatClient(settings or _settings(), http_client=http_client)
            return await gateway.chat_completion(MESSAGES, CONFIG)

    return asyncio.run(_run())


def test_posts_chat_body_and_returns_content() -> None:
    captured: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["headers"] = request.headers
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"content": "hello there"})

    assert _complete(handler) == "hello there"
    assert captured["url"] == GATEWAY_URL
    assert captured["body"] == {"type": "chat", "messages": MESSAGES, "model": "gpt-4o-mini", "temperature": 0.3}
    assert captured["headers"]["apikey"] == "anon-key"
    assert captured["headers"]["authorization"] == "Bearer user-jwt"


def test_quota_response_raises_quota_signal() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            429,
            json={"code": "DAILY_LIMIT_REACHED", "limit": 15, "remaining": 0, "resetAt": "2025-01-02T00:00:00Z"},
        )

    with pytest.raises(QuotaSignal) as info:
        _complete(handler)
    assert info.value.code == QuotaCode.DAILY_LIMIT_REACHED
    assert info.value.limit == 15
    assert info.value.reset_at == "2025-01-02T00:00:00Z"


def test_quota_nested_in_ok_response() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": {"code": "ACCOUNT_LIMIT_REACHED", "message": "Upgrade"}})

    with pytest.raises(QuotaSignal) as info:
        _complete(handler)
    assert info.value.code == QuotaCode.ACCOUNT_LIMIT_REACHED
    assert info.value.message == "Upgrade"


def test_timeout_becomes_generation_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(GenerationError) as info:
        _complete(handler)
    assert info.value.message == TIMEOUT_MESSAGE


def test_server_error_keeps_detail() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "model overloaded"})

    with pytest.raises(GenerationError, match="model overloaded"):
        _complete(handler)


def test_empty_content_is_failure() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"content": "   "})

    with pytest.raises(GenerationError, match="empty content"):
        _complete(handler)


def test_missing_url_fails_without_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    with pytest.raises(GenerationError, match="AI_GATEWAY_URL"):
        _complete(handler, settings=_settings(AI_GATEWAY_URL=""))
