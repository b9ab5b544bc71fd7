import pytest

from study_note_gen.errors import GenerationError, QuotaCode, QuotaSignal
from study_note_gen.providers.llm.classifier import (
    TIMEOUT_MESSAGE,
    ChatFailed,
    ChatOk,
    ChatQuotaExceeded,
    classify_error,
    classify_exception,
    unwrap,
)


class _FakeAPIError(Exception):
    def __init__(self, message: str, status_code: int, body: dict | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def test_structured_quota_body() -> None:
    result = classify_error(
        {"code": "DAILY_LIMIT_REACHED", "message": "Come back tomorrow", "limit": 15, "remaining": 0, "resetAt": "2025-01-02T00:00:00Z"},
        status_code=429,
    )
    assert result == ChatQuotaExceeded(
        code=QuotaCode.DAILY_LIMIT_REACHED,
        message="Come back tomorrow",
        limit=15,
        remaining=0,
        reset_at="2025-01-02T00:00:00Z",
    )


def test_quota_inside_error_context() -> None:
    result = classify_error(
        {"error": "Edge Function returned a non-2xx status code", "context": {"code": "ACCOUNT_LIMIT_REACHED", "limit": 100}},
    )
    assert isinstance(result, ChatQuotaExceeded)
    assert result.code == QuotaCode.ACCOUNT_LIMIT_REACHED
    assert result.limit == 100


def test_text_marker_prefers_account_limit() -> None:
    result = classify_error(None, message="FunctionsHttpError: DAILY_LIMIT_REACHED / ACCOUNT_LIMIT_REACHED")
    assert isinstance(result, ChatQuotaExceeded)
    assert result.code == QuotaCode.ACCOUNT_LIMIT_REACHED


def test_timeouts_get_friendly_message() -> None:
    assert classify_error(None, status_code=504) == ChatFailed(TIMEOUT_MESSAGE)
    assert classify_error({"error": "upstream request timed out"}).message == TIMEOUT_MESSAGE


def test_generic_failure_keeps_detail() -> None:
    assert classify_error({"error": "model not found"}, status_code=404).message == "model not found"
    assert classify_error(None, status_code=500).message == "Chat completion failed with status 500"


def test_classify_exception_reads_api_error_body() -> None:
    exc = _FakeAPIError("Error code: 429", status_code=429, body={"code": "DAILY_LIMIT_REACHED", "limit": 5})
    result = classify_exception(exc)
    assert isinstance(result, ChatQuotaExceeded)
    assert result.limit == 5


def test_classify_exception_passes_quota_signal_through() -> None:
    signal = QuotaSignal(QuotaCode.ACCOUNT_LIMIT_REACHED, limit=3)
    with pytest.raises(QuotaSignal) as info:
        unwrap(classify_exception(signal))
    assert info.value.as_payload() == signal.as_payload()


def test_unwrap() -> None:
    assert unwrap(ChatOk("hello")) == "hello"
    with pytest.raises(QuotaSignal) as quota:
        unwrap(ChatQuotaExceeded(code=QuotaCode.DAILY_LIMIT_REACHED, limit=15))
    assert quota.value.as_payload() == {
        "code": "DAILY_LIMIT_REACHED",
        "message": "Daily limit reached",
        "limit": 15,
        "remaining": 0,
        "resetAt": None,
    }
    with pytest.raises(GenerationError, match="boom"):
        unwrap(ChatFailed("boom"))


def test_runtime_timeout_exception() -> None:
    result = classify_exception(RuntimeError("Request timed out."))
    assert isinstance(result, ChatFailed)
    assert result.message == TIMEOUT_MESSAGE
