"""Classifies upstream chat-call outcomes.

Transports turn every response into one ``ChatResult`` value right at the
boundary; ``unwrap`` then either returns the text or raises ``QuotaSignal`` /
``GenerationError``. Substring matching on quota markers lives here only, as
the last resort for transports that flatten structured errors to text.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from study_note_gen.errors import GenerationError, QuotaCode, QuotaSignal

TIMEOUT_MESSAGE = "Request timed out. The content may be too long. Please try with shorter content or try again later."
_TIMEOUT_MARKERS = ("timeout", "timed out", "504", "gateway timeout")


@dataclass(frozen=True)
class ChatOk:
    text: str


@dataclass(frozen=True)
class ChatQuotaExceeded:
    code: QuotaCode
    message: str | None = None
    limit: int | None = None
    remaining: int = 0
    reset_at: str | None = None


@dataclass(frozen=True)
class ChatFailed:
    message: str
    cause: BaseException | None = None


ChatResult = Union[ChatOk, ChatQuotaExceeded, ChatFailed]


def unwrap(result: ChatResult) -> str:
    if isinstance(result, ChatOk):
        return result.text
    if isinstance(result, ChatQuotaExceeded):
        raise QuotaSignal(
            result.code,
            message=result.message,
            limit=result.limit,
            remaining=result.remaining,
            reset_at=result.reset_at,
        )
    raise GenerationError(result.message, cause=result.cause)


def classify_error(
    payload: Any,
    message: str = "",
    status_code: int | None = None,
    cause: BaseException | None = None,
) -> ChatQuotaExceeded | ChatFailed:
    """Classify an error response body (mapping, text or ``None``)."""
    body = _error_body(payload)
    code = _quota_code(body.get("code"))
    detail = _text(body.get("message")) or _text(body.get("error")) or message
    if code is not None:
        return ChatQuotaExceeded(
            code=code,
            message=_text(body.get("message")),
            limit=_int_or_none(body.get("limit")),
            remaining=_int_or_none(body.get("remaining")) or 0,
            reset_at=_text(body.get("resetAt") or body.get("reset_at")),
        )

    haystack = " ".join(part for part in (detail, message, payload if isinstance(payload, str) else "") if part)
    marker = quota_marker(haystack)
    if marker is not None:
        return ChatQuotaExceeded(code=marker, message=detail or None)

    if status_code == 504 or is_timeout_text(haystack):
        return ChatFailed(TIMEOUT_MESSAGE, cause=cause)
    if not detail:
        detail = f"Chat completion failed with status {status_code}" if status_code else "Chat completion failed"
    return ChatFailed(detail, cause=cause)


def classify_exception(exc: BaseException) -> ChatResult:
    """Classify an exception raised by a transport or an injected client."""
    if isinstance(exc, QuotaSignal):
        return ChatQuotaExceeded(
            code=exc.code,
            message=exc.message,
            limit=exc.limit,
            remaining=exc.remaining,
            reset_at=exc.reset_at,
        )
    if isinstance(exc, GenerationError):
        return ChatFailed(exc.message, cause=exc.cause)
    body = getattr(exc, "body", None)
    status_code = getattr(exc, "status_code", None)
    message = getattr(exc, "message", None) or str(exc) or exc.__class__.__name__
    return classify_error(body, message=str(message), status_code=status_code, cause=exc)


def quota_marker(text: str) -> QuotaCode | None:
    if QuotaCode.ACCOUNT_LIMIT_REACHED.value in text:
        return QuotaCode.ACCOUNT_LIMIT_REACHED
    if QuotaCode.DAILY_LIMIT_REACHED.value in text:
        return QuotaCode.DAILY_LIMIT_REACHED
    return None


def is_timeout_text(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in _TIMEOUT_MARKERS)


def _error_body(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        return {}
    context = payload.get("context")
    if isinstance(context, Mapping):
        merged = dict(payload)
        merged.update({key: value for key, value in context.items() if value is not None})
        return merged
    nested = payload.get("error")
    if isinstance(nested, Mapping):
        merged = dict(payload)
        merged.update(nested)
        return merged
    return payload


def _quota_code(value: Any) -> QuotaCode | None:
    try:
        return QuotaCode(str(value)) if value is not None else None
    except ValueError:
        return None


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value) if value is not None else None
    except (TypeError, ValueError):
        return None


def _text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None
