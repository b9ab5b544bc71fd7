from enum import Enum
from typing import Any


class QuotaCode(str, Enum):
    DAILY_LIMIT_REACHED = "DAILY_LIMIT_REACHED"
    ACCOUNT_LIMIT_REACHED = "ACCOUNT_LIMIT_REACHED"


DEFAULT_QUOTA_MESSAGES = {
    QuotaCode.DAILY_LIMIT_REACHED: "Daily limit reached",
    QuotaCode.ACCOUNT_LIMIT_REACHED: "Account limit reached",
}


class QuotaSignal(Exception):
    """The caller has exhausted an allowed usage quota.

    Carries enough structure to render a "come back later" message. Every
    layer re-raises the same instance; nothing wraps it into a generic error.
    """

    def __init__(
        self,
        code: QuotaCode,
        message: str | None = None,
        limit: int | None = None,
        remaining: int = 0,
        reset_at: str | None = None,
    ) -> None:
        self.code = QuotaCode(code)
        self.message = message or DEFAULT_QUOTA_MESSAGES[self.code]
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at
        super().__init__(self.message)

    def as_payload(self) -> dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "limit": self.limit,
            "remaining": self.remaining,
            "resetAt": self.reset_at,
        }


class GenerationError(Exception):
    """Generic upstream or local failure that is not a quota signal."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.message = message
        self.cause = cause
        super().__init__(message)


class GenerationCancelled(Exception):
    """Raised between model calls once the caller's cancel event is set."""
