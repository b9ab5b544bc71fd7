import re

WRAPPING_FENCE = re.compile(r"```[\w-]*[ \t]*\n?((?:(?!```)[\s\S])*?)\s*```")
QUOTE_AFTER_OPEN_P = re.compile(r"(<p(?:\s[^>]*)?>)\s*[\"']")
QUOTE_BEFORE_CLOSE_P = re.compile(r"[\"']\s*(</p>)")
_QUOTES = ('"', "'")


def sanitize_markup(raw: str) -> str:
    """Normalize markup output so only the content itself remains.

    Each pass removes a wrapping code fence, one layer of wrapping quotes and
    quotes hugging paragraph tags. Passes repeat until nothing changes, which
    makes the function idempotent.
    """
    result = raw.strip()
    while True:
        cleaned = _sanitize_once(result)
        if cleaned == result:
            return result
        result = cleaned


def _sanitize_once(text: str) -> str:
    result = text
    fenced = WRAPPING_FENCE.fullmatch(result)
    if fenced:
        result = fenced.group(1).strip()

    if len(result) >= 2 and result[0] in _QUOTES and result[-1] == result[0]:
        result = result[1:-1].strip()

    result = QUOTE_AFTER_OPEN_P.sub(r"\1", result)
    result = QUOTE_BEFORE_CLOSE_P.sub(r"\1", result)
    return result.strip()
