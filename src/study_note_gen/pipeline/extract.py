import json
import logging
import re
from typing import Any

from study_note_gen.logtext import clip

logger = logging.getLogger(__name__)
RAW_LOG_LIMIT = 2000

FENCED_BLOCK = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
ARRAY_SPAN = re.compile(r"\[[\s\S]*\]")
OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")

_REFUSAL_PREFIXES = ("since i am unable", "i am unable", "i cannot", "unable to")


def extract_json(raw: str) -> str:
    """Pull the most likely JSON payload out of free-form model text.

    Order: fenced block, outermost ``[...]`` span, outermost ``{...}`` span,
    then the trimmed text itself. The result is not guaranteed to parse.
    """
    fenced = FENCED_BLOCK.search(raw)
    if fenced:
        return fenced.group(1).strip()
    array = ARRAY_SPAN.search(raw)
    if array:
        return array.group(0)
    obj = OBJECT_SPAN.search(raw)
    if obj:
        return obj.group(0)
    return raw.strip()


def repair_json(payload: str) -> str | None:
    """Clip to the span between the first opening bracket and its last matching closer."""
    starts = [pos for pos in (payload.find("["), payload.find("{")) if pos != -1]
    if not starts:
        return None
    start = min(starts)
    closer = "]" if payload[start] == "[" else "}"
    end = payload.rfind(closer)
    if end <= start:
        return None
    return payload[start : end + 1]


def parse_json_items(raw: str) -> list[Any]:
    """Decode a JSON list from model output, degrading to ``[]``.

    A decoded object holding exactly one list (``{"flashcards": [...]}``) is
    unwrapped; any other object becomes a single-item list.
    """
    payload = extract_json(raw)
    try:
        return _as_items(json.loads(payload))
    except json.JSONDecodeError as exc:
        error = exc

    repaired = repair_json(payload)
    if repaired is not None:
        try:
            return _as_items(json.loads(repaired))
        except json.JSONDecodeError as exc:
            error = exc

    logger.error(
        "extract.parse_failed pos=%d msg=%s raw=%s",
        error.pos,
        error.msg,
        clip(raw, RAW_LOG_LIMIT),
    )
    return []


def looks_like_refusal(text: str) -> bool:
    lowered = text.lower().strip()
    if lowered.startswith(_REFUSAL_PREFIXES):
        return True
    if "error" in lowered and "[" not in lowered and "{" not in lowered:
        return True
    if "sorry" in lowered and "cannot" in lowered:
        return True
    return "unable" in lowered and "access" in lowered


def _as_items(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        lists = [value for value in data.values() if isinstance(value, list)]
        if len(lists) == 1:
            return lists[0]
        return [data]
    return []
