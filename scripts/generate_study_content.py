#!/usr/bin/env python3
from __future__ import annotations

import argparse
import asyncio
import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _bootstrap_pythonpath() -> None:
    import sys

    src = _repo_root() / "src"
    if str(src) not in sys.path:
        sys.path.insert(0, str(src))


_bootstrap_pythonpath()

from study_note_gen.config import get_settings  # noqa: E402
from study_note_gen.errors import GenerationError, QuotaSignal  # noqa: E402
from study_note_gen.models import ContentKind, DetailLevel  # noqa: E402
from study_note_gen.workflow.generation import GenerationWorkflow, build_request  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate study content for local document files.")
    parser.add_argument("files", nargs="+", help="Text files making up the note, one document each.")
    parser.add_argument(
        "--kind",
        default=ContentKind.SUMMARY.value,
        choices=[kind.value for kind in ContentKind if kind != ContentKind.CHAT],
    )
    parser.add_argument("--detail", default="", choices=["", *[level.value for level in DetailLevel]])
    parser.add_argument("--count", type=int, default=0, help="Item count for list kinds (0 means the default).")
    parser.add_argument("--language", default="", help="ISO 639-1 code; detected from the content when empty.")
    parser.add_argument(
        "--output",
        default="",
        help="JSON report path. Default: eval/reports/<kind>_<timestamp>.json",
    )
    return parser.parse_args()


def assemble_corpus(paths: list[Path]) -> tuple[str, list[dict[str, str]]]:
    """Join documents with the boundary markers the balancer splits on."""
    blocks: list[str] = []
    documents: list[dict[str, str]] = []
    for path in paths:
        text = path.read_text(encoding="utf-8").strip()
        if not text:
            continue
        blocks.append(f"--- Document: {path.name} ---\n{text}")
        documents.append({"name": path.name, "type": path.suffix.lstrip(".") or "text"})
    if not blocks:
        raise ValueError("All input files are empty.")
    return "\n\n".join(blocks), documents


def write_report(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _jsonable(value: Any) -> Any:
    if is_dataclass(value):
        return asdict(value)
    return value


async def main() -> int:
    args = parse_args()
    settings = get_settings()
    workflow = GenerationWorkflow(settings)
    corpus, documents = assemble_corpus([Path(name) for name in args.files])
    language = args.language or await workflow.detect_language(corpus)
    request = build_request(
        args.kind,
        corpus,
        documents,
        detail_level=args.detail or settings.summary_detail_level,
        target_count=args.count or None,
        language=language,
    )

    try:
        result = await workflow.run(request)
    except QuotaSignal as exc:
        print(f"[generate] quota code={exc.code.value} limit={exc.limit} reset_at={exc.reset_at}")
        return 2
    except GenerationError as exc:
        print(f"[generate] failed: {exc.message}")
        return 1

    now = datetime.now().strftime("%Y%m%d_%H%M%S")
    output = Path(args.output) if args.output else Path(f"eval/reports/{args.kind}_{now}.json")
    write_report(
        output,
        json.dumps(
            {
                "kind": result.kind.value,
                "documents": documents,
                "request": {"detail_level": request.detail_level.value, "language": language},
                "meta": result.meta,
                "content": _jsonable(result.content),
            },
            ensure_ascii=False,
            indent=2,
        ),
    )
    print(f"[generate] kind={result.kind.value} language={language} documents={len(documents)}")
    print(f"[generate] json={output}")
    return 0


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
