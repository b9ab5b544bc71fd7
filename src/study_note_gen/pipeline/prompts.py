"""Prompt builders for every content kind.

Builders return chat ``messages`` lists (``[{"role": ..., "content": ...}]``)
so the workflow can hand them straight to the chat client.
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from study_note_gen.models import ContentChunk, DetailLevel, DocumentMeta

Messages = list[dict[str, str]]

LANGUAGE_NAMES = {
    "en": "English",
    "de": "German",
    "fr": "French",
    "es": "Spanish",
    "it": "Italian",
    "pt": "Portuguese",
    "nl": "Dutch",
    "ru": "Russian",
    "zh": "Chinese",
    "ja": "Japanese",
    "ko": "Korean",
}

TARGET_WORD_RANGES: dict[DetailLevel, tuple[int, int]] = {
    DetailLevel.CONCISE: (400, 800),
    DetailLevel.STANDARD: (900, 1500),
    DetailLevel.COMPREHENSIVE: (1500, 2600),
}

HTML_RULES = (
    "Use HTML tags only (h2, h3, h4, p, ul, ol, li, table, strong, em, blockquote, mark). "
    "Write mathematical notation as LaTeX: $...$ inline and $$...$$ for display equations. "
    "Do NOT wrap the response in quotes, markdown or code fences."
)

AUDIO_SLIDES_RULES = (
    "\n\nSPECIAL INSTRUCTIONS FOR AUDIO + SLIDES COMBINATION:\n"
    "- The audio recording is the main narrative; follow it as your primary source\n"
    "- Use the slides to clarify visuals, diagrams, formulas or exact quotations\n"
    "- When the audio refers to something shown on a slide, incorporate that slide content\n"
    "- Where the audio is unclear on a topic, fill the gaps from the slides\n"
    "- Indicate when specific information comes from the slides rather than the audio"
)
AUDIO_TYPES = frozenset({"audio", "video"})
TEXT_TYPES = frozenset({"pdf", "doc", "text"})
SLIDE_NAME = re.compile(r"slide|presentation", re.IGNORECASE)


def language_instruction(language: str | None) -> str:
    if not language or language == "en":
        return ""
    name = LANGUAGE_NAMES.get(language, "English")
    return (
        f"\n\nIMPORTANT: The content is in {name}. Respond in the SAME language ({name}). "
        "Do NOT translate to English."
    )


def document_hints(documents: Sequence[DocumentMeta], limit: int = 6) -> str:
    if not documents:
        return "none"
    return ", ".join(doc.hint() for doc in list(documents)[:limit])


def estimate_target_words(text: str, detail_level: DetailLevel, is_part: bool) -> tuple[int, int]:
    """Suggested (min, max) output words for a summary of ``text``."""
    word_count = len(text.split())
    low, high = TARGET_WORD_RANGES.get(detail_level, TARGET_WORD_RANGES[DetailLevel.STANDARD])

    if word_count < 800:
        low = max(350, round(low * 0.6))
        high = max(700, round(high * 0.7))
    elif word_count > 4000:
        low = round(low * 1.3)
        high = round(high * 1.5)

    if is_part:
        low = max(300, round(low * 0.5))
        high = max(600, round(high * 0.6))
    return low, high


@dataclass(frozen=True)
class DocumentMix:
    audio: int = 0
    slides: int = 0
    text: int = 0

    @property
    def audio_with_slides(self) -> bool:
        return self.audio > 0 and self.slides > 0


def analyze_documents(documents: Sequence[DocumentMeta]) -> DocumentMix:
    """Count recordings, slide decks and text documents; each document lands in at most one bucket."""
    audio = slides = text = 0
    for doc in documents:
        kind = doc.type.lower()
        if kind in AUDIO_TYPES:
            audio += 1
        elif SLIDE_NAME.search(doc.name):
            slides += 1
        elif kind in TEXT_TYPES:
            text += 1
    return DocumentMix(audio=audio, slides=slides, text=text)


def summary_system_prompt(
    detail_level: DetailLevel,
    language: str | None = None,
    documents: Sequence[DocumentMeta] = (),
) -> str:
    if detail_level == DetailLevel.COMPREHENSIVE:
        style = (
            "REWRITE and RESTRUCTURE the provided material so it is better organized and explained. "
            "This is not a short summary: cover every concept, example, definition and equation."
        )
    elif detail_level == DetailLevel.CONCISE:
        style = "Create a brief and focused summary that keeps only the essential ideas."
    else:
        style = "Create a balanced and informative summary."
    return (
        "You are an expert educator and summarizer. "
        f"{style}{language_instruction(language)}\n\n"
        "Rules:\n"
        "1. Give EQUAL coverage to all uploaded documents; do not over-represent the first sections.\n"
        "2. Where documents repeat the same information, combine it instead of duplicating it.\n"
        "3. Only include information present in the source material; never invent content.\n"
        "4. Short sources get proportionally short output.\n"
        f"5. {HTML_RULES}"
        f"{AUDIO_SLIDES_RULES if analyze_documents(documents).audio_with_slides else ''}"
    )


def summary_user_prompt(
    content: str,
    detail_level: DetailLevel,
    documents: Sequence[DocumentMeta] = (),
    part: ContentChunk | None = None,
    language: str | None = None,
    hint_limit: int = 6,
) -> str:
    is_part = part is not None and part.total > 1
    low, high = estimate_target_words(content, detail_level, is_part)
    scope = f"part {part.index} of {part.total}" if is_part else "summary"
    part_note = (
        f"\n\nThis is part {part.index} of {part.total}. Focus on this part while keeping the overall context."
        if is_part
        else ""
    )
    return (
        f"Create a {detail_level.value} summary in HTML format.{language_instruction(language)}\n\n"
        f"SOURCE MATERIALS (balanced excerpts across documents):\n{content}\n\n"
        f"Documents: {document_hints(documents, hint_limit)}{part_note}\n\n"
        f"Target length: approximately {low}-{high} words for this {scope}, adapted to content density.\n"
        "Return ONLY valid HTML."
    )


def summary_merge_prompt(partials: Sequence[str], detail_level: DetailLevel, language: str | None = None) -> str:
    sections = "\n".join(
        f'<section data-part="{position}">{partial}</section>' for position, partial in enumerate(partials, start=1)
    )
    keep = (
        "Preserve ALL details from every part."
        if detail_level == DetailLevel.COMPREHENSIVE
        else "Remove redundancy while keeping the important details."
    )
    return (
        "Merge the following HTML summary sections into ONE cohesive, deduplicated HTML document. "
        f"Keep the semantic structure, consolidate overlapping content and ensure smooth flow. {keep}"
        f"{language_instruction(language)}\n\n"
        f"{sections}\n\n"
        f"{HTML_RULES}"
    )


def flashcards_messages(
    content: str,
    count: int,
    language: str | None = None,
    documents: Sequence[DocumentMeta] = (),
    hint_limit: int = 6,
) -> Messages:
    lang = language_instruction(language)
    return [
        {
            "role": "system",
            "content": (
                "You are a helpful assistant that creates educational flashcards. "
                f'Return a JSON array of flashcards with "front", "back" and "hint" properties.{lang}'
            ),
        },
        {
            "role": "user",
            "content": (
                f"Create EXACTLY {count} flashcards from the following materials.{lang}\n\n"
                "Requirements:\n"
                "1. Give EQUAL coverage to all documents; do not focus only on early sections\n"
                "2. Progress difficulty (definitions/facts -> concepts/relationships -> applications)\n"
                "3. Ensure breadth across distinct topics; avoid redundancy\n"
                "4. If several documents state the same fact, MERGE it into one clear card\n"
                '5. Each "hint" guides recall without giving the answer away\n\n'
                f"Materials (balanced excerpts from each document):\n{content}\n\n"
                f"Documents: {document_hints(documents, hint_limit)}\n\n"
                f'Return exactly {count} flashcards as a JSON array with "front", "back" and "hint" properties.'
            ),
        },
    ]


def quiz_messages(
    content: str,
    count: int,
    language: str | None = None,
    documents: Sequence[DocumentMeta] = (),
    hint_limit: int = 6,
) -> Messages:
    lang = language_instruction(language)
    shape = (
        '"question", "options" (array of 4 strings), "correctAnswer" (index 0-3), '
        '"hint" and "explanation"'
    )
    return [
        {
            "role": "system",
            "content": f"You are a helpful assistant that creates quiz questions. Return a JSON array of questions with {shape}.{lang}",
        },
        {
            "role": "user",
            "content": (
                f"Create EXACTLY {count} quiz questions from the following materials.{lang}\n\n"
                "Requirements:\n"
                "1. Give EQUAL coverage to all documents; do not bias earlier sections\n"
                "2. Mix difficulty (recall -> application -> analysis) and cover different topics\n"
                "3. Make distractors plausible but clearly wrong\n"
                "4. Avoid duplicate questions when documents repeat a fact\n"
                '5. Keep each "explanation" to 2-3 sentences on why the answer is right and the others wrong\n\n'
                f"Materials (balanced excerpts from each document):\n{content}\n\n"
                f"Documents: {document_hints(documents, hint_limit)}\n\n"
                f"Return exactly {count} quiz questions as a JSON array with {shape}."
            ),
        },
    ]


def exercises_messages(
    content: str,
    count: int,
    language: str | None = None,
    documents: Sequence[DocumentMeta] = (),
    hint_limit: int = 6,
) -> Messages:
    lang = language_instruction(language)
    return [
        {
            "role": "system",
            "content": (
                "You are a helpful assistant that creates practice exercises. "
                f'Return a JSON array of exercises with "question", "solution", "notes" and "hint" properties.{lang}'
            ),
        },
        {
            "role": "user",
            "content": (
                f"Create EXACTLY {count} practice exercises from the following materials.{lang}\n\n"
                "Make sure to:\n"
                "1. Cover ALL important concepts across every document\n"
                "2. Order exercises by progressive difficulty\n"
                "3. Mix problem-solving, application, analysis and synthesis tasks\n"
                "4. Give each exercise a clear, detailed solution and notes on common pitfalls\n"
                '5. Each "hint" suggests an approach without giving the solution away\n\n'
                f"Materials (balanced excerpts from each document):\n{content}\n\n"
                f"Documents: {document_hints(documents, hint_limit)}\n\n"
                f'Return exactly {count} exercises as a JSON array with "question", "solution", "notes" and "hint" properties.'
            ),
        },
    ]


def topics_messages(
    content: str,
    count: int,
    language: str | None = None,
    documents: Sequence[DocumentMeta] = (),
    hint_limit: int = 6,
) -> Messages:
    lang = language_instruction(language)
    return [
        {"role": "system", "content": f"You are an educational assistant helping create practice topics.{lang}"},
        {
            "role": "user",
            "content": (
                f"Based on this note content, generate exactly {count} specific topics that a student could "
                "practice explaining using the Feynman Technique. Focus on the main concepts, terms or ideas."
                f"{lang}\n\nNote content:\n{content}\n\n"
                f"Documents: {document_hints(documents, hint_limit)}\n\n"
                'Return a JSON array of objects with "title" (short topic title starting with "Explain:", '
                f'max 50 characters) and "description" (brief description). Generate exactly {count} topics.'
            ),
        },
    ]


def title_messages(content: str, documents: Sequence[DocumentMeta] = (), hint_limit: int = 6) -> Messages:
    system = (
        "You are an expert copywriter. Create a short, keyword-focused title from the provided content.\n"
        "Rules:\n"
        "- 2-4 words MAXIMUM, Title Case\n"
        "- No quotes, no punctuation at the end\n"
        "- Must fit in a mobile navigation bar (max 35 characters)\n"
        "- Prefer content keywords over filenames if they conflict"
    )
    user = (
        f"Content:\n{content}\n\nDocuments: {document_hints(documents, hint_limit)}\n\n"
        "Return ONLY the title (2-4 words max)."
    )
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def chat_system_prompt(context: str | None) -> str:
    math_rule = (
        "When writing mathematical formulas, ALWAYS wrap them in dollar signs: "
        "$...$ for inline formulas and $$...$$ for displayed equations."
    )
    if context:
        return (
            "You are a helpful study assistant. Use the following context to answer questions:\n\n"
            f"{context}\n\nIMPORTANT: {math_rule}"
        )
    return f"You are a helpful study assistant. IMPORTANT: {math_rule}"


def edit_summary_messages(current_summary: str, instruction: str, original_content: str | None = None) -> Messages:
    system = (
        "You are an expert educational content editor. Modify an existing HTML summary according to the "
        "user's instruction while keeping its structure, style and quality.\n"
        "- Only make the requested change; keep everything else unchanged\n"
        "- When adding content, integrate it into the existing structure\n"
        "- When removing content, make sure the remaining text still flows\n"
        f"- {HTML_RULES}\n"
        "Return ONLY the modified HTML summary."
    )
    context = f"Original Note Content (for context):\n{original_content}\n\n" if original_content else ""
    user = (
        f"Current Summary:\n{current_summary}\n\n{context}User Instruction: {instruction}\n\n"
        "Return the complete modified summary in HTML format."
    )
    return [{"role": "system", "content": system}, {"role": "user", "content": user}]


def detect_language_messages(sample: str) -> Messages:
    codes = ", ".join(f'"{code}" for {name}' for code, name in LANGUAGE_NAMES.items())
    return [
        {
            "role": "system",
            "content": (
                "You are a language detection assistant. Return ONLY the ISO 639-1 language code of the text "
                f"({codes}). Return only the two-letter code, nothing else."
            ),
        },
        {"role": "user", "content": f"What language is this text written in?\n\nText:\n{sample}"},
    ]
