from study_note_gen.models import ContentChunk, DetailLevel, DocumentMeta
from study_note_gen.pipeline import prompts


def _text(words: int) -> str:
    return " ".join(["word"] * words)


def test_estimate_short_source_scales_down() -> None:
    assert prompts.estimate_target_words(_text(100), DetailLevel.STANDARD, is_part=False) == (540, 1050)
    assert prompts.estimate_target_words(_text(100), DetailLevel.CONCISE, is_part=False) == (350, 700)


def test_estimate_long_source_scales_up() -> None:
    assert prompts.estimate_target_words(_text(4500), DetailLevel.CONCISE, is_part=False) == (520, 1200)


def test_estimate_part_is_smaller() -> None:
    assert prompts.estimate_target_words(_text(1000), DetailLevel.COMPREHENSIVE, is_part=False) == (1500, 2600)
    assert prompts.estimate_target_words(_text(1000), DetailLevel.COMPREHENSIVE, is_part=True) == (750, 1560)


def test_summary_prompt_names_the_part() -> None:
    prompt = prompts.summary_user_prompt(
        "some content",
        DetailLevel.STANDARD,
        documents=(DocumentMeta(name="lecture.pdf", type="pdf"),),
        part=ContentChunk(index=2, total=3, text="some content"),
    )
    assert "This is part 2 of 3." in prompt
    assert "Documents: lecture.pdf [pdf]" in prompt
    assert "some content" in prompt


def test_single_chunk_prompt_has_no_part_note() -> None:
    prompt = prompts.summary_user_prompt(
        "content",
        DetailLevel.CONCISE,
        part=ContentChunk(index=1, total=1, text="content"),
    )
    assert "part 1 of 1" not in prompt
    assert "Documents: none" in prompt


def test_merge_prompt_wraps_each_partial() -> None:
    prompt = prompts.summary_merge_prompt(["<p>A</p>", "<p>B</p>"], DetailLevel.COMPREHENSIVE)
    assert '<section data-part="1"><p>A</p></section>' in prompt
    assert '<section data-part="2"><p>B</p></section>' in prompt
    assert "Preserve ALL details" in prompt


def test_language_instruction() -> None:
    assert prompts.language_instruction(None) == ""
    assert prompts.language_instruction("en") == ""
    assert "German" in prompts.language_instruction("de")
    assert "German" in prompts.flashcards_messages("x", 3, language="de")[0]["content"]


def test_document_hints_respects_limit() -> None:
    documents = [DocumentMeta(name=f"doc{i}.pdf", type="pdf") for i in range(8)]
    hints = prompts.document_hints(documents, limit=6)
    assert hints.count("[pdf]") == 6
    assert "doc6.pdf" not in hints


def test_structured_prompts_request_count() -> None:
    assert "EXACTLY 7 quiz questions" in prompts.quiz_messages("x", 7)[1]["content"]
    assert "EXACTLY 3 practice exercises" in prompts.exercises_messages("x", 3)[1]["content"]
    assert "exactly 4 specific topics" in prompts.topics_messages("x", 4)[1]["content"]


def test_chat_prompt_with_and_without_context() -> None:
    assert "Use the following context" in prompts.chat_system_prompt("notes")
    assert "Use the following context" not in prompts.chat_system_prompt(None)


def test_analyze_documents_buckets_each_document_once() -> None:
    mix = prompts.analyze_documents(
        [
            DocumentMeta(name="week1.m4a", type="audio"),
            DocumentMeta(name="talk.mp4", type="video"),
            DocumentMeta(name="Lecture Slides.pdf", type="pdf"),
            DocumentMeta(name="presentation.pptx", type="pptx"),
            DocumentMeta(name="reading.pdf", type="pdf"),
            DocumentMeta(name="photo.png", type="image"),
        ]
    )
    assert mix == prompts.DocumentMix(audio=2, slides=2, text=1)
    assert mix.audio_with_slides
    assert not prompts.analyze_documents([DocumentMeta(name="slides.pdf", type="pdf")]).audio_with_slides


def test_structured_builders_render_hints() -> None:
    documents = (DocumentMeta(name="lecture.mp3", type="audio"),)
    for builder in (prompts.flashcards_messages, prompts.quiz_messages, prompts.exercises_messages, prompts.topics_messages):
        assert "Documents: lecture.mp3 [audio]" in builder("text", 3, documents=documents)[1]["content"]
        assert "Documents: none" in builder("text", 3)[1]["content"]
