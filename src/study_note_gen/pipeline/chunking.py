from study_note_gen.models import ContentChunk


def split_into_chunks(text: str, max_words_per_chunk: int) -> list[ContentChunk]:
    """Divide ``text`` into ordered windows of at most ``max_words_per_chunk`` words."""
    if max_words_per_chunk < 1:
        raise ValueError("max_words_per_chunk must be positive")

    words = text.split()
    if len(words) <= max_words_per_chunk:
        return [ContentChunk(index=1, total=1, text=text)]

    windows = [words[start : start + max_words_per_chunk] for start in range(0, len(words), max_words_per_chunk)]
    return [
        ContentChunk(index=position, total=len(windows), text=" ".join(window))
        for position, window in enumerate(windows, start=1)
    ]
