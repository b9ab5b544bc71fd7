import re

from study_note_gen.models import DocumentSection

DEFAULT_SECTION_TITLE = "Document"

# Line protocol shared with corpus assembly; keep in sync byte for byte.
DOCUMENT_MARKER = re.compile(r"^---\s*Document:\s*(.+?)\s*---$", re.IGNORECASE)
FILE_MARKER = re.compile(r"^File:\s*(.+)$", re.IGNORECASE)


def truncate_words(text: str, max_words: int, marker: str = "[truncated]") -> str:
    """Keep the first ``max_words`` words of ``text``; mark the cut when one happens."""
    words = text.split()
    if len(words) <= max_words:
        return text.strip()
    return " ".join(words[:max_words]) + "\n" + marker


class ContextBalancer:
    """Gives every document in a multi-document corpus a fair share of a word budget."""

    def __init__(self, truncation_marker: str = "[truncated]") -> None:
        self.truncation_marker = truncation_marker

    def balance(self, corpus: str, max_words: int) -> str:
        if max_words < 1:
            raise ValueError("max_words must be positive")
        sections = self.partition(corpus)
        if not sections:
            return truncate_words(corpus, max_words, self.truncation_marker)

        allocations = self.allocate(len(sections), max_words)
        blocks = [
            f"{section.title}\n{truncate_words(section.text, allocation, self.truncation_marker)}".strip()
            for section, allocation in zip(sections, allocations)
        ]
        return "\n\n".join(blocks)

    def partition(self, corpus: str) -> list[DocumentSection]:
        """Split ``corpus`` at boundary markers.

        Returns an empty list when the corpus carries no marker at all, so the
        caller can fall back to plain truncation. Text ahead of the first
        marker becomes a ``"Document"`` section.
        """
        sections: list[DocumentSection] = []
        current_title = DEFAULT_SECTION_TITLE
        buffer: list[str] = []
        saw_marker = False

        for raw_line in re.split(r"\n+", corpus or ""):
            name = self._marker_name(raw_line.strip())
            if name is None:
                buffer.append(raw_line)
                continue
            saw_marker = True
            self._flush(sections, current_title, buffer)
            current_title = name
            buffer = []
        self._flush(sections, current_title, buffer)

        return sections if saw_marker else []

    @staticmethod
    def allocate(section_count: int, max_words: int) -> list[int]:
        """Per-section word allocations; integer rounding favours earlier sections."""
        if section_count < 1:
            return []
        base = max(max_words // section_count, 1)
        remainder = max(max_words - base * section_count, 0)
        return [base + 1 if index < remainder else base for index in range(section_count)]

    @staticmethod
    def _marker_name(line: str) -> str | None:
        match = DOCUMENT_MARKER.match(line) or FILE_MARKER.match(line)
        if match is None:
            return None
        return match.group(1).strip()

    @staticmethod
    def _flush(sections: list[DocumentSection], title: str, buffer: list[str]) -> None:
        text = "\n".join(buffer).strip()
        if text:
            sections.append(DocumentSection(title=title, text=text))
