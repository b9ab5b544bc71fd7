from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ContentKind(str, Enum):
    SUMMARY = "summary"
    FLASHCARDS = "flashcards"
    QUIZ = "quiz"
    EXERCISES = "exercises"
    TOPICS = "topics"
    TITLE = "title"
    CHAT = "chat"


class DetailLevel(str, Enum):
    CONCISE = "concise"
    STANDARD = "standard"
    COMPREHENSIVE = "comprehensive"


@dataclass(frozen=True)
class DocumentMeta:
    name: str
    type: str

    def hint(self) -> str:
        return f"{self.name} [{self.type}]"


@dataclass(frozen=True)
class ModelConfig:
    model: str
    temperature: float


@dataclass(frozen=True)
class ChatMessage:
    role: str
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class GenerationRequest:
    """Immutable input to one generation call."""

    kind: ContentKind
    corpus: str
    documents: tuple[DocumentMeta, ...] = ()
    detail_level: DetailLevel = DetailLevel.STANDARD
    target_count: int | None = None
    model_config: ModelConfig | None = None
    language: str | None = None
    messages: tuple[ChatMessage, ...] = ()

    def __post_init__(self) -> None:
        if self.target_count is not None and self.target_count < 1:
            raise ValueError("target_count must be a positive integer")
        names = [doc.name for doc in self.documents]
        if len(names) != len(set(names)):
            raise ValueError("document names must be unique")


@dataclass(frozen=True)
class DocumentSection:
    title: str
    text: str


@dataclass(frozen=True)
class ContentChunk:
    index: int
    total: int
    text: str

    @property
    def word_count(self) -> int:
        return len(self.text.split())


@dataclass
class GenerationResult:
    kind: ContentKind
    content: Any
    meta: dict[str, Any] = field(default_factory=dict)


class _StudyItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Flashcard(_StudyItem):
    front: str = Field(..., min_length=1)
    back: str = Field(..., min_length=1)
    hint: str | None = None


class QuizQuestion(_StudyItem):
    question: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_answer: int = Field(..., alias="correctAnswer", ge=0)
    hint: str | None = None
    explanation: str | None = None

    @model_validator(mode="after")
    def _answer_in_options(self) -> "QuizQuestion":
        if self.correct_answer >= len(self.options):
            raise ValueError("correctAnswer must index into options")
        return self


class Exercise(_StudyItem):
    question: str = Field(..., min_length=1)
    solution: str = Field(..., min_length=1)
    notes: str | None = None
    hint: str | None = None


class Topic(_StudyItem):
    id: str
    title: str
    description: str = ""


class StudyContent(BaseModel):
    summary: str = ""
    flashcards: list[dict[str, Any]] = []
    quiz_questions: list[dict[str, Any]] = []
    exercises: list[dict[str, Any]] = []
    feynman_topics: list[dict[str, Any]] = []
