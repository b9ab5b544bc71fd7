from typing import Any

from pydantic import BaseModel, Field

from study_note_gen.models import ContentKind, DetailLevel


class DocumentInfo(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = ""


class ChatTurn(BaseModel):
    role: str = Field(..., pattern="^(user|assistant)$")
    content: str


class GenerateRequest(BaseModel):
    kind: ContentKind
    content: str = Field(default="", description="Note corpus, optionally with '--- Document: name ---' markers.")
    documents: list[DocumentInfo] = Field(default_factory=list)
    detail_level: DetailLevel = DetailLevel.STANDARD
    target_count: int | None = Field(default=None, ge=1)
    language: str | None = None
    messages: list[ChatTurn] = Field(default_factory=list)


class GenerateResponse(BaseModel):
    kind: ContentKind
    content: Any
    meta: dict


class NoteContentRequest(BaseModel):
    content: str
    documents: list[DocumentInfo] = Field(default_factory=list)
    detail_level: DetailLevel | None = None
    kind: ContentKind | None = Field(
        default=None,
        description="Generate only this field; omit to fill every empty field.",
    )
    target_count: int | None = Field(default=None, ge=1)


class NoteContentResponse(BaseModel):
    note_id: str
    language: str | None = None
    skipped: bool = False
    generated: list[str] = Field(default_factory=list)
    errors: dict[str, str] = Field(default_factory=dict)
    content: dict
