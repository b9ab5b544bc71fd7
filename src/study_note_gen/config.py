from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ItemCounts(BaseModel):
    flashcards: int = 20
    quiz: int = 15
    exercises: int = 10
    topics: int = 4


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    llm_transport: str = Field(default="gateway", alias="LLM_TRANSPORT")
    llm_timeout_seconds: float = Field(default=180.0, alias="LLM_TIMEOUT_SECONDS")
    llm_num_retries: int = Field(default=1, alias="LLM_NUM_RETRIES")

    ai_gateway_url: str = Field(default="", alias="AI_GATEWAY_URL")
    ai_gateway_api_key: str = Field(default="", alias="AI_GATEWAY_API_KEY")
    ai_gateway_access_token: str = Field(default="", alias="AI_GATEWAY_ACCESS_TOKEN")

    default_temperature: float = Field(default=0.7, alias="DEFAULT_TEMPERATURE")
    summary_temperature: float = Field(default=0.7, alias="SUMMARY_TEMPERATURE")
    merge_temperature: float = Field(default=0.5, alias="MERGE_TEMPERATURE")
    title_temperature: float = Field(default=0.3, alias="TITLE_TEMPERATURE")
    language_temperature: float = Field(default=0.1, alias="LANGUAGE_TEMPERATURE")

    concise_chunk_words: int = Field(default=900, alias="CONCISE_CHUNK_WORDS")
    standard_chunk_words: int = Field(default=1300, alias="STANDARD_CHUNK_WORDS")
    comprehensive_chunk_words: int = Field(default=1700, alias="COMPREHENSIVE_CHUNK_WORDS")
    structured_context_words: int = Field(default=1500, alias="STRUCTURED_CONTEXT_WORDS")
    prompt_context_words: int = Field(default=1000, alias="PROMPT_CONTEXT_WORDS")
    edit_context_words: int = Field(default=2000, alias="EDIT_CONTEXT_WORDS")
    language_sample_chars: int = Field(default=1000, alias="LANGUAGE_SAMPLE_CHARS")
    truncation_marker: str = Field(default="[truncated]", alias="TRUNCATION_MARKER")

    title_max_chars: int = Field(default=35, alias="TITLE_MAX_CHARS")
    title_max_words: int = Field(default=4, alias="TITLE_MAX_WORDS")
    fallback_title: str = Field(default="New Note", alias="FALLBACK_TITLE")
    document_hint_limit: int = Field(default=6, alias="DOCUMENT_HINT_LIMIT")

    item_counts: ItemCounts = Field(default_factory=ItemCounts, alias="ITEM_COUNTS")
    summary_detail_level: str = Field(default="comprehensive", alias="SUMMARY_DETAIL_LEVEL")
    min_note_chars: int = Field(default=50, alias="MIN_NOTE_CHARS")

    def model_post_init(self, __context: Any) -> None:  # type: ignore[override]
        self.llm_transport = self.llm_transport.strip().lower() or "gateway"
        if self.llm_transport not in ("gateway", "openai"):
            self.llm_transport = "gateway"
        self.summary_detail_level = self.summary_detail_level.strip().lower() or "comprehensive"
        if self.summary_detail_level not in ("concise", "standard", "comprehensive"):
            self.summary_detail_level = "comprehensive"

    def chunk_words_for(self, detail_level: str) -> int:
        return {
            "concise": self.concise_chunk_words,
            "standard": self.standard_chunk_words,
            "comprehensive": self.comprehensive_chunk_words,
        }.get(detail_level, self.standard_chunk_words)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
