from typing import Protocol

from study_note_gen.config import Settings
from study_note_gen.models import ModelConfig
from study_note_gen.providers.llm.gateway import GatewayChatClient
from study_note_gen.providers.llm.openai_chat import OpenAIChatClient


class ChatClient(Protocol):
    async def chat_completion(self, messages: list[dict[str, str]], config: ModelConfig) -> str: ...


def build_chat_client(settings: Settings) -> ChatClient:
    if settings.llm_transport == "openai":
        return OpenAIChatClient(settings)
    return GatewayChatClient(settings)
