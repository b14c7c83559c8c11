"""Abstract LLM provider interface. All providers must implement this."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import AsyncIterator


@dataclass
class Message:
    role: str  # "user" | "assistant"
    content: str


class ChatSession(ABC):
    """A stateful conversation bound to one system instruction and model."""

    @abstractmethod
    def send_message_stream(self, message: str) -> AsyncIterator[str]:
        """Send a user turn and stream the reply as text increments."""
        ...


class BaseLLMProvider(ABC):
    @abstractmethod
    def create_chat(self, system_instruction: str) -> ChatSession:
        """Start a new chat session."""
        ...

    @abstractmethod
    async def generate_json(self, prompt: str, system_instruction: str, response_schema: dict) -> str:
        """One-shot request constrained to ``response_schema``. Returns the raw JSON text."""
        ...
