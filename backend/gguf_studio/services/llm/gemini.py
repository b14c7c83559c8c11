"""Google Gemini LLM provider."""

from typing import AsyncIterator

from google import genai
from google.genai import errors, types

from gguf_studio.core.errors import BackendError
from gguf_studio.services.llm.base import BaseLLMProvider, ChatSession


class GeminiChatSession(ChatSession):
    def __init__(self, chat):
        self._chat = chat

    async def send_message_stream(self, message: str) -> AsyncIterator[str]:
        try:
            stream = await self._chat.send_message_stream(message)
            async for chunk in stream:
                if chunk.text:
                    yield chunk.text
        except errors.APIError as e:
            raise BackendError(str(e)) from e


class GeminiProvider(BaseLLMProvider):
    def __init__(self, api_key: str, model: str):
        self.client = genai.Client(api_key=api_key)
        self.model = model

    def create_chat(self, system_instruction: str) -> ChatSession:
        chat = self.client.aio.chats.create(
            model=self.model,
            config=types.GenerateContentConfig(system_instruction=system_instruction),
        )
        return GeminiChatSession(chat)

    async def generate_json(self, prompt: str, system_instruction: str, response_schema: dict) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=system_instruction,
                    response_mime_type="application/json",
                    response_schema=response_schema,
                ),
            )
        except errors.APIError as e:
            raise BackendError(str(e)) from e
        return (response.text or "").strip()
