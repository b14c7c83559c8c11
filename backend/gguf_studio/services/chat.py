"""Chat orchestration: one streamed conversation plus its runnable code blocks.

The orchestrator owns the message list. While a reply streams, the last
assistant message is the placeholder that receives the running text.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import AsyncIterator, Callable

from gguf_studio.core.config import settings
from gguf_studio.core.errors import ChatBusyError, ConfigurationError
from gguf_studio.services.execution import CodeExecutor, ExecutionRecord, block_id
from gguf_studio.services.llm import get_llm_provider
from gguf_studio.services.llm.base import BaseLLMProvider, ChatSession
from gguf_studio.services.message_parser import MessagePart, parse_message_content
from gguf_studio.services.settings_store import AppSettings

logger = logging.getLogger(__name__)

NOT_INITIALIZED = "Chat is not initialized. Please check your API key in settings."
MISSING_SANDBOX_KEY_BANNER = "E2B API Key is not set. Please add it in settings to execute code."


class ChatStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    STREAMING = "streaming"


@dataclass
class ChatMessage:
    role: str  # "user" | "assistant"
    content: str


class ChatOrchestrator:
    def __init__(
        self,
        app_settings: AppSettings,
        system_prompt: str | None = None,
        provider_factory: Callable[[AppSettings], BaseLLMProvider] = get_llm_provider,
        executor: CodeExecutor | None = None,
        timeout: float | None = None,
    ):
        self.app_settings = app_settings
        self.system_prompt = system_prompt or settings.default_system_prompt
        self.messages: list[ChatMessage] = []
        self.error: str | None = None
        self.streaming = False
        self.executor = executor or CodeExecutor(app_settings.e2b_api_key)
        self._provider_factory = provider_factory
        self._timeout = timeout or settings.chat_timeout
        self._session: ChatSession | None = None
        self._session_key: tuple[str, str, str] | None = None
        self._build_session()

    @property
    def status(self) -> ChatStatus:
        if self.streaming:
            return ChatStatus.STREAMING
        if self._session is None:
            return ChatStatus.UNINITIALIZED
        return ChatStatus.READY

    def _build_session(self) -> None:
        self.error = None
        self._session = None
        self._session_key = (self.system_prompt, self.app_settings.gemini_api_key, self.app_settings.model)
        try:
            provider = self._provider_factory(self.app_settings)
            self._session = provider.create_chat(self.system_prompt)
            logger.info(f"Chat session ready (model={self.app_settings.model})")
        except ConfigurationError as e:
            self.error = str(e)
        except Exception as e:
            logger.error(f"Failed to initialize chat: {e}")
            self.error = f"Failed to initialize AI Studio. Error: {e}"

    def configure(self, app_settings: AppSettings | None = None, system_prompt: str | None = None) -> None:
        """Apply new settings; the session is rebuilt only if something it depends on changed."""
        if app_settings is not None:
            self.app_settings = app_settings
            self.executor.e2b_api_key = app_settings.e2b_api_key
        if system_prompt is not None:
            self.system_prompt = system_prompt

        key = (self.system_prompt, self.app_settings.gemini_api_key, self.app_settings.model)
        if key != self._session_key:
            self._build_session()

    async def send(self, text: str) -> AsyncIterator[str]:
        """Send a user turn. Yields each text increment as it arrives."""
        prompt = text.strip()
        if not prompt:
            return
        if self.streaming:
            raise ChatBusyError("A response is still streaming")
        if self._session is None:
            self.error = NOT_INITIALIZED
            return

        # Bound to this send even if the session is rebuilt meanwhile
        session = self._session
        self.error = None
        self.streaming = True
        self.messages.append(ChatMessage(role="user", content=prompt))
        placeholder = ChatMessage(role="assistant", content="")
        self.messages.append(placeholder)

        full_response = ""
        try:
            async with asyncio.timeout(self._timeout):
                async for chunk in session.send_message_stream(prompt):
                    full_response += chunk
                    placeholder.content = full_response
                    yield chunk
        except Exception as e:
            reason = f"timed out after {self._timeout:g}s" if isinstance(e, TimeoutError) else str(e)
            logger.error(f"Chat stream failed: {reason}")
            self.error = f"An error occurred with the Gemini API: {reason}. Check your key and permissions."
            placeholder.content = f"**Error:** {self.error}"
        finally:
            self.streaming = False

    def reset(self) -> None:
        """Drop all messages and execution records and start a fresh session."""
        self.messages.clear()
        self.executor.clear()
        self._build_session()

    def code_part(self, message_index: int, part_index: int) -> MessagePart:
        # Indices are block keys, so no wrap-around from the end
        if message_index < 0 or part_index < 0:
            raise IndexError(f"Negative code block reference {message_index}-{part_index}")
        message = self.messages[message_index]
        if message.role != "assistant":
            raise IndexError(f"Message {message_index} is not an assistant message")
        part = parse_message_content(message.content)[part_index]
        if part.kind != "code":
            raise IndexError(f"Part {part_index} of message {message_index} is not code")
        return part

    def run_code(self, message_index: int, part_index: int) -> asyncio.Task | None:
        part = self.code_part(message_index, part_index)
        if not self.app_settings.e2b_api_key:
            self.error = MISSING_SANDBOX_KEY_BANNER
        return self.executor.start(block_id(message_index, part_index), part.language, part.content)

    def cancel_code(self, message_index: int, part_index: int) -> bool:
        return self.executor.cancel(block_id(message_index, part_index))

    def snapshot(self) -> dict:
        rendered = []
        for message in self.messages:
            entry = asdict(message)
            if message.role == "assistant":
                entry["parts"] = [asdict(p) for p in parse_message_content(message.content)]
            else:
                entry["parts"] = [{"kind": "text", "content": message.content, "language": None}]
            rendered.append(entry)

        return {
            "status": self.status.value,
            "error": self.error,
            "system_prompt": self.system_prompt,
            "messages": rendered,
            "executions": {key: record.to_dict() for key, record in self.executor.records.items()},
        }

    def execution(self, message_index: int, part_index: int) -> ExecutionRecord | None:
        return self.executor.records.get(block_id(message_index, part_index))
