"""Shared test fixtures for backend tests."""

from contextlib import asynccontextmanager
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from gguf_studio.api.deps import (
    get_provider_factory,
    get_sandbox_factory,
    get_settings_store,
    get_view_controller,
)
from gguf_studio.core.errors import ConfigurationError
from gguf_studio.services.llm import MISSING_API_KEY
from gguf_studio.services.llm.base import BaseLLMProvider, ChatSession
from gguf_studio.services.sandbox import SandboxEnvironment
from gguf_studio.services.settings_store import SettingsStore
from gguf_studio.services.view import ViewController

# In-memory SQLite with StaticPool so all connections (including threads) share one DB
test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(autouse=True)
def setup_test_db():
    """Create all tables before each test, drop after."""
    import gguf_studio.models.stored_value  # noqa: F401 - register models
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def engine():
    return test_engine


@pytest.fixture
def store():
    return SettingsStore(test_engine)


class FakeChatSession(ChatSession):
    def __init__(self, provider: "FakeProvider", system_instruction: str):
        self.provider = provider
        self.system_instruction = system_instruction
        self.sent: list[str] = []

    async def send_message_stream(self, message: str):
        self.sent.append(message)
        for index, chunk in enumerate(self.provider.chunks):
            if self.provider.stream_error is not None and index == self.provider.fail_at:
                raise self.provider.stream_error
            yield chunk
        if self.provider.stream_error is not None and self.provider.fail_at >= len(self.provider.chunks):
            raise self.provider.stream_error


class FakeProvider(BaseLLMProvider):
    """Stands in for the Gemini backend. Tweak attributes per test."""

    def __init__(self):
        self.chunks: list[str] = ["Hello", " from", " model"]
        self.stream_error: Exception | None = None
        self.fail_at = 0
        self.json_text = "[]"
        self.json_error: Exception | None = None
        self.sessions: list[FakeChatSession] = []
        self.requests: list[dict] = []

    def create_chat(self, system_instruction: str) -> ChatSession:
        session = FakeChatSession(self, system_instruction)
        self.sessions.append(session)
        return session

    async def generate_json(self, prompt: str, system_instruction: str, response_schema: dict) -> str:
        self.requests.append({"prompt": prompt, "system_instruction": system_instruction, "schema": response_schema})
        if self.json_error is not None:
            raise self.json_error
        return self.json_text


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def provider_factory(fake_provider):
    """Mirrors the real factory: refuses to build without an API key."""
    def factory(app_settings):
        if not app_settings.gemini_api_key:
            raise ConfigurationError(MISSING_API_KEY)
        return fake_provider
    return factory


class FakeSandbox(SandboxEnvironment):
    def __init__(self):
        self.stdout: list[str] = []
        self.stderr: list[str] = []
        self.exit_code = 0
        self.error: Exception | None = None
        self.gate = None  # optional asyncio.Event the command waits on
        self.files: dict[str, str] = {}
        self.commands: list[str] = []

    async def write_file(self, path: str, content: str) -> None:
        self.files[path] = content

    async def run_command(self, cmd, on_stdout, on_stderr) -> int:
        self.commands.append(cmd)
        for line in self.stdout:
            on_stdout(line)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        for line in self.stderr:
            on_stderr(line)
        return self.exit_code


class FakeSandboxFactory:
    def __init__(self, sandbox: FakeSandbox):
        self.sandbox = sandbox
        self.opened = 0
        self.closed = 0
        self.api_keys: list[str] = []

    @asynccontextmanager
    async def __call__(self, api_key: str):
        self.opened += 1
        self.api_keys.append(api_key)
        try:
            yield self.sandbox
        finally:
            self.closed += 1


@pytest.fixture
def fake_sandbox():
    return FakeSandbox()


@pytest.fixture
def sandbox_factory(fake_sandbox):
    return FakeSandboxFactory(fake_sandbox)


@pytest.fixture
def view_controller():
    return ViewController()


@pytest.fixture
def client(store, provider_factory, sandbox_factory, view_controller):
    """FastAPI TestClient with all external deps patched."""
    with patch("gguf_studio.core.database.engine", test_engine):
        from gguf_studio.main import app

        app.dependency_overrides[get_settings_store] = lambda: store
        app.dependency_overrides[get_provider_factory] = lambda: provider_factory
        app.dependency_overrides[get_sandbox_factory] = lambda: sandbox_factory
        app.dependency_overrides[get_view_controller] = lambda: view_controller

        with TestClient(app) as c:
            yield c

        app.dependency_overrides.clear()
