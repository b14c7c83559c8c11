"""Shared FastAPI dependencies. Tests replace these via dependency_overrides."""

from gguf_studio.core import database
from gguf_studio.services.execution import SandboxFactory
from gguf_studio.services.llm import get_llm_provider
from gguf_studio.services.sandbox import open_e2b_sandbox
from gguf_studio.services.settings_store import SettingsStore
from gguf_studio.services.view import ViewController

_view_controller = ViewController()


def get_settings_store() -> SettingsStore:
    return SettingsStore(database.engine)


def get_view_controller() -> ViewController:
    return _view_controller


def get_provider_factory():
    return get_llm_provider


def get_sandbox_factory() -> SandboxFactory:
    return open_e2b_sandbox
