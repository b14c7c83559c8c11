"""LLM provider factory."""

from gguf_studio.core.errors import ConfigurationError
from gguf_studio.services.llm.base import BaseLLMProvider
from gguf_studio.services.settings_store import AppSettings

MISSING_API_KEY = "Gemini API Key is not set. Please add it in the settings panel."


def get_llm_provider(app_settings: AppSettings) -> BaseLLMProvider:
    """Build the Gemini provider for the given user settings."""
    if not app_settings.gemini_api_key:
        raise ConfigurationError(MISSING_API_KEY)

    from gguf_studio.services.llm.gemini import GeminiProvider
    return GeminiProvider(api_key=app_settings.gemini_api_key, model=app_settings.model)
