"""Structured-output model recommendations (model finder, LoRA finder, new models).

Each requester makes one schema-constrained call and replaces its result list
wholesale. Failures end up in ``error`` as banner text; nothing is raised.
"""

import asyncio
import logging
from datetime import date
from typing import Callable, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from gguf_studio.core.config import settings
from gguf_studio.core.errors import ConfigurationError, ResponseParseError
from gguf_studio.services.llm import get_llm_provider
from gguf_studio.services.llm.base import BaseLLMProvider
from gguf_studio.services.scripts.generator import direct_download_url
from gguf_studio.services.settings_store import AppSettings

logger = logging.getLogger(__name__)


class ModelRecommendation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    repo_id: str
    filename: str
    description: str


class LoraRecommendation(ModelRecommendation):
    download_url: str = ""


class NewModelRecommendation(ModelRecommendation):
    parameter_size: float = Field(description="Parameters in billions")
    release_date: str  # YYYY-MM-DD


def _item_schema(properties: dict[str, dict]) -> dict:
    return {
        "type": "ARRAY",
        "items": {
            "type": "OBJECT",
            "properties": properties,
            "required": list(properties),
        },
    }


MODEL_FINDER_SCHEMA = _item_schema({
    "repoId": {
        "type": "STRING",
        "description": "The Hugging Face repository ID, e.g., 'TheBloke/Mistral-7B-Instruct-v0.2-GGUF'.",
    },
    "filename": {
        "type": "STRING",
        "description": (
            "A recommended GGUF filename from the repository, e.g., 'mistral-7b-instruct-v0.2.Q4_K_M.gguf'. "
            "Prioritize a general-purpose quantization like Q4_K_M or Q5_K_M."
        ),
    },
    "description": {
        "type": "STRING",
        "description": "A brief, one-sentence explanation of why this model is a good recommendation for the user's prompt.",
    },
})

LORA_FINDER_SCHEMA = _item_schema({
    "repoId": {
        "type": "STRING",
        "description": "The Hugging Face repository ID, e.g., 'stabilityai/stable-diffusion-xl-base-1.0'.",
    },
    "filename": {
        "type": "STRING",
        "description": "The specific LoRA filename, which must end in .safetensors.",
    },
    "description": {
        "type": "STRING",
        "description": "A brief, one-sentence explanation of what this LoRA does or what style it creates.",
    },
})

NEW_MODELS_SCHEMA = _item_schema({
    "repoId": {"type": "STRING", "description": "The Hugging Face repository ID, e.g., 'TheBloke/New-Model-7B-GGUF'."},
    "filename": {"type": "STRING", "description": "A recommended GGUF filename, e.g., 'new-model-7b.Q4_K_M.gguf'."},
    "description": {"type": "STRING", "description": "A brief, one-sentence explanation of the model's purpose."},
    "parameterSize": {"type": "NUMBER", "description": "The number of parameters in billions, e.g., 7.2"},
    "releaseDate": {"type": "STRING", "description": "The release date in YYYY-MM-DD format."},
})

MODEL_FINDER_INSTRUCTION = (
    "You are an expert assistant for finding GGUF models on Hugging Face. Recommend 3-5 models based on "
    "the user's request. Strictly return a valid JSON array matching the provided schema. Do not include "
    "markdown formatting or any text outside the JSON array."
)

LORA_FINDER_INSTRUCTION = (
    "You are an expert assistant for finding LoRA (Low-Rank Adaptation) files on Hugging Face. The user "
    "will describe a style or character. Find 3-5 relevant LoRA models. It is critical that the filename "
    "you provide is a `.safetensors` file. Strictly return a valid JSON array matching the provided schema. "
    "Do not include markdown formatting or any text outside the JSON array."
)

NEW_MODELS_INSTRUCTION = (
    "You are an expert assistant for finding GGUF models. Your task is to find the top 5-7 newest, most "
    "popular, and highest quality small-to-medium GGUF models (under 15 billion parameters) released on "
    "Hugging Face within the last 7 days. For each model, provide its repo ID, a suitable GGUF filename "
    "(prefer Q4_K_M or similar), a short description, its parameter size in billions, and the release "
    "date. Return a valid JSON array matching the schema. Do not include markdown."
)

T = TypeVar("T", bound=ModelRecommendation)


class RecommendationRequester(Generic[T]):
    """Base for one-shot structured recommendation requests."""

    item_type: type[T]
    schema: dict
    system_instruction: str
    failure_prefix: str

    def __init__(
        self,
        app_settings: AppSettings,
        provider_factory: Callable[[AppSettings], BaseLLMProvider] = get_llm_provider,
        timeout: float | None = None,
    ):
        self.app_settings = app_settings
        self.results: list[T] = []
        self.error: str | None = None
        self.loading = False
        self._provider_factory = provider_factory
        self._timeout = timeout or settings.recommendation_timeout
        self._adapter = TypeAdapter(list[self.item_type])

    def parse(self, raw: str) -> list[T]:
        try:
            return self._adapter.validate_json(raw)
        except ValidationError as e:
            raise ResponseParseError(f"Malformed recommendation response: {e}") from e

    def postprocess(self, items: list[T]) -> list[T]:
        return items

    async def _request(self, prompt: str) -> list[T]:
        self.loading = True
        self.error = None
        self.results = []
        try:
            provider = self._provider_factory(self.app_settings)
            async with asyncio.timeout(self._timeout):
                raw = await provider.generate_json(prompt, self.system_instruction, self.schema)
            self.results = self.postprocess(self.parse(raw))
        except ConfigurationError as e:
            self.error = str(e)
        except Exception as e:
            reason = f"timed out after {self._timeout:g}s" if isinstance(e, TimeoutError) else str(e)
            logger.error(f"{type(self).__name__} request failed: {reason}")
            self.error = f"{self.failure_prefix} Error: {reason}"
        finally:
            self.loading = False
        return self.results


class PromptedRequester(RecommendationRequester[T]):
    empty_prompt_error: str
    prompt_template: str

    async def search(self, prompt: str) -> list[T]:
        if not prompt.strip():
            self.error = self.empty_prompt_error
            self.results = []
            return self.results
        return await self._request(self.prompt_template.format(prompt=prompt.strip()))


class ModelFinder(PromptedRequester[ModelRecommendation]):
    item_type = ModelRecommendation
    schema = MODEL_FINDER_SCHEMA
    system_instruction = MODEL_FINDER_INSTRUCTION
    failure_prefix = "Sorry, something went wrong while finding models."
    empty_prompt_error = "Please describe the model you're looking for."
    prompt_template = 'Find GGUF models that match this description: "{prompt}".'


class LoraFinder(PromptedRequester[LoraRecommendation]):
    item_type = LoraRecommendation
    schema = LORA_FINDER_SCHEMA
    system_instruction = LORA_FINDER_INSTRUCTION
    failure_prefix = "Sorry, something went wrong while finding LoRAs."
    empty_prompt_error = "Please describe the LoRA you're looking for."
    prompt_template = 'Find LoRA models (.safetensors files) on Hugging Face that match this description: "{prompt}".'

    def postprocess(self, items: list[LoraRecommendation]) -> list[LoraRecommendation]:
        for item in items:
            item.download_url = direct_download_url(item.repo_id, item.filename)
        return items


def _release_sort_key(item: NewModelRecommendation) -> tuple[int, date]:
    try:
        return (1, date.fromisoformat(item.release_date))
    except ValueError:
        return (0, date.min)


class NewModelsDashboard(RecommendationRequester[NewModelRecommendation]):
    item_type = NewModelRecommendation
    schema = NEW_MODELS_SCHEMA
    system_instruction = NEW_MODELS_INSTRUCTION
    failure_prefix = "Could not fetch new models."

    async def fetch_latest(self) -> list[NewModelRecommendation]:
        return await self._request("List the newest popular GGUF models from the last 7 days.")

    def postprocess(self, items: list[NewModelRecommendation]) -> list[NewModelRecommendation]:
        # Newest first; unparseable dates sink to the bottom
        return sorted(items, key=_release_sort_key, reverse=True)
