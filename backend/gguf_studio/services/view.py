"""Top-level view state: active mode, destination and the displayed script."""

import logging
from enum import Enum

from pydantic import BaseModel

from gguf_studio.core.config import settings
from gguf_studio.services.scripts.generator import (
    DownloadDestination,
    ScriptArtifact,
    generate_custom_url_script,
    generate_hf_script,
)

logger = logging.getLogger(__name__)


class DownloadMode(str, Enum):
    AI_STUDIO = "AIStudio"
    MODEL_FINDER = "ModelFinder"
    NEW_MODELS = "NewModels"
    LORA_FINDER = "LoraFinder"
    HUGGING_FACE = "HuggingFace"
    CUSTOM_URL = "CustomUrl"


SCRIPT_FORM_MODES = (DownloadMode.HUGGING_FACE, DownloadMode.CUSTOM_URL)


class SelectedModel(BaseModel):
    repo_id: str
    filename: str


class ViewController:
    def __init__(self):
        self.mode = DownloadMode.AI_STUDIO
        self.destination = DownloadDestination.LOCAL
        self.gdrive_folder_name = ""
        self.selected_model: SelectedModel | None = None
        self.script: ScriptArtifact | None = None

    @property
    def show_destination_selector(self) -> bool:
        return self.mode in SCRIPT_FORM_MODES

    @property
    def show_script(self) -> bool:
        return self.script is not None and (self.mode in SCRIPT_FORM_MODES or self.selected_model is not None)

    def select_mode(self, mode: DownloadMode) -> None:
        self.mode = mode
        self.script = None
        self.selected_model = None

    def set_destination(self, destination: DownloadDestination, gdrive_folder_name: str = "") -> None:
        self.destination = destination
        self.gdrive_folder_name = gdrive_folder_name

    def generate_huggingface(self, repo_id: str, filename: str, download_dir: str) -> ScriptArtifact:
        self.script = generate_hf_script(repo_id, filename, download_dir, self.destination, self.gdrive_folder_name)
        return self.script

    def generate_custom_url(self, url: str, download_dir: str) -> ScriptArtifact:
        self.script = generate_custom_url_script(url, download_dir, self.destination, self.gdrive_folder_name)
        return self.script

    def select_model(self, repo_id: str, filename: str) -> ScriptArtifact:
        """Hand a discovered model to the Hugging Face script flow."""
        logger.info(f"Selected model {repo_id}/{filename}")
        self.selected_model = SelectedModel(repo_id=repo_id, filename=filename)
        self.mode = DownloadMode.HUGGING_FACE
        return self.generate_huggingface(repo_id, filename, settings.default_download_dir)

    def state(self) -> dict:
        return {
            "mode": self.mode.value,
            "destination": self.destination.value,
            "gdrive_folder_name": self.gdrive_folder_name,
            "show_destination_selector": self.show_destination_selector,
            "selected_model": self.selected_model.model_dump() if self.selected_model else None,
            "script": self.script.model_dump() if self.show_script else None,
        }
