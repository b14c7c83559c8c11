"""Download script generator.

Maps a model locator plus a destination to a ready-to-run Python script and
its requirements manifest. Nothing here touches the network or the file
system: the output is text that the end user runs later on their own machine.
"""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from string import Template
from urllib.parse import quote

from pydantic import BaseModel

from gguf_studio.core.config import settings
from gguf_studio.core.errors import ScriptTemplateError
from gguf_studio.services.scripts import templates

logger = logging.getLogger(__name__)


class DownloadDestination(str, Enum):
    LOCAL = "Local"
    GOOGLE_DRIVE = "GoogleDrive"


@dataclass(frozen=True)
class HuggingFaceLocator:
    repo_id: str
    filename: str


@dataclass(frozen=True)
class UrlLocator:
    url: str


Locator = HuggingFaceLocator | UrlLocator


class ScriptArtifact(BaseModel):
    code: str
    requirements: str


def python_literal(value: str, field: str) -> str:
    """Render ``value`` as a double-quoted Python string literal.

    Quotes and backslashes are escaped. Line breaks and other control
    characters are rejected since no file name, path or repo id carries them.
    """
    for ch in value:
        if ord(ch) < 32 or ord(ch) == 127:
            raise ScriptTemplateError(f"{field} contains a control character: {value!r}")
    return json.dumps(value, ensure_ascii=False)


def _render(template: Template, **values: str) -> str:
    literals = {name: python_literal(value, name) for name, value in values.items()}
    return template.substitute(literals).strip()


def generate(
    locator: Locator,
    download_dir: str,
    destination: DownloadDestination = DownloadDestination.LOCAL,
    gdrive_folder_name: str = "",
) -> ScriptArtifact:
    """Produce the script and manifest for one locator/destination pair."""
    drive = destination == DownloadDestination.GOOGLE_DRIVE

    if isinstance(locator, HuggingFaceLocator):
        if drive:
            code = _render(
                templates.HF_DRIVE_SCRIPT,
                repo_id=locator.repo_id,
                filename=locator.filename,
                download_dir=download_dir,
                gdrive_folder_name=gdrive_folder_name,
            )
            requirements = templates.HF_DRIVE_REQUIREMENTS
        else:
            code = _render(
                templates.HF_LOCAL_SCRIPT,
                repo_id=locator.repo_id,
                filename=locator.filename,
                download_dir=download_dir,
            )
            requirements = templates.HF_LOCAL_REQUIREMENTS
    elif isinstance(locator, UrlLocator):
        if drive:
            code = _render(
                templates.URL_DRIVE_SCRIPT,
                url=locator.url,
                download_dir=download_dir,
                gdrive_folder_name=gdrive_folder_name,
            )
            requirements = templates.URL_DRIVE_REQUIREMENTS
        else:
            code = _render(templates.URL_LOCAL_SCRIPT, url=locator.url, download_dir=download_dir)
            requirements = templates.URL_LOCAL_REQUIREMENTS
    else:
        raise TypeError(f"Unknown locator type: {type(locator).__name__}")

    logger.debug(f"Generated {destination.value} script for {locator}")
    return ScriptArtifact(code=code, requirements=requirements.strip())


def generate_hf_script(
    repo_id: str,
    filename: str,
    download_dir: str,
    destination: DownloadDestination = DownloadDestination.LOCAL,
    gdrive_folder_name: str = "",
) -> ScriptArtifact:
    return generate(HuggingFaceLocator(repo_id, filename), download_dir, destination, gdrive_folder_name)


def generate_custom_url_script(
    url: str,
    download_dir: str,
    destination: DownloadDestination = DownloadDestination.LOCAL,
    gdrive_folder_name: str = "",
) -> ScriptArtifact:
    return generate(UrlLocator(url), download_dir, destination, gdrive_folder_name)


def direct_download_url(repo_id: str, filename: str, host: str | None = None) -> str:
    """Direct-download link for a file on the main branch of a hosted repo."""
    host = host or settings.hf_host
    return f"https://{host}/{quote(repo_id, safe='/')}/resolve/main/{quote(filename, safe='/')}"
