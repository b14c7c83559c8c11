"""Stateless script generation endpoints."""

from urllib.parse import urlparse

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field, field_validator

from gguf_studio.core.config import settings
from gguf_studio.core.errors import ScriptTemplateError
from gguf_studio.services.scripts.generator import (
    DownloadDestination,
    ScriptArtifact,
    direct_download_url,
    generate_custom_url_script,
    generate_hf_script,
)

router = APIRouter()


class HuggingFaceScriptRequest(BaseModel):
    repo_id: str = Field(min_length=1)
    filename: str = Field(min_length=1)
    download_dir: str = Field(default=settings.default_download_dir, min_length=1)


class CustomUrlScriptRequest(BaseModel):
    url: str
    download_dir: str = Field(default=settings.default_download_dir, min_length=1)

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, value: str) -> str:
        parsed = urlparse(value.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("A valid http(s) URL is required")
        return value.strip()


class DestinationOptions(BaseModel):
    destination: DownloadDestination = DownloadDestination.LOCAL
    gdrive_folder_name: str = ""


class HuggingFaceScriptBody(HuggingFaceScriptRequest, DestinationOptions):
    pass


class CustomUrlScriptBody(CustomUrlScriptRequest, DestinationOptions):
    pass


@router.post("/huggingface")
async def huggingface_script(body: HuggingFaceScriptBody) -> ScriptArtifact:
    try:
        return generate_hf_script(
            body.repo_id, body.filename, body.download_dir, body.destination, body.gdrive_folder_name
        )
    except ScriptTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/custom-url")
async def custom_url_script(body: CustomUrlScriptBody) -> ScriptArtifact:
    try:
        return generate_custom_url_script(body.url, body.download_dir, body.destination, body.gdrive_folder_name)
    except ScriptTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/direct-url")
async def direct_url(repo_id: str, filename: str):
    return {"url": direct_download_url(repo_id, filename)}
