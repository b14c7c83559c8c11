"""REST API for the top-level view: mode tabs, destination and displayed script."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from gguf_studio.api.deps import get_view_controller
from gguf_studio.api.scripts import CustomUrlScriptRequest, DestinationOptions, HuggingFaceScriptRequest
from gguf_studio.core.errors import ScriptTemplateError
from gguf_studio.services.view import DownloadMode, ViewController

router = APIRouter()


class ModeUpdate(BaseModel):
    mode: DownloadMode


class ModelSelection(BaseModel):
    repo_id: str = Field(min_length=1)
    filename: str = Field(min_length=1)


@router.get("/")
async def get_view(view: ViewController = Depends(get_view_controller)):
    return view.state()


@router.put("/mode")
async def set_mode(body: ModeUpdate, view: ViewController = Depends(get_view_controller)):
    view.select_mode(body.mode)
    return view.state()


@router.put("/destination")
async def set_destination(body: DestinationOptions, view: ViewController = Depends(get_view_controller)):
    view.set_destination(body.destination, body.gdrive_folder_name)
    return view.state()


@router.post("/select-model")
async def select_model(body: ModelSelection, view: ViewController = Depends(get_view_controller)):
    try:
        view.select_model(body.repo_id, body.filename)
    except ScriptTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return view.state()


@router.post("/huggingface")
async def generate_huggingface(body: HuggingFaceScriptRequest, view: ViewController = Depends(get_view_controller)):
    try:
        view.generate_huggingface(body.repo_id, body.filename, body.download_dir)
    except ScriptTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return view.state()


@router.post("/custom-url")
async def generate_custom_url(body: CustomUrlScriptRequest, view: ViewController = Depends(get_view_controller)):
    try:
        view.generate_custom_url(body.url, body.download_dir)
    except ScriptTemplateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return view.state()
