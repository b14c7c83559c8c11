"""REST API for AI-backed model discovery."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from gguf_studio.api.deps import get_provider_factory, get_settings_store
from gguf_studio.services.recommendations import (
    LoraFinder,
    ModelFinder,
    NewModelsDashboard,
    RecommendationRequester,
)
from gguf_studio.services.settings_store import SettingsStore

router = APIRouter()


class SearchRequest(BaseModel):
    prompt: str


def _response(requester: RecommendationRequester) -> dict:
    return {
        "results": [item.model_dump(by_alias=True) for item in requester.results],
        "error": requester.error,
    }


@router.post("/models")
async def find_models(
    body: SearchRequest,
    store: SettingsStore = Depends(get_settings_store),
    provider_factory=Depends(get_provider_factory),
):
    finder = ModelFinder(store.load(), provider_factory=provider_factory)
    await finder.search(body.prompt)
    return _response(finder)


@router.post("/loras")
async def find_loras(
    body: SearchRequest,
    store: SettingsStore = Depends(get_settings_store),
    provider_factory=Depends(get_provider_factory),
):
    finder = LoraFinder(store.load(), provider_factory=provider_factory)
    await finder.search(body.prompt)
    return _response(finder)


@router.get("/new-models")
async def new_models(
    store: SettingsStore = Depends(get_settings_store),
    provider_factory=Depends(get_provider_factory),
):
    dashboard = NewModelsDashboard(store.load(), provider_factory=provider_factory)
    await dashboard.fetch_latest()
    return _response(dashboard)
