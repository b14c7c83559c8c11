"""REST API for the persisted user settings."""

from fastapi import APIRouter, Depends

from gguf_studio.api.deps import get_settings_store
from gguf_studio.services.settings_store import AppSettings, SettingsStore

router = APIRouter()


@router.get("/")
async def read_settings(store: SettingsStore = Depends(get_settings_store)) -> AppSettings:
    return store.load()


@router.put("/")
async def save_settings(body: AppSettings, store: SettingsStore = Depends(get_settings_store)) -> AppSettings:
    return store.save(body)
