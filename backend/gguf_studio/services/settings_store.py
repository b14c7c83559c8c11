"""Persisted user settings (API keys and model choice).

The settings live as one JSON blob under a fixed key in the key/value table.
Absent or malformed data falls back to defaults; a save overwrites the blob.
"""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ValidationError, field_validator
from sqlalchemy.engine import Engine
from sqlmodel import Session

from gguf_studio.core.config import settings
from gguf_studio.models.stored_value import StoredValue

logger = logging.getLogger(__name__)

SETTINGS_KEY = "ai_studio_settings"


class AppSettings(BaseModel):
    gemini_api_key: str = ""
    e2b_api_key: str = ""
    model: str = settings.default_model

    @field_validator("model", mode="before")
    @classmethod
    def _default_model(cls, value: str | None) -> str:
        if value is None or not str(value).strip():
            return settings.default_model
        return str(value).strip()


class SettingsStore:
    def __init__(self, engine: Engine):
        self._engine = engine

    def load(self) -> AppSettings:
        with Session(self._engine) as session:
            row = session.get(StoredValue, SETTINGS_KEY)
            raw = row.value if row else None

        if raw is None:
            return AppSettings()

        try:
            return AppSettings.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Stored settings are malformed, using defaults: {e}")
            return AppSettings()

    def save(self, app_settings: AppSettings) -> AppSettings:
        blob = app_settings.model_dump_json()
        with Session(self._engine) as session:
            row = session.get(StoredValue, SETTINGS_KEY)
            if row is None:
                row = StoredValue(key=SETTINGS_KEY, value=blob)
            else:
                row.value = blob
                row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            session.commit()
        logger.debug("Saved settings")
        return app_settings
