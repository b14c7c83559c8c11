import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gguf_studio.core.config import settings
from gguf_studio.core.database import init_db
from gguf_studio.api import chat, recommendations, scripts, view
from gguf_studio.api import settings as settings_api


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Configure logging based on debug setting
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s" if settings.debug
        else "%(levelname)-8s %(name)s: %(message)s",
    )

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    init_db()

    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(chat.router, prefix="/api/chat", tags=["chat"])
app.include_router(settings_api.router, prefix="/api/settings", tags=["settings"])
app.include_router(scripts.router, prefix="/api/scripts", tags=["scripts"])
app.include_router(recommendations.router, prefix="/api/recommendations", tags=["recommendations"])
app.include_router(view.router, prefix="/api/view", tags=["view"])


@app.get("/api/health")
async def health():
    return {"status": "ok", "app": settings.app_name}


def run() -> None:
    import uvicorn

    uvicorn.run("gguf_studio.main:app", host=settings.host, port=settings.port)
