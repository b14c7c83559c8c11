from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "GGUF Studio"
    debug: bool = False

    # Paths
    data_dir: Path = Path(__file__).resolve().parent.parent.parent / "data"
    db_path: Path = Path(__file__).resolve().parent.parent.parent / "studio.db"

    # LLM
    default_model: str = "gemini-2.5-flash"
    default_system_prompt: str = "You are a helpful AI assistant specialized in software development."

    # Script generation
    default_download_dir: str = "./models"
    hf_host: str = "huggingface.co"

    # Sandbox
    sandbox_template: str = "base"

    # Timeouts (seconds)
    chat_timeout: float = 120.0
    recommendation_timeout: float = 60.0
    sandbox_step_timeout: float = 30.0
    sandbox_run_timeout: float = 300.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "GGUF_STUDIO_",
    }


settings = Settings()
