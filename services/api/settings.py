# services/api/settings.py
from pydantic_settings import BaseSettings
from pydantic import ConfigDict, Field
from typing import List
from pathlib import Path


class Settings(BaseSettings):
    # Storage settings
    # "memory" keeps everything in-process; set STORAGE_BACKEND=sqlite in .env to persist
    storage_backend: str = "memory"
    db_url: str = "sqlite:///data/grader.db"

    # CORS settings
    allowed_origins: str = "http://localhost:3000,http://localhost:5000,http://localhost:8000"

    # Vision model (any OpenAI-compatible chat completions endpoint)
    openai_api_key: str = ""
    # Leave empty for api.openai.com
    openai_base_url: str = ""
    openai_model: str = "gpt-4o"
    openai_timeout_seconds: float = 60.0
    openai_max_tokens: int = 2000

    # Upload limits
    max_upload_mb: int = 50

    # How an unanswered question with no expected answer is scored:
    #   match     -> counts as correct (full points)
    #   no_credit -> counts as incorrect
    empty_answer_policy: str = Field(
        default="match",
        description="Scoring of empty student answer vs empty expected answer",
    )

    log_level: str = "INFO"

    model_config = ConfigDict(
        # Always load .env from the same folder as this settings.py
        env_file=str(Path(__file__).resolve().parent / ".env"),
        extra="ignore",
    )

    def get_origins_list(self) -> List[str]:
        """Parse comma-separated origins into a list."""
        if not self.allowed_origins:
            return ["*"]
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


_settings_instance = None

def get_settings() -> Settings:
    """Singleton pattern for settings."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
