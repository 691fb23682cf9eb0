from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


load_dotenv()


class Settings:
    """Application settings loaded from environment variables.

    Keep all server and client config centralized here. Values are read when
    the instance is created, so ``get_settings.cache_clear()`` picks up
    changes to the environment.
    """

    def __init__(self) -> None:
        self.app_env: str = os.getenv("APP_ENV", "development")
        self.frontend_origin: str = os.getenv("FRONTEND_ORIGIN", "*")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")

        # Server
        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = int(os.getenv("PORT", "3001"))
        self.store_backend: str = os.getenv("ANNA_STORE_BACKEND", "memory")
        self.sqlite_path: str = os.getenv("ANNA_SQLITE_PATH", "anna.db")
        self.default_confidence: str = os.getenv("ANNA_DEFAULT_CONFIDENCE", "medium").strip().lower()

        # Client
        self.api_base: Optional[str] = os.getenv("ANNA_API_BASE", "http://127.0.0.1:3001")
        self.api_prefix: str = os.getenv("ANNA_API_PREFIX", "/api")
        self.http_timeout: float = float(os.getenv("ANNA_HTTP_TIMEOUT", "10.0"))
        self.session_file: Path = Path(
            os.getenv("ANNA_SESSION_FILE", str(Path.home() / ".anna" / "session.json"))
        ).expanduser()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
