from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    data_dir: Path = Path.home() / ".flashsync" / "data"
    cache_filename: str = "cache.db"
    remote_backend: Literal["sqlite", "http"] = "sqlite"
    remote_sqlite_filename: str = "remote.db"
    remote_url: str = "http://localhost:54321"
    remote_api_key: str = ""
    pull_timeout_seconds: float = 10.0
    push_timeout_seconds: float = 30.0  # per request, http backend only

    model_config = {"env_prefix": "FLASHSYNC_"}


settings = Settings()
