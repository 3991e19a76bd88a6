import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        csrf_secret: str,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.csrf_secret = csrf_secret
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("PAYBUDGET_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("PAYBUDGET_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("PAYBUDGET_TIMEZONE", "America/New_York")
    csrf_secret = os.getenv(
        "PAYBUDGET_CSRF_SECRET",
        "4c1f0d7be2a94e6f8a31c55e0b7d92ae6f13b8c4d07a5e29b6f81c3d4a5e7f90",
    )
    log_level = os.getenv("PAYBUDGET_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        csrf_secret=csrf_secret,
        log_level=log_level,
    )
