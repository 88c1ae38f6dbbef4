import os
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


class Settings:
    """Runtime configuration read from the environment (and `.env` when present)."""

    def __init__(self):
        self.ENVIRONMENT: str = os.getenv("ENVIRONMENT", "production")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        # airtable | sql | fixtures
        self.STORE_BACKEND: str = os.getenv("STORE_BACKEND", "airtable").lower()
        self.MOCK_MODE: bool = _env_bool("MOCK_MODE")

        self.AIRTABLE_API_KEY: Optional[str] = os.getenv("AIRTABLE_API_KEY")
        self.AIRTABLE_BASE_ID: Optional[str] = os.getenv("AIRTABLE_BASE_ID")
        self.AIRTABLE_TABLE_NAME: Optional[str] = os.getenv("AIRTABLE_TABLE_NAME")
        self.AIRTABLE_API_URL: str = os.getenv("AIRTABLE_API_URL", "https://api.airtable.com/v0")
        # optional columns; unset means the base has no such field and the value is not stored
        self.AIRTABLE_PHONE_FIELD: Optional[str] = os.getenv("AIRTABLE_PHONE_FIELD") or None
        self.AIRTABLE_BOUTIQUE_FIELD: Optional[str] = os.getenv("AIRTABLE_BOUTIQUE_FIELD") or None

        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./siva_orders.db")

        self.WEBHOOK_IMAGE_GENERATION: Optional[str] = os.getenv("WEBHOOK_IMAGE_GENERATION")
        self.WEBHOOK_IMAGE_EDIT: Optional[str] = os.getenv("WEBHOOK_IMAGE_EDIT")
        self.WEBHOOK_PDF_GENERATION: Optional[str] = os.getenv("WEBHOOK_PDF_GENERATION")
        self.WEBHOOK_SEND_PROPOSAL: Optional[str] = os.getenv("WEBHOOK_SEND_PROPOSAL")
        self.WEBHOOK_TIMEOUT: float = _env_float("WEBHOOK_TIMEOUT", 10.0)

        self.IMAGE_FETCH_TIMEOUT: float = _env_float("IMAGE_FETCH_TIMEOUT", 10.0)
        self.PDF_FONTS_DIR: str = os.getenv("PDF_FONTS_DIR", "/usr/share/fonts/truetype/dejavu")

        self.POLL_INTERVAL: float = _env_float("POLL_INTERVAL", 3.0)
        self.WAIT_TIMEOUT: float = _env_float("WAIT_TIMEOUT", 25.0)

        self.CORS_ORIGINS: List[str] = [
            o.strip()
            for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:80").split(",")
            if o.strip()
        ]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def store_backend(self) -> str:
        # MOCK_MODE is an explicit switch; missing credentials never imply it
        if self.MOCK_MODE:
            return "fixtures"
        return self.STORE_BACKEND

    @property
    def mock_mode(self) -> bool:
        return self.store_backend == "fixtures"


settings = Settings()
