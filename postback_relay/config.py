from pydantic import BaseModel
from typing import Dict
import os

from dotenv import load_dotenv

load_dotenv()  # Load environment variables from .env file


def _parse_api_keys(raw: str) -> Dict[str, str]:
    keys = [key.strip() for key in raw.split(",") if key.strip()]
    if not keys:
        return {"test-key": "test-user"}
    return {key: f"user-{i}" for i, key in enumerate(keys, 1)}


class Settings(BaseModel):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./postback_relay.db")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # API key -> owner id for the management routes
    API_KEYS: Dict[str, str] = _parse_api_keys(os.getenv("API_KEYS", ""))

    # "background" runs relays in-process after the response, "celery" enqueues them
    RELAY_DISPATCH_MODE: str = os.getenv("RELAY_DISPATCH_MODE", "background")
    RELAY_MAX_WORKERS: int = int(os.getenv("RELAY_MAX_WORKERS", "8"))
    RELAY_TIMEOUT_SECONDS: float = float(os.getenv("RELAY_TIMEOUT_SECONDS", "10"))
    RELAY_USER_AGENT: str = os.getenv("RELAY_USER_AGENT", "Postback-Relay/1.0")

    CELERY_BROKER_URL: str = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/0")

    REQUESTS_PAGE_LIMIT_MAX: int = int(os.getenv("REQUESTS_PAGE_LIMIT_MAX", "500"))

    @property
    def use_celery(self) -> bool:
        return self.RELAY_DISPATCH_MODE.lower() == "celery"


settings = Settings()
