from fastapi import HTTPException, Security
from fastapi.security import APIKeyHeader

from .config import settings

# API Key Authentication Setup
API_KEY_NAME = "x-api-key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)


async def get_api_key(api_key: str = Security(api_key_header)) -> str:
    """Resolve the caller's API key to the owner id used on endpoints."""
    if api_key not in settings.API_KEYS:
        raise HTTPException(
            status_code=403,
            detail="Invalid API Key"
        )
    return settings.API_KEYS[api_key]
