from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader
import os

from veloce.constants import DEFAULT_API_KEY

# API key protecting the /api endpoints; override it through the environment in production
API_KEY = os.getenv("VELOCE_API_KEY", DEFAULT_API_KEY)

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)

async def verify_api_key(api_key: str = Security(api_key_header)):
    """Verify API key for authentication"""
    if not api_key or api_key != API_KEY:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API Key"
        )
    return api_key
