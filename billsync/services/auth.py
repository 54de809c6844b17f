"""
API key check for the billsync trigger endpoints.

The jobs are triggered by a scheduler, not by users, so a single shared key in
API_KEY is all the protection there is. Leaving API_KEY unset opens the
endpoints (local development).
"""
import hmac
import os
from typing import Optional

from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


def verify_api_key(api_key: Optional[str] = Security(API_KEY_HEADER)) -> Optional[str]:
    """Reject the request unless X-API-Key matches API_KEY (401 missing, 403 wrong)."""
    expected = os.getenv("API_KEY")
    if expected is None:
        return api_key

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-API-Key header required",
            headers={"WWW-Authenticate": "ApiKey"},
        )
    if not hmac.compare_digest(api_key.encode(), expected.encode()):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API key")
    return api_key
