"""
SecureTest - Auth predicate
Resolves the caller of an API request from its bearer token.
"""

from typing import Dict, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from securetest.storage import Storage


bearer_scheme = HTTPBearer(auto_error=False)


def get_storage(request: Request) -> Storage:
    """The application's storage, opened during lifespan startup."""
    return request.app.state.storage


async def require_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    storage: Storage = Depends(get_storage),
) -> Dict:
    """Authenticated user for this request, or 401."""
    if credentials is None or not credentials.credentials:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    user = await storage.get_user_by_token(credentials.credentials)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return user
