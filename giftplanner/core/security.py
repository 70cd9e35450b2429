"""
Security — Authentication dependency for the gift planner API.

Every contact, occasion, gift and shopping option belongs to the user who
created it. Routes obtain that user's ID from the Supabase session token:

    from giftplanner.core.security import get_current_user_id

    @router.get("/gifts")
    async def list_gifts(user_id: str = Depends(get_current_user_id)):
        ...
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
import httpx

from giftplanner.core.config import SUPABASE_ANON_KEY, SUPABASE_URL

AUTH_TIMEOUT = 10.0

# auto_error=False so a missing header yields our 401 rather than FastAPI's 403.
_bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> str:
    """
    Resolve the Bearer token to a Supabase user ID.

    The token is checked against Supabase Auth's /auth/v1/user endpoint;
    anything other than a 200 with an "id" field is treated as invalid.

    Raises:
        HTTPException(401): Missing, invalid or expired token, or the
            auth service could not be reached.
    """
    if credentials is None:
        raise _unauthorized(
            "Missing authentication token. Provide a Bearer token in the Authorization header."
        )

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{SUPABASE_URL}/auth/v1/user",
                headers={
                    "Authorization": f"Bearer {credentials.credentials}",
                    # Supabase's gateway requires the anon key on every request.
                    "apikey": SUPABASE_ANON_KEY,
                },
                timeout=AUTH_TIMEOUT,
            )
    except httpx.RequestError as exc:
        raise _unauthorized("Authentication service unavailable. Please try again.") from exc

    if response.status_code != 200:
        raise _unauthorized("Invalid or expired authentication token.")

    try:
        user_id = response.json().get("id")
    except ValueError:
        raise _unauthorized("Authentication service returned an invalid response.")

    if not user_id:
        raise _unauthorized("Invalid authentication token — no user ID found.")

    return user_id
