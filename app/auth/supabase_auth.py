"""Supabase JWT validation dependency for FastAPI."""

import logging

from fastapi import Header, HTTPException
from supabase import create_client
from app.config import settings

logger = logging.getLogger(__name__)


async def current_owner_id(authorization: str = Header(None)) -> str:
    """Validate the Supabase JWT from the Authorization header.

    Returns the authenticated user's id, which owns every ledger record
    created on their behalf.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid token")

    token = authorization.replace("Bearer ", "")
    try:
        client = create_client(settings.supabase_url, settings.supabase_anon_key)
        user_response = client.auth.get_user(token)
    except Exception as e:
        logger.info("Rejected bearer token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")

    user = getattr(user_response, "user", None)
    if user is None or not getattr(user, "id", None):
        raise HTTPException(status_code=401, detail="Invalid token")
    return str(user.id)
