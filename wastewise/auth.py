"""
Request-scoped user session
The session is resolved from the bearer token on every request
"""

import logging
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from wastewise.database import get_supabase
from wastewise.schemas import UserSession

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def resolve_session(client, token: str) -> UserSession:
    """Ask Supabase auth who owns the token"""
    try:
        response = client.auth.get_user(token)
    except Exception as e:
        logger.warning("Token rejected by Supabase auth: %s", e)
        raise HTTPException(status_code=401, detail="Invalid token")

    user = getattr(response, 'user', None)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return UserSession(id=str(user.id), email=user.email, access_token=token)


def optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    supabase=Depends(get_supabase),
) -> Optional[UserSession]:
    if not credentials:
        return None
    return resolve_session(supabase, credentials.credentials)


def current_user(session: Optional[UserSession] = Depends(optional_user)) -> UserSession:
    if session is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return session


def sign_out(client, session: UserSession):
    """Revoke the session's token; the next request must sign in again"""
    client.auth.admin.sign_out(session.access_token)
    logger.info("User %s signed out", session.id)
