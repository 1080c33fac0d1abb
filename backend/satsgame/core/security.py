from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from satsgame.config import settings

TOKEN_SCOPE = "satsgame"

def create_access_token(user_id: int, expires_minutes: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES if expires_minutes is None else expires_minutes
    claims = {
        "sub": str(user_id),
        "scope": TOKEN_SCOPE,
        "iat": now,
        "exp": now + timedelta(minutes=minutes),
    }
    return jwt.encode(claims, settings.SECRET_KEY, settings.ALGORITHM)

def decode_token(token: str) -> Optional[int]:
    """User id carried by a valid game token, else None.

    Tokens are issued by the login flow (outside this service) or by the
    admin endpoints; anything expired, foreign-scoped or malformed is rejected.
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("scope") != TOKEN_SCOPE:
        return None
    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None
