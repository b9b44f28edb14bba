# backend/trip_planner/core/security.py

import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import HTTPException

from trip_planner.core.config_loader import settings


ALGORITHM = "HS256"


# ---------------------------------------------------------------------------
# JWT CREATION
# ---------------------------------------------------------------------------
def create_access_token(subject: str, expires_minutes: int = 7 * 24 * 60) -> str:
    """
    Default expiration = 7 days
    """
    now = datetime.now(timezone.utc)

    payload = {
        "sub": subject,
        "exp": now + timedelta(minutes=expires_minutes),
        "iat": now,
    }

    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=ALGORITHM)


# ---------------------------------------------------------------------------
# JWT VERIFY
# ---------------------------------------------------------------------------
def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.PyJWTError:
        return None


# ---------------------------------------------------------------------------
# OWNER FROM "Authorization: Bearer ..." HEADER
# ---------------------------------------------------------------------------
def get_user_id(authorization: Optional[str]) -> str:
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(401, "Missing or invalid token")
    payload = decode_token(authorization.split(" ", 1)[1])
    if not payload or not payload.get("sub"):
        raise HTTPException(401, "Invalid token")
    return str(payload["sub"])
