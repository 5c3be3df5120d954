import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
from fastapi import HTTPException, Request
from jose import JWTError, jwt

from app.config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"
TOKEN_COOKIE = "auth_token"


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def create_access_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    if not SECRET_KEY:
        raise RuntimeError("SECRET_KEY is not configured")
    payload = dict(data)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def read_credential(request: Request) -> Optional[str]:
    """Token from the auth cookie, or from a bearer Authorization header."""
    token = request.cookies.get(TOKEN_COOKIE)
    if token:
        return token
    scheme, _, value = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and value:
        return value.strip()
    return None


def decode_user_id(token: Optional[str]) -> Optional[str]:
    """
    Verify the token signature and return the user id claim.

    Returns None for a missing, malformed, expired or tampered token, or
    when no secret is configured to verify against.
    """
    if not token or not SECRET_KEY:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub") or payload.get("id")
    return str(user_id) if user_id else None


def resolve_user_id(token: Optional[str]) -> str:
    # identity only keys history here, so a bad credential is not an error
    user_id = decode_user_id(token)
    if user_id is None:
        logger.debug("No usable credential, continuing as %s", ANONYMOUS)
        return ANONYMOUS
    return user_id


def get_current_user(request: Request) -> str:
    user_id = decode_user_id(read_credential(request))
    if user_id is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id
