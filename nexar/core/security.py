from __future__ import annotations

from datetime import timedelta
from typing import Any, Optional

import bcrypt
from jose import JWTError, jwt

from .clock import utcnow
from .config import ACCESS_TOKEN_EXPIRE_MINUTES, ALGORITHM, BCRYPT_ROUNDS, SECRET_KEY


def hash_secret(plain: str) -> str:
    salt = bcrypt.gensalt(rounds=max(4, BCRYPT_ROUNDS))
    return bcrypt.hashpw(plain.encode("utf-8"), salt).decode("utf-8")


def verify_secret(plain: str, hashed: Optional[str]) -> bool:
    if not plain or not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def issue_token(claims: dict[str, Any], expires_minutes: Optional[int] = None) -> str:
    payload = dict(claims)
    lifetime = expires_minutes if expires_minutes is not None else ACCESS_TOKEN_EXPIRE_MINUTES
    payload["exp"] = utcnow() + timedelta(minutes=lifetime)
    return jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Optional[dict[str, Any]]:
    if not token:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if not payload.get("sub"):
        return None
    return payload
