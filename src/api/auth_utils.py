"""
Signed caller identity tokens.

Accounts live outside this service; whatever issues logins signs a JWT whose
"sub" is the numeric user id and whose "roles" lists the caller's roles.
"""

import os
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt

SECRET_KEY = os.environ.get("INTAKE_SECRET_KEY", "dev-secret-unsafe")
ALGORITHM = "HS256"
DEFAULT_TOKEN_LIFETIME = timedelta(hours=24)


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
) -> str:
    """Sign `data` with an expiry; `now_utc` pins the clock for tests."""
    issued_at = now_utc or datetime.now(UTC)
    claims = {**data, "exp": issued_at + (expires_delta or DEFAULT_TOKEN_LIFETIME)}
    return cast(str, jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM))


def identity_token(user_id: int, roles: Iterable[str], name: str | None = None) -> str:
    claims: dict[str, Any] = {"sub": str(user_id), "roles": list(roles)}
    if name:
        claims["name"] = name
    return create_access_token(claims)


def decode_access_token(token: str) -> dict[str, Any] | None:
    """Verified claims, or None when the token does not check out."""
    try:
        return cast(dict[str, Any], jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM]))
    except jwt.JWTError:
        return None
