from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict

import jwt

ALGORITHM = "HS256"


def create_access_token(
    subject: str,
    ttl_minutes: int,
    settings,
    role: str = "authenticated",
) -> str:
    now = datetime.now(tz=timezone.utc)
    payload: Dict[str, Any] = {
        "sub": subject,
        "role": role,
        "aud": settings.auth_audience,
        "exp": now + timedelta(minutes=ttl_minutes),
        "iat": now,
    }
    if settings.auth_issuer:
        payload["iss"] = settings.auth_issuer
    return jwt.encode(payload, settings.auth_secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str, settings) -> dict[str, Any]:
    options = {"require": ["sub", "exp"]}
    return jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[ALGORITHM],
        audience=settings.auth_audience,
        issuer=settings.auth_issuer,
        options=options,
    )
