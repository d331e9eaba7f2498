import logging
from dataclasses import dataclass, field
from typing import Any

import jwt
from fastapi import Depends, Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.ext.asyncio import AsyncSession

from divebook.domain.centers import service as center_service
from divebook.domain.centers.db_models import PROFILE_ROLE_ADMIN, Profile
from divebook.domain.errors import AuthenticationRequired, PermissionDenied
from divebook.infra.auth import decode_access_token
from divebook.infra.db import get_db_session
from divebook.settings import settings

logger = logging.getLogger(__name__)


@dataclass
class Identity:
    profile_id: str
    claims: dict[str, Any] = field(default_factory=dict)


def _token_from_header(request: Request) -> str:
    authorization: str | None = request.headers.get("Authorization")
    scheme, token = get_authorization_scheme_param(authorization)
    if not authorization or scheme.lower() != "bearer" or not token:
        raise AuthenticationRequired("Missing bearer token")
    return token


async def get_identity(request: Request) -> Identity:
    cached: Identity | None = getattr(request.state, "identity", None)
    if cached:
        return cached

    token = _token_from_header(request)
    app_settings = getattr(request.app.state, "app_settings", settings)
    try:
        claims = decode_access_token(token, app_settings)
    except jwt.PyJWTError as exc:
        logger.info("auth_token_rejected", extra={"extra": {"reason": type(exc).__name__}})
        raise AuthenticationRequired("Invalid or expired token") from exc

    identity = Identity(profile_id=str(claims["sub"]), claims=claims)
    request.state.identity = identity
    return identity


async def require_admin(
    identity: Identity = Depends(get_identity),
    session: AsyncSession = Depends(get_db_session),
) -> Identity:
    profile = await session.get(Profile, identity.profile_id)
    if profile is None or profile.deleted_at is not None or profile.role != PROFILE_ROLE_ADMIN:
        raise PermissionDenied("Admin access required")
    return identity


async def require_center_member(session: AsyncSession, center_id: str, identity: Identity) -> None:
    await center_service.get_center(session, center_id)
    if not await center_service.is_center_member(session, center_id, identity.profile_id):
        raise PermissionDenied("Center membership required")


async def require_center_owner(session: AsyncSession, center_id: str, identity: Identity) -> None:
    await center_service.get_center(session, center_id)
    if not await center_service.is_center_owner(session, center_id, identity.profile_id):
        raise PermissionDenied("Center owner access required")
