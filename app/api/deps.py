"""API 依赖项：bearer token 认证。"""
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings
from app.core.errors import Unauthorized
from app.core.security import decode_token

_bearer_scheme = HTTPBearer(auto_error=False)


def get_token_claims(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> dict:
    """校验 Authorization: Bearer <token>，返回 claims。AUTH_ENABLED=false 时直接放行。"""
    if not settings.auth_enabled:
        return {}
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise Unauthorized()
    claims = decode_token(credentials.credentials)
    if claims is None:
        raise Unauthorized()
    return claims
