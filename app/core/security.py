"""Bearer token 校验：签名、audience、issuer。只做认证，授权由 services 层负责。"""
import logging
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWKClient
from jwt.exceptions import PyJWKClientError, PyJWTError

from app.core.config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _jwks_client(url: str) -> PyJWKClient:
    return PyJWKClient(url, cache_keys=True)


def _signing_key(token: str) -> Any:
    if settings.jwt_public_key:
        return settings.jwt_public_key
    if settings.jwks_url:
        return _jwks_client(settings.jwks_url).get_signing_key_from_jwt(token).key
    return None


def decode_token(token: str) -> dict[str, Any] | None:
    """校验并解码 JWT，成功返回 claims，失败返回 None。"""
    try:
        key = _signing_key(token)
    except PyJWKClientError as e:
        logger.warning("JWKS 获取签名公钥失败: %s", e)
        return None
    if key is None:
        logger.warning("未配置 JWT_PUBLIC_KEY 或 JWKS_URL，拒绝 token")
        return None
    options = {"require": ["exp", "sub"]}
    try:
        return jwt.decode(
            token,
            key,
            algorithms=settings.jwt_algorithm_list,
            audience=settings.jwt_audience or None,
            issuer=settings.jwt_issuer or None,
            options=options,
        )
    except PyJWTError as e:
        logger.info("token 校验失败: %s", e)
        return None
