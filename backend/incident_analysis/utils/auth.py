"""
认证工具：JWT 校验，解析调用方身份

Token 由外部身份服务签发（HS256，共享密钥），sub 为用户 ID。
这里不拒绝请求：解析失败时返回匿名上下文，由各操作自己返回 Unauthorized。
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from incident_analysis.config import get_settings
from incident_analysis.models.user import AuthContext, TokenData

logger = logging.getLogger(__name__)

# HTTP Bearer Token（可选）
security = HTTPBearer(auto_error=False)


def create_access_token(
    user_id: str,
    username: Optional[str] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """创建 JWT access token（本地开发和测试用）"""
    settings = get_settings()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.ACCESS_TOKEN_EXPIRE_HOURS))
    to_encode = {"sub": user_id, "exp": expire, "iat": now}
    if username:
        to_encode["username"] = username
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[TokenData]:
    """解码并验证 JWT token，无效时返回 None"""
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.info("JWT expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"JWT invalid: {e}")
        return None

    user_id = payload.get("sub")
    if not user_id:
        logger.warning("JWT payload has no sub")
        return None
    return TokenData(user_id=str(user_id), username=payload.get("username"))


async def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """
    依赖注入：解析当前调用方
    用法: auth: AuthContext = Depends(get_auth_context)
    """
    if credentials is None:
        return AuthContext.anonymous()
    token_data = decode_access_token(credentials.credentials)
    if token_data is None:
        return AuthContext.anonymous()
    return AuthContext.from_token(token_data)
