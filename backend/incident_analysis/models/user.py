"""
调用方身份模型
"""
from typing import Optional

from pydantic import BaseModel

from incident_analysis.errors import UnauthorizedError


class TokenData(BaseModel):
    """Token 数据（外部身份服务签发的 JWT 载荷）"""
    user_id: str
    username: Optional[str] = None


class AuthContext(BaseModel):
    """
    每次请求由网关解析出的身份上下文

    user_id 为 None 表示匿名调用；是否拒绝由各操作自己决定。
    """
    user_id: Optional[str] = None

    @classmethod
    def anonymous(cls) -> "AuthContext":
        return cls(user_id=None)

    @classmethod
    def from_token(cls, token: TokenData) -> "AuthContext":
        return cls(user_id=token.user_id)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)

    def require_user_id(self) -> str:
        if not self.user_id:
            raise UnauthorizedError()
        return self.user_id
