"""
统一鉴权模块
校验宿主平台签发的JWT令牌，提供权限检查依赖
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from .config import get_settings

# Bearer令牌认证
security = HTTPBearer()

# 可管理课程格式的角色
EDITOR_ROLES = ("admin", "manager")


class TokenData(BaseModel):
    """令牌数据"""
    user_id: int
    username: str
    role: str = "user"
    permissions: list[str] = []
    lang: Optional[str] = None


def create_token(data: TokenData, expires_delta: Optional[timedelta] = None) -> str:
    """
    创建JWT令牌
    正式环境由宿主平台签发，这里主要供脚本和测试使用
    """
    settings = get_settings()
    to_encode = data.model_dump()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[TokenData]:
    """
    解码JWT令牌
    支持密钥轮换：先尝试新密钥，失败则尝试旧密钥
    """
    settings = get_settings()

    def _decode(secret: str):
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
        if payload.get("type", "access") != "access":
            raise JWTError("token type mismatch")
        return TokenData(**payload)

    try:
        return _decode(settings.jwt_secret)
    except JWTError:
        if settings.jwt_secret_old:
            try:
                return _decode(settings.jwt_secret_old)
            except JWTError:
                return None
        return None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenData:
    """获取当前用户（依赖注入用）"""
    token_data = decode_token(credentials.credentials)

    if token_data is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="无效的认证凭据",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return token_data


def has_permission(user: TokenData, permission: str) -> bool:
    """判断用户是否拥有某权限（管理员角色拥有全部权限）"""
    return user.role in EDITOR_ROLES or permission in user.permissions


def require_permission(permission: str):
    """权限检查装饰器工厂"""
    async def permission_checker(user: TokenData = Depends(get_current_user)) -> TokenData:
        if not has_permission(user, permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"缺少权限: {permission}"
            )
        return user
    return permission_checker
