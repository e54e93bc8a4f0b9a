from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import Forbidden, Unauthorized
from app.models.account import Account

# 密码加密上下文
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# HTTP Bearer Token（缺失时由 verify_caller 返回 401，而不是默认的 403）
security = HTTPBearer(auto_error=False)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False

def get_password_hash(password: str) -> str:
    """获取密码哈希值"""
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """创建JWT访问令牌"""
    to_encode = data.copy()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    to_encode.update({"exp": datetime.now(timezone.utc) + expires_delta})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_caller(token: Optional[str]) -> str:
    """校验访问令牌并返回其中的账号ID

    令牌缺失、格式错误、过期或没有 sub 时抛出 Unauthorized。
    """
    if not token:
        raise Unauthorized("缺少认证凭据")
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except ExpiredSignatureError:
        raise Unauthorized("认证凭据已过期")
    except JWTError:
        raise Unauthorized("无效的认证凭据")

    account_id = payload.get("sub")
    if not account_id or not isinstance(account_id, str):
        raise Unauthorized("无效的认证凭据")
    return account_id

async def load_active_account(db: AsyncSession, account_id: str) -> Account:
    account = (await db.execute(select(Account).where(Account.id == account_id))).scalar_one_or_none()
    if account is None:
        raise Unauthorized("用户不存在")
    if not account.is_active:
        raise Forbidden("用户已被禁用")
    return account

async def get_current_account(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> Account:
    """获取当前登录账号"""
    token = credentials.credentials if credentials else None
    account_id = verify_caller(token)
    return await load_active_account(db, account_id)
