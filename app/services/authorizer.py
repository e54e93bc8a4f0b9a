"""管理员操作的服务端权限校验

每次调用都重新读取 user_roles，不缓存角色授权结果。
"""
import logging
from typing import List, Union

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import Forbidden
from app.models.user_role import AppRole, UserRole

logger = logging.getLogger("app.admin")


async def has_role(db: AsyncSession, account_id: str, role: Union[AppRole, str]) -> bool:
    result = await db.execute(
        select(UserRole.id).where(UserRole.user_id == account_id, UserRole.role == AppRole(role).value)
    )
    return result.first() is not None


async def require_role(db: AsyncSession, account_id: str, role: Union[AppRole, str] = AppRole.ADMIN) -> None:
    if not await has_role(db, account_id, role):
        logger.warning("role check failed account=%s role=%s", account_id, AppRole(role).value)
        raise Forbidden()


async def grant_role(db: AsyncSession, account_id: str, role: Union[AppRole, str]) -> None:
    """授予角色；已存在的授权视为无操作"""
    if await has_role(db, account_id, role):
        return
    db.add(UserRole(user_id=account_id, role=AppRole(role).value))
    await db.flush()


async def revoke_role(db: AsyncSession, account_id: str, role: Union[AppRole, str]) -> bool:
    """撤销角色，返回是否真的删除了授权；授权不存在时为无操作"""
    result = await db.execute(
        delete(UserRole).where(UserRole.user_id == account_id, UserRole.role == AppRole(role).value)
    )
    return (result.rowcount or 0) > 0


async def list_role_members(db: AsyncSession, role: Union[AppRole, str]) -> List[str]:
    result = await db.execute(
        select(UserRole.user_id).where(UserRole.role == AppRole(role).value).order_by(UserRole.id)
    )
    return list(result.scalars().all())
