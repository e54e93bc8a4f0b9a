"""管理员账号相关的特权操作

每个操作都按 授权 -> 变更并提交 -> 写审计日志 的顺序执行。
授权失败不会产生任何变更；变更失败不会写日志；日志失败不影响操作结果。
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AccountNotFound,
    EmailAlreadyExists,
    SelfDeletionForbidden,
    TargetNotAdmin,
    TransientBackendFailure,
)
from app.core.security import get_password_hash
from app.models.account import Account
from app.models.user_role import AppRole
from app.schemas.admin import AdminCreate, AdminPasswordReset
from app.schemas.audit import (
    AddAdminDetails,
    AuditLogDraft,
    DeleteAdminDetails,
    ResetPasswordDetails,
    TargetType,
)
from app.services.audit_log import record_admin_action
from app.services.audit_stream import AuditLogChannel
from app.services.authorizer import grant_role, has_role, list_role_members, require_role, revoke_role

logger = logging.getLogger("app.admin")


async def commit_mutation(db: AsyncSession) -> None:
    try:
        await db.commit()
    except OperationalError as exc:
        await db.rollback()
        logger.error("database unavailable while committing admin action: %s", exc)
        raise TransientBackendFailure() from exc


async def get_account(db: AsyncSession, account_id: str) -> Account:
    account = (await db.execute(select(Account).where(Account.id == account_id))).scalar_one_or_none()
    if account is None:
        raise AccountNotFound()
    return account


async def find_account_by_email(db: AsyncSession, email: str) -> Optional[Account]:
    result = await db.execute(select(Account).where(Account.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def list_admin_accounts(db: AsyncSession) -> List[Account]:
    admin_ids = await list_role_members(db, AppRole.ADMIN)
    if not admin_ids:
        return []
    rows = (await db.execute(select(Account).where(Account.id.in_(admin_ids)))).scalars().all()
    order = {account_id: index for index, account_id in enumerate(admin_ids)}
    return sorted(rows, key=lambda account: order[account.id])


async def create_admin(
    db: AsyncSession,
    caller_id: str,
    payload: AdminCreate,
    channel: Optional[AuditLogChannel] = None,
) -> Account:
    """创建管理员账号

    账号和管理员角色在同一个事务中提交，不会留下没有角色的孤立账号。
    """
    await require_role(db, caller_id, AppRole.ADMIN)

    if await find_account_by_email(db, payload.email):
        raise EmailAlreadyExists()

    account = Account(
        email=payload.email,
        password=get_password_hash(payload.password),
        full_name=payload.full_name,
    )
    db.add(account)
    try:
        await db.flush()
        await grant_role(db, account.id, AppRole.ADMIN)
        await commit_mutation(db)
    except IntegrityError as exc:
        # 并发创建同一邮箱时由唯一约束兜底
        await db.rollback()
        raise EmailAlreadyExists() from exc

    logger.info("admin %s created admin account %s", caller_id, account.id)
    await record_admin_action(
        db,
        AuditLogDraft(
            actor_id=caller_id,
            target_type=TargetType.ADMIN,
            target_id=account.id,
            details=AddAdminDetails(email=account.email, name=account.full_name),
        ),
        channel,
    )
    return account


async def delete_admin_role(
    db: AsyncSession,
    caller_id: str,
    target_id: str,
    channel: Optional[AuditLogChannel] = None,
) -> bool:
    """撤销目标账号的管理员角色，账号本身保留

    返回是否真的撤销了授权；授权已不存在时为无操作，也不写日志。
    """
    await require_role(db, caller_id, AppRole.ADMIN)
    if target_id == caller_id:
        raise SelfDeletionForbidden()

    target = await get_account(db, target_id)
    details = DeleteAdminDetails(email=target.email, name=target.full_name)

    removed = await revoke_role(db, target_id, AppRole.ADMIN)
    await commit_mutation(db)
    if not removed:
        logger.info("admin role of %s already revoked", target_id)
        return False

    logger.info("admin %s revoked admin role of %s", caller_id, target_id)
    await record_admin_action(
        db,
        AuditLogDraft(
            actor_id=caller_id,
            target_type=TargetType.ADMIN,
            target_id=target_id,
            details=details,
        ),
        channel,
    )
    return True


async def reset_admin_password(
    db: AsyncSession,
    caller_id: str,
    target_id: str,
    payload: AdminPasswordReset,
    channel: Optional[AuditLogChannel] = None,
) -> Account:
    """直接重置另一位管理员的密码，不走邮件找回流程"""
    await require_role(db, caller_id, AppRole.ADMIN)
    if not await has_role(db, target_id, AppRole.ADMIN):
        raise TargetNotAdmin()

    target = await get_account(db, target_id)
    details = ResetPasswordDetails(email=target.email, name=target.full_name)

    target.password = get_password_hash(payload.new_password)
    await commit_mutation(db)

    logger.info("admin %s reset password of %s", caller_id, target_id)
    await record_admin_action(
        db,
        AuditLogDraft(
            actor_id=caller_id,
            target_type=TargetType.ADMIN,
            target_id=target_id,
            details=details,
        ),
        channel,
    )
    return target
