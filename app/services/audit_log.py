"""管理员操作审计日志

日志只追加：本模块不提供任何更新或删除日志的入口。
id 与 created_at 在写入时由日志分配，调用方无法指定。
"""
import json
import logging
from typing import List, Optional

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import AuditLogWriteFailure
from app.models.account import Account
from app.models.admin_log import AdminLog
from app.schemas.audit import AuditLogDraft, AuditLogItem
from app.services.audit_stream import AuditLogChannel

logger = logging.getLogger("app.audit")

UNKNOWN_ADMIN_NAME = "Unknown Admin"


def resolve_display_name(full_name: Optional[str], email: Optional[str]) -> str:
    if full_name and full_name.strip():
        return full_name.strip()
    if email:
        local_part = email.split("@")[0].strip()
        if local_part:
            return local_part
    return UNKNOWN_ADMIN_NAME


async def append_entry(
    db: AsyncSession,
    draft: AuditLogDraft,
    channel: Optional[AuditLogChannel] = None,
) -> AuditLogItem:
    """写入一条审计日志并推送给订阅者

    写入失败时回滚本次日志写入并抛出 AuditLogWriteFailure。
    """
    try:
        actor = (
            await db.execute(select(Account).where(Account.id == draft.actor_id))
        ).scalar_one_or_none()
        if actor is None:
            raise AuditLogWriteFailure(f"未知的操作人: {draft.actor_id}")

        details = draft.details_payload()
        log = AdminLog(
            admin_id=actor.id,
            admin_name=resolve_display_name(actor.full_name, actor.email),
            action=draft.action.value,
            target_type=draft.target_type.value,
            target_id=draft.target_id,
            details=json.dumps(details, ensure_ascii=False) if details else None,
        )
        db.add(log)
        await db.flush()
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise AuditLogWriteFailure(str(exc)) from exc

    item = AuditLogItem.from_log(log)
    if channel is not None:
        channel.publish(item)
    return item


async def record_admin_action(
    db: AsyncSession,
    draft: AuditLogDraft,
    channel: Optional[AuditLogChannel] = None,
) -> Optional[AuditLogItem]:
    """在操作已提交之后尽力写入日志，失败只记录不向上抛出"""
    try:
        return await append_entry(db, draft, channel)
    except AuditLogWriteFailure as exc:
        logger.warning(
            "failed to write audit log action=%s actor=%s target=%s: %s",
            draft.action.value,
            draft.actor_id,
            draft.target_id,
            exc,
        )
        return None


async def list_entries(db: AsyncSession, limit: int = 100) -> List[AuditLogItem]:
    """按 created_at 倒序返回最近 limit 条日志，同一时间按 id 倒序"""
    if limit < 1:
        raise ValueError("limit must be positive")

    rows = (
        await db.execute(
            select(AdminLog).order_by(desc(AdminLog.created_at), desc(AdminLog.id)).limit(limit)
        )
    ).scalars().all()
    return [AuditLogItem.from_log(row) for row in rows]


async def list_entries_after(db: AsyncSession, after_id: int, limit: int = 100) -> List[AuditLogItem]:
    """返回 id 大于 after_id 的日志，按写入顺序"""
    rows = (
        await db.execute(
            select(AdminLog).where(AdminLog.id > after_id).order_by(AdminLog.id).limit(limit)
        )
    ).scalars().all()
    return [AuditLogItem.from_log(row) for row in rows]
