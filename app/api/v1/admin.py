import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.security import get_current_account, load_active_account, verify_caller
from app.models.account import Account
from app.models.damage_report import LOCATION_LABELS, DamageReport, Location, ReportStatus
from app.models.user_role import AppRole
from app.schemas.admin import (
    AdminCreate,
    AdminItem,
    AdminListResponse,
    AdminPasswordReset,
    AdminReportItem,
    AdminReportListResponse,
    AdminStatsResponse,
    ReportStatusUpdate,
)
from app.schemas.audit import AuditLogListResponse
from app.schemas.response import ApiResponse
from app.services import admin_actions, reports
from app.services.audit_log import list_entries
from app.services.audit_stream import AuditLogChannel, get_audit_channel
from app.services.audit_viewer import AuditLogViewer
from app.services.authorizer import require_role
from app.services.report_export import ReportExporter

router = APIRouter()
logger = logging.getLogger("app.admin")


def _enforce_origin(origin: Optional[str]) -> None:
    allowed_origins = settings.ADMIN_ALLOWED_ORIGINS
    if "*" in allowed_origins:
        return
    if not origin:
        return
    if origin not in allowed_origins:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="来源不被允许")


async def _get_caller(
    request: Request,
    account: Account = Depends(get_current_account),
) -> Account:
    """已登录的调用方；角色由各个操作在执行前自行校验"""
    _enforce_origin(request.headers.get("origin"))
    return account


async def _get_admin_caller(
    account: Account = Depends(_get_caller),
    db: AsyncSession = Depends(get_db),
) -> Account:
    await require_role(db, account.id, AppRole.ADMIN)
    return account


def _to_admin_item(account: Account) -> AdminItem:
    return AdminItem(
        id=account.id,
        email=account.email,
        fullName=account.full_name,
        isActive=account.is_active,
        createdAt=account.created_at,
        lastLoginAt=account.last_login_at,
    )


def _to_admin_report_item(report: DamageReport) -> AdminReportItem:
    return AdminReportItem(
        id=report.id,
        reporterName=report.reporter_name,
        damageDescription=report.damage_description,
        location=report.location,
        locationLabel=LOCATION_LABELS.get(report.location, report.location),
        damageType=report.damage_type,
        photoUrl=report.photo_url,
        status=report.status,
        createdAt=report.created_at,
        updatedAt=report.updated_at,
    )


@router.get("/reports", response_model=ApiResponse)
async def list_reports(
    location: Optional[Location] = Query(default=None),
    statusFilter: Optional[ReportStatus] = Query(default=None),
    keyword: Optional[str] = Query(default=None),
    page: int = Query(default=1, ge=1),
    pageSize: int = Query(default=20, ge=1, le=100),
    _: Account = Depends(_get_admin_caller),
    db: AsyncSession = Depends(get_db),
):
    rows, total = await reports.list_reports(
        db,
        location=location,
        status=statusFilter,
        keyword=keyword,
        page=page,
        page_size=pageSize,
        include_reporter=True,
    )
    response_data = AdminReportListResponse(
        list=[_to_admin_report_item(r) for r in rows],
        total=total,
        page=page,
        pageSize=pageSize,
    )
    return ApiResponse(code=200, data=response_data.model_dump())


@router.get("/reports/stats", response_model=ApiResponse)
async def get_report_stats(
    _: Account = Depends(_get_admin_caller),
    db: AsyncSession = Depends(get_db),
):
    data = AdminStatsResponse(**await reports.report_stats(db))
    return ApiResponse(code=200, data=data.model_dump())


@router.get("/reports/export")
async def export_reports(
    location: Optional[Location] = Query(default=None),
    statusFilter: Optional[ReportStatus] = Query(default=None),
    _: Account = Depends(_get_admin_caller),
    db: AsyncSession = Depends(get_db),
):
    rows, _total = await reports.list_reports(db, location=location, status=statusFilter)
    try:
        content = ReportExporter(rows).to_excel_bytes()
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return Response(
        content=content,
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": 'attachment; filename="laporan-kerusakan.xlsx"'},
    )


@router.patch("/reports/{report_id}/status", response_model=ApiResponse)
async def update_report_status(
    report_id: str,
    payload: ReportStatusUpdate,
    caller: Account = Depends(_get_caller),
    db: AsyncSession = Depends(get_db),
    channel: AuditLogChannel = Depends(get_audit_channel),
):
    report = await reports.update_report_status(db, caller.id, report_id, payload.status, channel)
    return ApiResponse(code=200, message="状态已更新", data=_to_admin_report_item(report).model_dump())


@router.delete("/reports/{report_id}", response_model=ApiResponse)
async def delete_report(
    report_id: str,
    caller: Account = Depends(_get_caller),
    db: AsyncSession = Depends(get_db),
    channel: AuditLogChannel = Depends(get_audit_channel),
):
    await reports.delete_report(db, caller.id, report_id, channel)
    return ApiResponse(code=200, message="报告已删除")


@router.get("/admins", response_model=ApiResponse)
async def list_admins(
    _: Account = Depends(_get_admin_caller),
    db: AsyncSession = Depends(get_db),
):
    accounts = await admin_actions.list_admin_accounts(db)
    response_data = AdminListResponse(list=[_to_admin_item(a) for a in accounts], total=len(accounts))
    return ApiResponse(code=200, data=response_data.model_dump())


@router.post("/admins", response_model=ApiResponse)
async def create_admin(
    payload: AdminCreate,
    caller: Account = Depends(_get_caller),
    db: AsyncSession = Depends(get_db),
    channel: AuditLogChannel = Depends(get_audit_channel),
):
    account = await admin_actions.create_admin(db, caller.id, payload, channel)
    return ApiResponse(code=200, message="管理员账号创建成功", data=_to_admin_item(account).model_dump())


@router.delete("/admins/{user_id}", response_model=ApiResponse)
async def delete_admin(
    user_id: str,
    caller: Account = Depends(_get_caller),
    db: AsyncSession = Depends(get_db),
    channel: AuditLogChannel = Depends(get_audit_channel),
):
    removed = await admin_actions.delete_admin_role(db, caller.id, user_id, channel)
    return ApiResponse(code=200, message="管理员权限已撤销", data={"removed": removed})


@router.post("/admins/{user_id}/reset-password", response_model=ApiResponse)
async def reset_admin_password(
    user_id: str,
    payload: AdminPasswordReset,
    caller: Account = Depends(_get_caller),
    db: AsyncSession = Depends(get_db),
    channel: AuditLogChannel = Depends(get_audit_channel),
):
    await admin_actions.reset_admin_password(db, caller.id, user_id, payload, channel)
    return ApiResponse(code=200, message="密码已重置")


@router.get("/logs", response_model=ApiResponse)
async def list_logs(
    limit: int = Query(default=settings.AUDIT_LOG_LIST_LIMIT, ge=1, le=100),
    _: Account = Depends(_get_admin_caller),
    db: AsyncSession = Depends(get_db),
):
    items = await list_entries(db, limit)
    response_data = AuditLogListResponse(list=items, total=len(items), limit=limit)
    return ApiResponse(code=200, data=response_data.model_dump(mode="json"))


@router.websocket("/logs/stream")
async def stream_logs(
    websocket: WebSocket,
    token: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
    channel: AuditLogChannel = Depends(get_audit_channel),
):
    """实时审计日志：先发送最近日志快照，之后逐条推送新日志；收到 "refresh" 时重发快照

    每次推送和刷新前都重新校验管理员角色，角色被撤销后以 4403 关闭连接。
    """
    try:
        _enforce_origin(websocket.headers.get("origin"))
        account_id = verify_caller(token)
        await load_active_account(db, account_id)
        await require_role(db, account_id, AppRole.ADMIN)
    except HTTPException as exc:
        await websocket.close(code=4000 + exc.status_code, reason=str(exc.detail))
        return

    await websocket.accept()

    # 推送任务和接收循环共用同一个会话
    db_lock = asyncio.Lock()
    closed = False

    async def still_admin() -> bool:
        async with db_lock:
            # 结束上一次读事务，确保读到最新的授权
            await db.rollback()
            try:
                await load_active_account(db, account_id)
                await require_role(db, account_id, AppRole.ADMIN)
            except HTTPException:
                return False
        return True

    async def close_forbidden() -> None:
        nonlocal closed
        if closed:
            return
        closed = True
        logger.info("closing audit log stream of %s: admin role no longer held", account_id)
        await websocket.close(code=4403, reason="无管理员权限")

    async def load_entries(limit: int):
        async with db_lock:
            return await list_entries(db, limit)

    async def send_snapshot(entries):
        if closed:
            return
        await websocket.send_json(
            {"type": "snapshot", "data": [entry.model_dump(mode="json") for entry in entries]}
        )

    async def send_insert(entry):
        if closed:
            return
        if not await still_admin():
            await close_forbidden()
            return
        await websocket.send_json({"type": "insert", "data": entry.model_dump(mode="json")})

    viewer = AuditLogViewer(
        loader=load_entries,
        feed_factory=channel.subscribe,
        limit=settings.AUDIT_LOG_LIST_LIMIT,
        on_insert=send_insert,
        on_refresh=send_snapshot,
    )
    try:
        await viewer.activate()
        while not closed:
            message = await websocket.receive_text()
            if message.strip().lower() != "refresh":
                continue
            if not await still_admin():
                await close_forbidden()
                break
            await viewer.refresh()
    except WebSocketDisconnect:
        pass
    finally:
        await viewer.deactivate()
