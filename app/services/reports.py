import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ReportNotFound
from app.models.damage_report import DamageReport, Location, ReportStatus
from app.models.user_role import AppRole
from app.schemas.audit import AuditLogDraft, DeleteReportDetails, TargetType, UpdateStatusDetails
from app.schemas.report import DamageReportCreate
from app.services.admin_actions import commit_mutation
from app.services.audit_log import record_admin_action
from app.services.audit_stream import AuditLogChannel
from app.services.authorizer import require_role
from app.services.photo_storage import remove_photo

logger = logging.getLogger("app.reports")


def _report_conditions(
    location: Optional[Location] = None,
    status: Optional[ReportStatus] = None,
    keyword: Optional[str] = None,
    include_reporter: bool = False,
) -> list:
    conditions = []
    if location:
        conditions.append(DamageReport.location == location)
    if status:
        conditions.append(DamageReport.status == status)
    if keyword:
        like = f"%{keyword}%"
        if include_reporter:
            conditions.append(
                or_(DamageReport.reporter_name.like(like), DamageReport.damage_description.like(like))
            )
        else:
            conditions.append(DamageReport.damage_description.like(like))
    return conditions


async def create_report(
    db: AsyncSession,
    payload: DamageReportCreate,
    photo_url: Optional[str] = None,
    photo_path: Optional[str] = None,
) -> DamageReport:
    report = DamageReport(
        reporter_name=payload.reporter_name,
        damage_description=payload.damage_description,
        location=payload.location,
        damage_type=payload.damage_type,
        photo_url=photo_url,
        photo_path=photo_path,
        status=ReportStatus.PENDING,
    )
    db.add(report)
    await db.commit()
    await db.refresh(report)
    return report


async def list_reports(
    db: AsyncSession,
    location: Optional[Location] = None,
    status: Optional[ReportStatus] = None,
    keyword: Optional[str] = None,
    page: Optional[int] = None,
    page_size: Optional[int] = None,
    include_reporter: bool = False,
) -> Tuple[List[DamageReport], int]:
    conditions = _report_conditions(location, status, keyword, include_reporter)

    count_stmt = select(func.count()).select_from(DamageReport)
    data_stmt = select(DamageReport)
    if conditions:
        count_stmt = count_stmt.where(and_(*conditions))
        data_stmt = data_stmt.where(and_(*conditions))

    total = (await db.execute(count_stmt)).scalar_one()
    data_stmt = data_stmt.order_by(desc(DamageReport.created_at), desc(DamageReport.id))
    if page and page_size:
        data_stmt = data_stmt.offset((page - 1) * page_size).limit(page_size)
    rows = (await db.execute(data_stmt)).scalars().all()
    return list(rows), total


async def get_report(db: AsyncSession, report_id: str) -> DamageReport:
    report = (
        await db.execute(select(DamageReport).where(DamageReport.id == report_id))
    ).scalar_one_or_none()
    if report is None:
        raise ReportNotFound()
    return report


async def update_report_status(
    db: AsyncSession,
    caller_id: str,
    report_id: str,
    status: ReportStatus,
    channel: Optional[AuditLogChannel] = None,
) -> DamageReport:
    await require_role(db, caller_id, AppRole.ADMIN)
    report = await get_report(db, report_id)
    previous_status = report.status

    report.status = status
    await commit_mutation(db)
    await db.refresh(report)

    await record_admin_action(
        db,
        AuditLogDraft(
            actor_id=caller_id,
            target_type=TargetType.REPORT,
            target_id=report_id,
            details=UpdateStatusDetails(
                status=status.value,
                previous_status=previous_status.value if previous_status else None,
                description=report.damage_description[:100],
            ),
        ),
        channel,
    )
    return report


async def delete_report(
    db: AsyncSession,
    caller_id: str,
    report_id: str,
    channel: Optional[AuditLogChannel] = None,
) -> None:
    await require_role(db, caller_id, AppRole.ADMIN)
    report = await get_report(db, report_id)
    details = DeleteReportDetails(
        description=report.damage_description[:100],
        location=report.location.value,
        reporter_name=report.reporter_name,
    )
    photo_path = report.photo_path

    await db.delete(report)
    await commit_mutation(db)
    remove_photo(photo_path)

    logger.info("admin %s deleted report %s", caller_id, report_id)
    await record_admin_action(
        db,
        AuditLogDraft(
            actor_id=caller_id,
            target_type=TargetType.REPORT,
            target_id=report_id,
            details=details,
        ),
        channel,
    )


async def report_stats(db: AsyncSession) -> Dict[str, object]:
    total = (await db.execute(select(func.count()).select_from(DamageReport))).scalar_one()

    # created_at 由数据库以 UTC 写入
    today_start = datetime.now(timezone.utc).replace(tzinfo=None, hour=0, minute=0, second=0, microsecond=0)
    today = (
        await db.execute(
            select(func.count()).select_from(DamageReport).where(
                DamageReport.created_at >= today_start,
                DamageReport.created_at < today_start + timedelta(days=1),
            )
        )
    ).scalar_one()

    by_location = {item.value: 0 for item in Location}
    rows = await db.execute(select(DamageReport.location, func.count()).group_by(DamageReport.location))
    for location, count in rows.all():
        by_location[location.value] = count

    by_status = {item.value: 0 for item in ReportStatus}
    rows = await db.execute(select(DamageReport.status, func.count()).group_by(DamageReport.status))
    for status, count in rows.all():
        by_status[status.value] = count

    return {
        "totalReports": total,
        "todayReports": today,
        "byLocation": by_location,
        "byStatus": by_status,
    }
