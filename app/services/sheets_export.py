"""把新提交的报告推送到 Google Sheets webhook

导出在后台任务中执行：调用方不等待结果，不重试，
失败只写日志，报告提交本身不受影响。
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

import httpx

from app.core.config import settings
from app.models.damage_report import DamageType, LOCATION_LABELS

logger = logging.getLogger("app.sheets")

# 任务完成前保留引用
_background_tasks: Set[asyncio.Task] = set()


def build_sheet_row(
    reporter_name: str,
    damage_description: str,
    location: str,
    damage_type: Optional[str],
    photo_url: Optional[str],
    created_at: Optional[str] = None,
) -> Dict[str, Any]:
    allowed_types = {item.value for item in DamageType}
    now = datetime.now(timezone.utc).isoformat()
    return {
        "reporter_name": (reporter_name or "").strip()[:200],
        "damage_description": (damage_description or "").strip()[:2000],
        "location": (location or "").strip()[:100],
        "damage_type": damage_type if damage_type in allowed_types else DamageType.LAINNYA.value,
        "photo_url": str(photo_url)[:500] if photo_url else "",
        "created_at": created_at or now,
        "timestamp": now,
    }


def row_from_report(report) -> Dict[str, Any]:
    location_label = LOCATION_LABELS.get(report.location, str(report.location))
    created_at = report.created_at.isoformat() if report.created_at else None
    damage_type = getattr(report.damage_type, "value", report.damage_type)
    return build_sheet_row(
        report.reporter_name,
        report.damage_description,
        location_label,
        damage_type,
        report.photo_url,
        created_at,
    )


async def send_to_sheets(row: Dict[str, Any]) -> bool:
    webhook_url = settings.SHEETS_WEBHOOK_URL
    if not webhook_url:
        logger.debug("SHEETS_WEBHOOK_URL not configured, skip export")
        return False

    try:
        async with httpx.AsyncClient(timeout=settings.SHEETS_TIMEOUT_SECONDS) as client:
            resp = await client.post(webhook_url, json=row)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.error("Google Sheets webhook error: %s", e.response.text if e.response is not None else e)
        return False
    except httpx.HTTPError as e:
        logger.error("Google Sheets webhook request failed: %s", e)
        return False

    logger.info("report exported to Google Sheets location=%s", row.get("location"))
    return True


def _on_export_done(task: asyncio.Task) -> None:
    _background_tasks.discard(task)
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Google Sheets export crashed: %r", exc)


def dispatch_to_sheets(row: Dict[str, Any]) -> Optional[asyncio.Task]:
    """启动后台导出任务并立即返回，不等待也不传播错误"""
    if not settings.SHEETS_WEBHOOK_URL:
        return None
    task = asyncio.create_task(send_to_sheets(row))
    _background_tasks.add(task)
    task.add_done_callback(_on_export_done)
    return task
