from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.database import get_db
from app.core.exceptions import InvalidInput
from app.models.damage_report import Location, ReportStatus
from app.schemas.report import (
    DamageReportCreate,
    PublicReportItem,
    PublicReportListResponse,
    ReportSubmitResponse,
)
from app.schemas.response import ApiResponse
from app.services.photo_storage import remove_photo, save_photo
from app.services.reports import create_report, list_reports
from app.services.sheets_export import dispatch_to_sheets, row_from_report

router = APIRouter()


@router.post("", response_model=ApiResponse)
async def submit_report(
    reporter_name: str = Form(...),
    damage_description: str = Form(...),
    location: str = Form(...),
    damage_type: str = Form(...),
    photo: Optional[UploadFile] = File(default=None),
    db: AsyncSession = Depends(get_db),
):
    """公开提交损坏报告（无需登录）"""
    try:
        payload = DamageReportCreate(
            reporter_name=reporter_name,
            damage_description=damage_description,
            location=location,
            damage_type=damage_type,
        )
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        raise InvalidInput(f"{field}: {first.get('msg')}")

    photo_url, photo_path = None, None
    if photo is not None and photo.filename:
        photo_url, photo_path = await save_photo(photo)

    try:
        report = await create_report(db, payload, photo_url, photo_path)
    except Exception:
        remove_photo(photo_path)
        raise

    # 后台导出到 Google Sheets，不等待结果
    dispatch_to_sheets(row_from_report(report))

    data = ReportSubmitResponse(
        id=report.id,
        status=report.status,
        photoUrl=report.photo_url,
        createdAt=report.created_at,
    )
    return ApiResponse(code=200, message="报告提交成功", data=data.model_dump())


@router.get("", response_model=ApiResponse)
async def list_public_reports(
    location: Optional[Location] = Query(default=None),
    status: Optional[ReportStatus] = Query(default=None),
    keyword: Optional[str] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """公开报告列表，不包含报告人姓名"""
    rows, total = await list_reports(db, location=location, status=status, keyword=keyword)
    data = PublicReportListResponse(list=[PublicReportItem.from_report(r) for r in rows], total=total)
    return ApiResponse(code=200, data=data.model_dump())


@router.get("/completed", response_model=ApiResponse)
async def list_completed_reports(
    location: Optional[Location] = Query(default=None),
    db: AsyncSession = Depends(get_db),
):
    """已完成的报告"""
    rows, total = await list_reports(db, location=location, status=ReportStatus.COMPLETED)
    data = PublicReportListResponse(list=[PublicReportItem.from_report(r) for r in rows], total=total)
    return ApiResponse(code=200, data=data.model_dump())
