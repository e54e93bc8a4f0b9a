from datetime import datetime
from pydantic import BaseModel, Field, field_validator
from typing import Optional, List

from app.models.damage_report import DamageType, Location, ReportStatus, LOCATION_LABELS
from app.schemas.response import ListData

# 公开提交的损坏报告
class DamageReportCreate(BaseModel):
    reporter_name: str = Field(..., min_length=1, max_length=100, description="报告人姓名")
    damage_description: str = Field(..., min_length=10, max_length=1000, description="损坏描述，10-1000字符")
    location: Location
    damage_type: DamageType

    @field_validator("reporter_name", "damage_description", mode="before")
    @classmethod
    def strip_text(cls, v):
        return v.strip() if isinstance(v, str) else v

# 公开列表项（不包含报告人姓名）
class PublicReportItem(BaseModel):
    id: str
    damageDescription: str
    location: Location
    locationLabel: str
    damageType: DamageType
    photoUrl: Optional[str] = None
    status: ReportStatus
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @staticmethod
    def from_report(report):
        return PublicReportItem(
            id=report.id,
            damageDescription=report.damage_description,
            location=report.location,
            locationLabel=LOCATION_LABELS.get(report.location, report.location),
            damageType=report.damage_type,
            photoUrl=report.photo_url,
            status=report.status,
            createdAt=report.created_at,
            updatedAt=report.updated_at,
        )

class PublicReportListResponse(ListData):
    list: List[PublicReportItem]

# 提交成功响应
class ReportSubmitResponse(BaseModel):
    id: str
    status: ReportStatus
    photoUrl: Optional[str] = None
    createdAt: Optional[datetime] = None
