from datetime import datetime
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional, List, Dict

from app.models.damage_report import DamageType, Location, ReportStatus
from app.schemas.response import ListData


class AdminCreate(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @field_validator("full_name", mode="before")
    @classmethod
    def strip_full_name(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            if len(v) > 255:
                raise ValueError("邮箱过长")
        return v

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("两次输入的密码不一致")
        return self


class AdminPasswordReset(BaseModel):
    new_password: str = Field(..., min_length=6, max_length=100)
    confirm_password: str

    @model_validator(mode="after")
    def check_passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("两次输入的密码不一致")
        return self


class AdminItem(BaseModel):
    id: str
    email: str
    fullName: Optional[str]
    isActive: bool
    createdAt: Optional[datetime]
    lastLoginAt: Optional[datetime]


class AdminListResponse(ListData):
    list: List[AdminItem]


class ReportStatusUpdate(BaseModel):
    status: ReportStatus


class AdminReportItem(BaseModel):
    id: str
    reporterName: str
    damageDescription: str
    location: Location
    locationLabel: str
    damageType: DamageType
    photoUrl: Optional[str]
    status: ReportStatus
    createdAt: Optional[datetime]
    updatedAt: Optional[datetime]


class AdminReportListResponse(ListData):
    list: List[AdminReportItem]
    page: int
    pageSize: int


class AdminStatsResponse(BaseModel):
    totalReports: int
    todayReports: int
    byLocation: Dict[str, int]
    byStatus: Dict[str, int]
