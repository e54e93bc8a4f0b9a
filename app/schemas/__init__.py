from app.schemas.response import ApiResponse, ListData
from app.schemas.auth import LoginRequest, SetupRequest, AccountInfo
from app.schemas.report import (
    DamageReportCreate,
    PublicReportItem,
    PublicReportListResponse,
    ReportSubmitResponse,
)
from app.schemas.admin import (
    AdminCreate,
    AdminPasswordReset,
    AdminItem,
    AdminListResponse,
    ReportStatusUpdate,
    AdminReportItem,
    AdminReportListResponse,
    AdminStatsResponse,
)
from app.schemas.audit import (
    AuditAction,
    TargetType,
    AuditLogDraft,
    AuditLogItem,
    AuditLogListResponse,
)
