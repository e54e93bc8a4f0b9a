from datetime import datetime
import enum
import json
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from app.schemas.response import ListData


class AuditAction(str, enum.Enum):
    ADD_ADMIN = "add_admin"
    DELETE_ADMIN = "delete_admin"
    RESET_PASSWORD = "reset_password"
    UPDATE_STATUS = "update_status"
    DELETE_REPORT = "delete_report"


class TargetType(str, enum.Enum):
    REPORT = "report"
    ADMIN = "admin"
    USER = "user"


# 每种操作的 details 字段固定，入库时统一序列化为 JSON 对象
class AdminAccountDetails(BaseModel):
    email: Optional[str] = None
    name: Optional[str] = None


class AddAdminDetails(AdminAccountDetails):
    action: Literal["add_admin"] = "add_admin"


class DeleteAdminDetails(AdminAccountDetails):
    action: Literal["delete_admin"] = "delete_admin"


class ResetPasswordDetails(AdminAccountDetails):
    action: Literal["reset_password"] = "reset_password"


class UpdateStatusDetails(BaseModel):
    action: Literal["update_status"] = "update_status"
    status: str
    previous_status: Optional[str] = None
    description: Optional[str] = None


class DeleteReportDetails(BaseModel):
    action: Literal["delete_report"] = "delete_report"
    description: Optional[str] = None
    location: Optional[str] = None
    reporter_name: Optional[str] = None


AuditDetails = Annotated[
    Union[
        AddAdminDetails,
        DeleteAdminDetails,
        ResetPasswordDetails,
        UpdateStatusDetails,
        DeleteReportDetails,
    ],
    Field(discriminator="action"),
]


class AuditLogDraft(BaseModel):
    """待写入的审计日志；id 和 createdAt 由日志本身分配"""

    actor_id: str = Field(..., min_length=1)
    target_type: TargetType
    target_id: Optional[str] = None
    details: AuditDetails

    @property
    def action(self) -> AuditAction:
        return AuditAction(self.details.action)

    def details_payload(self) -> Dict[str, Any]:
        return self.details.model_dump(exclude={"action"}, exclude_none=True)


class AuditLogItem(BaseModel):
    id: int
    adminId: str
    adminName: str
    action: str
    targetType: str
    targetId: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    createdAt: datetime

    @staticmethod
    def from_log(log) -> "AuditLogItem":
        return AuditLogItem(
            id=log.id,
            adminId=log.admin_id,
            adminName=log.admin_name,
            action=log.action,
            targetType=log.target_type,
            targetId=log.target_id,
            details=json.loads(log.details) if log.details else None,
            createdAt=log.created_at,
        )


class AuditLogListResponse(ListData):
    list: List[AuditLogItem]
    limit: int
