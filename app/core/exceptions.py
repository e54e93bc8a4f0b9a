from typing import Optional

from fastapi import HTTPException, status


class DomainError(HTTPException):
    """带默认状态码和提示信息的业务异常"""

    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "请求失败"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.default_detail)


class Unauthorized(DomainError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "请先登录"

    def __init__(self, detail: Optional[str] = None):
        super().__init__(detail)
        self.headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "无管理员权限"


class InvalidInput(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "输入不合法"


class EmailAlreadyExists(DomainError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "邮箱已被注册"


class TargetNotAdmin(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "目标账号不是管理员"


class SelfDeletionForbidden(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "不能删除自己的管理员权限"


class AccountNotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "账号不存在"


class ReportNotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "报告不存在"


class TransientBackendFailure(DomainError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = "服务暂时不可用，请稍后重试"


class AuditLogWriteFailure(Exception):
    """审计日志写入失败；调用方只记录，不向用户暴露"""
