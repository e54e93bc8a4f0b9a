from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

# 登录
class LoginRequest(BaseModel):
    email: str = Field(..., max_length=255, description="邮箱")
    password: str = Field(..., min_length=1, max_length=100, description="密码")

# 首个管理员注册（仅在系统中没有任何账号时开放）
class SetupRequest(BaseModel):
    full_name: str = Field(..., min_length=2, max_length=100, description="姓名，2-100字符")
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100, description="密码，6-100字符")
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

# 账号信息
class AccountInfo(BaseModel):
    id: str
    email: str
    fullName: Optional[str] = None
    isAdmin: bool = False
    createdAt: Optional[datetime] = None
    token: Optional[str] = None

    @staticmethod
    def from_account(account, is_admin: bool = False, token: Optional[str] = None):
        return AccountInfo(
            id=account.id,
            email=account.email,
            fullName=account.full_name,
            isAdmin=is_admin,
            createdAt=account.created_at,
            token=token,
        )
