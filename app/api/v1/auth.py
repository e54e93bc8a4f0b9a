from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import func, select
from datetime import datetime, timezone
import logging

from app.core.database import get_db
from app.core.exceptions import EmailAlreadyExists, Forbidden, Unauthorized
from app.core.security import (
    verify_password,
    get_password_hash,
    create_access_token,
    get_current_account
)
from app.models.account import Account
from app.models.user_role import AppRole
from app.schemas.auth import LoginRequest, SetupRequest, AccountInfo
from app.schemas.response import ApiResponse
from app.services.admin_actions import find_account_by_email
from app.services.authorizer import grant_role, has_role

router = APIRouter()
logger = logging.getLogger("app.auth")


async def _setup_required(db: AsyncSession) -> bool:
    total = (await db.execute(select(func.count()).select_from(Account))).scalar_one()
    return total == 0


@router.get("/setup", response_model=ApiResponse)
async def get_setup_state(db: AsyncSession = Depends(get_db)):
    """系统中还没有任何账号时，允许注册第一个管理员"""
    return ApiResponse(code=200, data={"setupRequired": await _setup_required(db)})


@router.post("/setup", response_model=ApiResponse)
async def setup_first_admin(payload: SetupRequest, db: AsyncSession = Depends(get_db)):
    """注册第一个管理员"""
    if not await _setup_required(db):
        raise Forbidden("系统已初始化，请联系管理员创建账号")
    if await find_account_by_email(db, payload.email):
        raise EmailAlreadyExists()

    account = Account(
        email=payload.email,
        password=get_password_hash(payload.password),
        full_name=payload.full_name,
    )
    db.add(account)
    await db.flush()
    # 同一事务内再次确认，并发初始化时只保留一个管理员
    total = (await db.execute(select(func.count()).select_from(Account))).scalar_one()
    if total != 1:
        await db.rollback()
        raise Forbidden("系统已初始化，请联系管理员创建账号")
    await grant_role(db, account.id, AppRole.ADMIN)
    await db.commit()
    await db.refresh(account)
    logger.info("first admin account %s created", account.id)

    token = create_access_token(data={"sub": account.id})
    return ApiResponse(
        code=200,
        message="管理员账号创建成功",
        data=AccountInfo.from_account(account, is_admin=True, token=token).model_dump(),
    )


@router.post("/login", response_model=ApiResponse)
async def login(payload: LoginRequest, db: AsyncSession = Depends(get_db)):
    """邮箱密码登录"""
    account = await find_account_by_email(db, payload.email)
    if not account or not verify_password(payload.password, account.password):
        raise Unauthorized("邮箱或密码错误")

    if not account.is_active:
        raise Forbidden("用户已被禁用")

    account.last_login_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(account)

    token = create_access_token(data={"sub": account.id})
    is_admin = await has_role(db, account.id, AppRole.ADMIN)
    return ApiResponse(
        code=200,
        message="登录成功",
        data=AccountInfo.from_account(account, is_admin=is_admin, token=token).model_dump(),
    )


@router.get("/profile", response_model=ApiResponse)
async def get_profile(
    current_account: Account = Depends(get_current_account),
    db: AsyncSession = Depends(get_db),
):
    """获取当前账号信息"""
    is_admin = await has_role(db, current_account.id, AppRole.ADMIN)
    return ApiResponse(
        code=200,
        data=AccountInfo.from_account(current_account, is_admin=is_admin).model_dump(),
    )


@router.post("/logout", response_model=ApiResponse)
async def logout(current_account: Account = Depends(get_current_account)):
    """退出登录"""
    return ApiResponse(
        code=200,
        message="退出成功"
    )
