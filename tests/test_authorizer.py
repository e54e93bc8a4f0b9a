"""令牌校验与角色授权"""
from datetime import timedelta

import pytest
from jose import jwt

from app.core.config import settings
from app.core.exceptions import Forbidden, Unauthorized
from app.core.security import create_access_token, load_active_account, verify_caller
from app.models.user_role import AppRole
from app.services.authorizer import grant_role, has_role, list_role_members, require_role, revoke_role


def test_verify_caller_returns_subject() -> None:
    token = create_access_token(data={"sub": "acct_budi"})
    assert verify_caller(token) == "acct_budi"


@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
def test_verify_caller_rejects_missing_or_garbage(token) -> None:
    with pytest.raises(Unauthorized) as exc_info:
        verify_caller(token)
    assert exc_info.value.status_code == 401


def test_verify_caller_rejects_expired_token() -> None:
    token = create_access_token(data={"sub": "acct_budi"}, expires_delta=timedelta(minutes=-5))
    with pytest.raises(Unauthorized):
        verify_caller(token)


def test_verify_caller_rejects_token_without_subject() -> None:
    token = jwt.encode({"role": "admin"}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    with pytest.raises(Unauthorized):
        verify_caller(token)


def test_verify_caller_rejects_foreign_signature() -> None:
    token = jwt.encode({"sub": "acct_budi"}, "another-secret", algorithm=settings.ALGORITHM)
    with pytest.raises(Unauthorized):
        verify_caller(token)


async def test_load_active_account(db, make_account) -> None:
    active_id = await make_account("budi@kampus.ac.id")
    inactive_id = await make_account("siti@kampus.ac.id", is_active=False)

    assert (await load_active_account(db, active_id)).id == active_id
    with pytest.raises(Forbidden):
        await load_active_account(db, inactive_id)
    with pytest.raises(Unauthorized):
        await load_active_account(db, "acct_missing")


async def test_require_role(db, make_account) -> None:
    admin_id = await make_account("budi@kampus.ac.id")
    user_id = await make_account("siti@kampus.ac.id", admin=False)

    await require_role(db, admin_id, AppRole.ADMIN)
    with pytest.raises(Forbidden) as exc_info:
        await require_role(db, user_id, AppRole.ADMIN)
    assert exc_info.value.status_code == 403


async def test_grant_role_is_idempotent(db, make_account) -> None:
    account_id = await make_account("siti@kampus.ac.id", admin=False)

    await grant_role(db, account_id, AppRole.ADMIN)
    await grant_role(db, account_id, "admin")
    await db.commit()

    assert await has_role(db, account_id, AppRole.ADMIN)
    assert await list_role_members(db, AppRole.ADMIN) == [account_id]


async def test_revoke_role(db, make_account) -> None:
    account_id = await make_account("budi@kampus.ac.id")

    assert await revoke_role(db, account_id, AppRole.ADMIN) is True
    await db.commit()
    assert await revoke_role(db, account_id, AppRole.ADMIN) is False
    assert not await has_role(db, account_id, AppRole.ADMIN)


async def test_role_check_reads_current_grants(db, make_account) -> None:
    account_id = await make_account("budi@kampus.ac.id")
    await require_role(db, account_id)

    await revoke_role(db, account_id, AppRole.ADMIN)
    await db.commit()

    with pytest.raises(Forbidden):
        await require_role(db, account_id)
