from typing import Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.core.database import Base, enable_sqlite_foreign_keys, get_db
from app.core.security import create_access_token, get_password_hash, pwd_context
from app.models.account import Account
from app.models.user_role import AppRole, UserRole
from app.services.audit_stream import AuditLogChannel, get_audit_channel
from main import app

# 测试中降低 bcrypt 轮数
pwd_context.update(bcrypt__default_rounds=4)


@pytest.fixture
async def session_factory(tmp_path) -> async_sessionmaker[AsyncSession]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def channel() -> AuditLogChannel:
    return AuditLogChannel()


@pytest.fixture
def make_account(session_factory):
    async def _make_account(
        email: str,
        full_name: Optional[str] = "Test Admin",
        password: str = "secret123",
        admin: bool = True,
        is_active: bool = True,
    ) -> str:
        async with session_factory() as session:
            account = Account(
                email=email,
                full_name=full_name,
                password=get_password_hash(password),
                is_active=is_active,
            )
            session.add(account)
            await session.flush()
            if admin:
                session.add(UserRole(user_id=account.id, role=AppRole.ADMIN.value))
            await session.commit()
            return account.id

    return _make_account


@pytest.fixture
def auth_headers():
    def _auth_headers(account_id: str) -> dict:
        return {"Authorization": f"Bearer {create_access_token(data={'sub': account_id})}"}

    return _auth_headers


@pytest.fixture
async def client(session_factory, channel, tmp_path):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    original_upload_dir = settings.UPLOAD_DIR
    original_webhook = settings.SHEETS_WEBHOOK_URL
    settings.UPLOAD_DIR = str(tmp_path / "uploads")
    settings.SHEETS_WEBHOOK_URL = ""

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_audit_channel] = lambda: channel

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as test_client:
        yield test_client

    app.dependency_overrides.clear()
    settings.UPLOAD_DIR = original_upload_dir
    settings.SHEETS_WEBHOOK_URL = original_webhook
