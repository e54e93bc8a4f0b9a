"""审计日志 WebSocket 推送"""
import pytest
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from starlette.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

import main
from app.core.database import enable_sqlite_foreign_keys, get_db
from app.core.security import create_access_token, get_password_hash
from app.models.account import Account
from app.models.user_role import AppRole, UserRole
from app.schemas.audit import AuditLogDraft, DeleteAdminDetails, TargetType
from app.services.admin_actions import delete_admin_role
from app.services.audit_log import append_entry
from app.services.audit_stream import AuditLogChannel, get_audit_channel
from app.services.authorizer import revoke_role


@pytest.fixture
def ws_client(tmp_path, monkeypatch):
    # 引擎只在 TestClient 的事件循环中使用
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ws.db'}")
    enable_sqlite_foreign_keys(engine)
    session_factory = async_sessionmaker(engine, expire_on_commit=False)
    channel = AuditLogChannel()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    monkeypatch.setattr(main, "engine", engine)
    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[get_audit_channel] = lambda: channel

    with TestClient(main.app) as client:
        yield client, session_factory, channel

    main.app.dependency_overrides.clear()


def _seed_account(client, session_factory, email: str, admin: bool = True) -> str:
    async def seed() -> str:
        async with session_factory() as session:
            account = Account(email=email, full_name="Budi", password=get_password_hash("secret123"))
            session.add(account)
            await session.flush()
            if admin:
                session.add(UserRole(user_id=account.id, role=AppRole.ADMIN.value))
            await session.commit()
            return account.id

    return client.portal.call(seed)


def test_stream_requires_token(ws_client) -> None:
    client, _, _ = ws_client

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/api/v1/admin/logs/stream"):
            pass

    assert exc_info.value.code == 4401


def test_stream_rejects_non_admin(ws_client) -> None:
    client, session_factory, _ = ws_client
    user_id = _seed_account(client, session_factory, "warga@kampus.ac.id", admin=False)
    token = create_access_token(data={"sub": user_id})

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"/api/v1/admin/logs/stream?token={token}"):
            pass

    assert exc_info.value.code == 4403


def test_stream_sends_snapshot_and_inserts(ws_client) -> None:
    client, session_factory, channel = ws_client
    admin_id = _seed_account(client, session_factory, "budi@kampus.ac.id")
    token = create_access_token(data={"sub": admin_id})

    async def append(target_id: str):
        async with session_factory() as session:
            return await append_entry(
                session,
                AuditLogDraft(
                    actor_id=admin_id,
                    target_type=TargetType.ADMIN,
                    target_id=target_id,
                    details=DeleteAdminDetails(email="siti@kampus.ac.id", name="Siti"),
                ),
                channel,
            )

    first = client.portal.call(append, "acct_1")

    with client.websocket_connect(f"/api/v1/admin/logs/stream?token={token}") as websocket:
        snapshot = websocket.receive_json()
        assert snapshot["type"] == "snapshot"
        assert [entry["id"] for entry in snapshot["data"]] == [first.id]

        second = client.portal.call(append, "acct_2")
        insert = websocket.receive_json()
        assert insert["type"] == "insert"
        assert insert["data"]["id"] == second.id
        assert insert["data"]["action"] == "delete_admin"

        websocket.send_text("refresh")
        refreshed = websocket.receive_json()
        assert refreshed["type"] == "snapshot"
        assert [entry["id"] for entry in refreshed["data"]] == [second.id, first.id]


def test_stream_closes_when_role_is_revoked(ws_client) -> None:
    client, session_factory, channel = ws_client
    watcher_id = _seed_account(client, session_factory, "budi@kampus.ac.id")
    other_id = _seed_account(client, session_factory, "siti@kampus.ac.id")
    token = create_access_token(data={"sub": watcher_id})

    async def revoke_watcher() -> None:
        async with session_factory() as session:
            await delete_admin_role(session, other_id, watcher_id, channel)

    with client.websocket_connect(f"/api/v1/admin/logs/stream?token={token}") as websocket:
        assert websocket.receive_json()["type"] == "snapshot"

        client.portal.call(revoke_watcher)

        # 撤销操作本身的日志不能再推送给被撤销的账号
        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 4403


def test_stream_refresh_after_revocation(ws_client) -> None:
    client, session_factory, _ = ws_client
    watcher_id = _seed_account(client, session_factory, "budi@kampus.ac.id")
    token = create_access_token(data={"sub": watcher_id})

    async def revoke_silently() -> None:
        async with session_factory() as session:
            await revoke_role(session, watcher_id, AppRole.ADMIN)
            await session.commit()

    with client.websocket_connect(f"/api/v1/admin/logs/stream?token={token}") as websocket:
        assert websocket.receive_json()["type"] == "snapshot"

        client.portal.call(revoke_silently)
        websocket.send_text("refresh")

        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()

    assert exc_info.value.code == 4403
