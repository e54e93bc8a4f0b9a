"""审计日志的实时推送

AuditLogChannel 是进程内的广播通道：每个订阅者拥有自己的队列，
新日志按提交顺序投递。订阅句柄本身是异步迭代器，关闭后停止投递。
轮询实现见 audit_viewer.poll_audit_log。
"""
import asyncio
import logging
from typing import Set

from app.schemas.audit import AuditLogItem

logger = logging.getLogger("app.audit")

_CLOSED = object()


class AuditLogSubscription:
    def __init__(self, channel: "AuditLogChannel"):
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def _deliver(self, item: AuditLogItem) -> None:
        if not self.closed:
            self._queue.put_nowait(item)

    def __aiter__(self) -> "AuditLogSubscription":
        return self

    async def __anext__(self) -> AuditLogItem:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._channel._discard(self)
        self._queue.put_nowait(_CLOSED)

    async def aclose(self) -> None:
        self.close()

    async def __aenter__(self) -> "AuditLogSubscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class AuditLogChannel:
    def __init__(self):
        self._subscribers: Set[AuditLogSubscription] = set()

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> AuditLogSubscription:
        subscription = AuditLogSubscription(self)
        self._subscribers.add(subscription)
        return subscription

    def publish(self, item: AuditLogItem) -> None:
        logger.debug("publish audit log id=%s to %s subscribers", item.id, len(self._subscribers))
        for subscription in list(self._subscribers):
            subscription._deliver(item)

    def _discard(self, subscription: AuditLogSubscription) -> None:
        self._subscribers.discard(subscription)


audit_channel = AuditLogChannel()


def get_audit_channel() -> AuditLogChannel:
    return audit_channel
