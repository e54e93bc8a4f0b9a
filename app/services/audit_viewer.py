"""审计日志查看器

启动时先订阅再拉取最近的日志，之后把推送来的新日志插到最前面。
推送按"至少一次"对待，按 id 去重；快照已满时，早于快照中最小 id 的日志
不在查看范围内，直接忽略。手动刷新直接整体替换。
"""
import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Set

from sqlalchemy.ext.asyncio import AsyncSession

from app.schemas.audit import AuditLogItem
from app.services.audit_log import list_entries_after

logger = logging.getLogger("app.audit")

Loader = Callable[[int], Awaitable[List[AuditLogItem]]]
FeedFactory = Callable[[], AsyncIterator[AuditLogItem]]
InsertCallback = Callable[[AuditLogItem], Awaitable[None]]
RefreshCallback = Callable[[List[AuditLogItem]], Awaitable[None]]


async def poll_audit_log(
    session_factory: Callable[[], AsyncSession],
    interval: float,
    after_id: int = 0,
) -> AsyncIterator[AuditLogItem]:
    """按 id 递增轮询新日志，可替代 AuditLogChannel.subscribe() 作为数据源"""
    last_id = after_id
    while True:
        async with session_factory() as db:
            items = await list_entries_after(db, last_id)
        for item in items:
            last_id = max(last_id, item.id)
            yield item
        await asyncio.sleep(interval)


class AuditLogViewer:
    def __init__(
        self,
        loader: Loader,
        feed_factory: FeedFactory,
        limit: int = 100,
        on_insert: Optional[InsertCallback] = None,
        on_refresh: Optional[RefreshCallback] = None,
    ):
        self._loader = loader
        self._feed_factory = feed_factory
        self._on_insert = on_insert
        self._on_refresh = on_refresh
        self.limit = limit
        self.entries: List[AuditLogItem] = []
        self._seen_ids: Set[int] = set()
        self._floor_id = 0
        self._feed: Optional[AsyncIterator[AuditLogItem]] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def active(self) -> bool:
        return self._feed is not None

    async def activate(self) -> List[AuditLogItem]:
        if self.active:
            return self.entries
        # 先订阅，避免拉取和订阅之间写入的日志丢失
        self._feed = self._feed_factory()
        try:
            await self.refresh()
        except Exception:
            await self.deactivate()
            raise
        self._task = asyncio.create_task(self._consume(self._feed))
        return self.entries

    async def refresh(self) -> List[AuditLogItem]:
        entries = await self._loader(self.limit)
        self.entries = list(entries)
        self._seen_ids = {entry.id for entry in self.entries}
        full = len(self.entries) >= self.limit
        self._floor_id = min(self._seen_ids) if full and self._seen_ids else 0
        if self._on_refresh is not None:
            await self._on_refresh(self.entries)
        return self.entries

    def apply(self, entry: AuditLogItem) -> bool:
        """把新日志插到最前面，重复投递或早于查看范围时返回 False"""
        if entry.id in self._seen_ids or entry.id <= self._floor_id:
            return False
        self._seen_ids.add(entry.id)
        self.entries.insert(0, entry)
        return True

    async def _consume(self, feed: AsyncIterator[AuditLogItem]) -> None:
        async for entry in feed:
            if self.apply(entry) and self._on_insert is not None:
                await self._on_insert(entry)

    async def deactivate(self) -> None:
        task, feed = self._task, self._feed
        self._task = None
        self._feed = None
        if task is not None:
            if not task.done():
                task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as exc:
                logger.warning("audit log feed stopped with error: %s", exc)
        if feed is not None:
            aclose = getattr(feed, "aclose", None)
            if aclose is not None:
                await aclose()

    async def __aenter__(self) -> "AuditLogViewer":
        await self.activate()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.deactivate()
