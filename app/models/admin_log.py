from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Integer, Text
from app.core.database import Base


def _utcnow() -> datetime:
    # 以无时区的 UTC 时间存储，SQLite 不保留时区信息
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AdminLog(Base):
    """管理员操作审计日志，只追加，不更新不删除"""

    __tablename__ = "admin_logs"

    # 自增主键同时作为同一时间戳内的插入顺序
    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_id = Column(String(50), nullable=False, index=True)
    admin_name = Column(String(255), nullable=False)
    action = Column(String(50), nullable=False)
    target_type = Column(String(20), nullable=False)
    target_id = Column(String(50), nullable=True)
    details = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow, index=True)
