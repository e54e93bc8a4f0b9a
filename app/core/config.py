from pydantic_settings import BaseSettings
from typing import List

class Settings(BaseSettings):
    # 数据库配置
    DATABASE_URL: str = "sqlite+aiosqlite:///./app.db"
    DATABASE_ECHO: bool = False

    # JWT配置
    SECRET_KEY: str = "your-secret-key-change-in-production-min-32-characters-long"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24小时

    # 照片存储
    UPLOAD_DIR: str = "./uploads"
    MAX_PHOTO_SIZE: int = 5 * 1024 * 1024  # 5MB

    # CORS
    CORS_ORIGINS: List[str] = ["*"]

    # 管理后台配置
    ADMIN_ALLOWED_ORIGINS: List[str] = ["*"]

    # 审计日志
    AUDIT_LOG_LIST_LIMIT: int = 100
    AUDIT_LOG_POLL_INTERVAL_SECONDS: float = 5.0

    # Google Sheets webhook（为空则不导出）
    SHEETS_WEBHOOK_URL: str = ""
    SHEETS_TIMEOUT_SECONDS: int = 15

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

settings = Settings()
