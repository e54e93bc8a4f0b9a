import logging
import os
import uuid
from datetime import datetime
from typing import Optional, Tuple

import aiofiles
from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import InvalidInput

logger = logging.getLogger("app.storage")

PHOTO_BUCKET = "damage-photos"

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}


def _infer_image_extension(content_type: str, content: bytes) -> str:
    lower_type = (content_type or "").lower()
    if lower_type in ALLOWED_IMAGE_TYPES:
        return ALLOWED_IMAGE_TYPES[lower_type]

    # 部分客户端只给 application/octet-stream，按文件头判断
    if content[:3] == b"\xff\xd8\xff":
        return ".jpg"
    if content[:8] == b"\x89PNG\r\n\x1a\n":
        return ".png"
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return ".webp"
    return ""


async def save_photo(upload: UploadFile) -> Tuple[str, str]:
    """保存报告照片，返回 (公开访问URL, 磁盘路径)"""
    # 最多读取上限加一个字节，超出即拒绝
    content = await upload.read(settings.MAX_PHOTO_SIZE + 1)
    if not content:
        raise InvalidInput("照片内容为空")
    if len(content) > settings.MAX_PHOTO_SIZE:
        raise InvalidInput(f"照片大小超过限制({settings.MAX_PHOTO_SIZE // 1024 // 1024}MB)")

    extension = _infer_image_extension(upload.content_type or "", content)
    if not extension:
        raise InvalidInput("仅支持 JPG、PNG 或 WebP 格式的照片")

    month = datetime.now().strftime("%Y%m")
    relative_dir = os.path.join(PHOTO_BUCKET, "reports", month)
    upload_dir = os.path.join(settings.UPLOAD_DIR, relative_dir)
    os.makedirs(upload_dir, exist_ok=True)

    file_name = f"{uuid.uuid4().hex}{extension}"
    file_path = os.path.join(upload_dir, file_name)
    async with aiofiles.open(file_path, "wb") as f:
        await f.write(content)

    public_url = "/uploads/" + "/".join([PHOTO_BUCKET, "reports", month, file_name])
    return public_url, file_path


def remove_photo(file_path: Optional[str]) -> bool:
    """删除磁盘上的照片，失败只记录"""
    if not file_path or not os.path.exists(file_path):
        return False
    try:
        os.remove(file_path)
        return True
    except OSError as exc:
        logger.warning("failed to remove photo %s: %s", file_path, exc)
        return False
