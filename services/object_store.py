"""
本地对象存储：bucket 目录 + 公网 URL
"""
import random
import time
from pathlib import Path
from typing import Optional

from core.config import get_settings
from core.exceptions import ValidationFailedError
from core.logger import get_logger

logger = get_logger(__name__)

PRODUCT_IMAGES_BUCKET = "product-images"
FEEDBACK_IMAGES_BUCKET = "feedback-images"
HUB_IMAGES_BUCKET = "hub-images"

ALLOWED_IMAGE_EXTS = {"jpg", "jpeg", "png", "gif", "webp", "bmp"}


def random_object_name(filename: str, prefix: str = "prod") -> str:
    """prod_<毫秒时间戳>_<随机串>.<ext>"""
    ext = Path(filename or "").suffix.lstrip(".").lower() or "bin"
    token = "".join(random.choices("abcdefghijklmnopqrstuvwxyz0123456789", k=8))
    return f"{prefix}_{int(time.time() * 1000)}_{token}.{ext}"


class LocalObjectStore:
    def __init__(self, root: str, public_base_url: str, max_size: Optional[int] = None):
        self.root = Path(root)
        self.public_base_url = public_base_url.rstrip("/")
        self.max_size = max_size

    @classmethod
    def from_settings(cls) -> "LocalObjectStore":
        settings = get_settings()
        return cls(settings.STORAGE__ROOT, settings.STORAGE__PUBLIC_BASE_URL, settings.MAX_UPLOAD_SIZE)

    def upload(self, bucket: str, filename: str, data: bytes, prefix: str = "prod") -> str:
        """Stores ``data`` under a randomized name and returns its public URL."""
        ext = Path(filename or "").suffix.lstrip(".").lower()
        if ext not in ALLOWED_IMAGE_EXTS:
            raise ValidationFailedError(f"不支持的图片格式: {ext or '(none)'}")
        if not data:
            raise ValidationFailedError("文件为空")
        if self.max_size and len(data) > self.max_size:
            raise ValidationFailedError("文件过大")

        name = random_object_name(filename, prefix=prefix)
        target_dir = self.root / bucket
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / name).write_bytes(data)
        logger.info("Object stored", bucket=bucket, name=name, size=len(data))
        return self.get_public_url(bucket, name)

    def get_public_url(self, bucket: str, name: str) -> str:
        return f"{self.public_base_url}/{bucket}/{name}"


def get_object_store() -> LocalObjectStore:
    return LocalObjectStore.from_settings()
