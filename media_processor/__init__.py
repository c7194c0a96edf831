"""
Media Processor — сервис загрузки изображений и распознавания текста.

Принимает изображения (по одному или пакетом), сохраняет их в каталог
хранилища под уникальными именами, возвращает публичные URL и
передаёт URL изображения во внешний OCR сервис.
"""

from media_processor.config import Settings
from media_processor.schemas import (
    BatchResult,
    BatchUploadResponse,
    StoredObject,
    UploadItem,
    UploadResponse,
)

__all__ = [
    "Settings",
    "UploadItem",
    "StoredObject",
    "BatchResult",
    "UploadResponse",
    "BatchUploadResponse",
]
