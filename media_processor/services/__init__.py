"""
Сервисы загрузки и распознавания.

Модули:
    - storage: запись файла в хранилище и построение публичного URL
    - batch: параллельная пакетная загрузка с агрегацией результатов
    - ocr_gateway: провайдеры внешнего OCR (Alibaba Cloud, HTTP воркер)
"""

from media_processor.services.batch import BatchCoordinator
from media_processor.services.ocr_gateway import (
    AliyunOCRGateway,
    HTTPOCRGateway,
    OCRGateway,
    OCRService,
    build_ocr_gateway,
)
from media_processor.services.storage import StorageWriter, sanitize_filename

__all__ = [
    "StorageWriter",
    "sanitize_filename",
    "BatchCoordinator",
    "OCRGateway",
    "AliyunOCRGateway",
    "HTTPOCRGateway",
    "OCRService",
    "build_ocr_gateway",
]
