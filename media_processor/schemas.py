"""
Схемы данных сервиса загрузки медиа.

Включает:
    - Pydantic модели для API (ответы загрузки, запрос OCR)
    - Внутренние dataclass'ы: элемент загрузки, сохранённый файл,
      агрегированный результат пакетной загрузки
"""

import threading
from dataclasses import dataclass, field
from typing import BinaryIO, Callable, Optional

from pydantic import BaseModel, Field


# =============================================================================
# Pydantic модели для API
# =============================================================================


class UploadResponse(BaseModel):
    """Ответ на загрузку одного файла."""

    url: str = Field(description="Публичный URL сохранённого файла")


class BatchUploadResponse(BaseModel):
    """
    Ответ на пакетную загрузку.

    Каждый файл запроса попадает ровно в одно из полей.
    Порядок urls не совпадает с порядком файлов в запросе.

    Attributes:
        urls: публичные URL успешно сохранённых файлов
        errors: {исходное имя файла: сообщение об ошибке}, не выводится если пусто
    """

    urls: list[str] = []
    errors: Optional[dict[str, str]] = None


class OCRRequest(BaseModel):
    """
    Запрос на распознавание текста.

    url не помечен обязательным на уровне схемы: отсутствие
    проверяется в обработчике, чтобы вернуть единый формат ошибки.
    """

    url: Optional[str] = Field(
        default=None,
        description="URL изображения для распознавания",
    )


# =============================================================================
# Внутренние структуры
# =============================================================================


@dataclass
class UploadItem:
    """
    Один файл из запроса на загрузку.

    Attributes:
        filename: исходное имя файла от клиента (может повторяться)
        opener: функция, открывающая поток байтов файла
        size: размер в байтах, если известен заранее
    """

    filename: str
    opener: Callable[[], BinaryIO]
    size: Optional[int] = None


@dataclass(frozen=True)
class StoredObject:
    """
    Файл, сохранённый в хранилище.

    Attributes:
        filename: сгенерированное имя {time_ns}-{base_name}
        path: абсолютный путь к файлу
        url: публичный URL (префикс + filename)
        size_bytes: количество записанных байт
    """

    filename: str
    path: str
    url: str
    size_bytes: int


@dataclass
class BatchResult:
    """
    Агрегированный результат пакетной загрузки.

    Воркеры пишут только через add_url/add_error, под общей блокировкой.
    Читать поля можно после завершения всех воркеров.
    """

    urls: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def add_url(self, url: str) -> None:
        with self._lock:
            self.urls.append(url)

    def add_error(self, filename: str, message: str) -> None:
        with self._lock:
            self.errors[filename] = message

    def to_response(self) -> BatchUploadResponse:
        return BatchUploadResponse(urls=list(self.urls), errors=dict(self.errors) or None)
