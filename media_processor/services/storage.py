"""
Запись загруженных файлов в хранилище.

Каждый файл сохраняется под уникальным именем {time_ns}-{base_name}
в каталоге upload_path, публичный URL строится как
media_url_prefix + имя файла.

Частично записанный файл при ошибке копирования не удаляется.
"""

import logging
import os
import shutil
import threading
import time
from pathlib import PurePosixPath
from typing import BinaryIO

from media_processor.config import Settings
from media_processor.errors import CopyError, DirectoryCreateError, FileCreateError
from media_processor.schemas import StoredObject

logger = logging.getLogger(__name__)

# Размер блока при копировании потока в файл
COPY_CHUNK_SIZE = 1024 * 1024


def sanitize_filename(filename: str) -> str:
    """
    Оставляет от имени файла только последний компонент пути.

    Разделителями считаются и "/", и "\\" (клиенты на Windows
    присылают полный путь). Пустое имя, "." и ".." заменяются на "unnamed".

    Examples:
        "../../etc/passwd" -> "passwd"
        "C:\\photos\\a.png" -> "a.png"
    """
    base = PurePosixPath(filename.replace("\\", "/")).name
    if base in ("", ".", ".."):
        return "unnamed"
    return base


_timestamp_lock = threading.Lock()
_last_timestamp_ns = 0


def next_timestamp_ns() -> int:
    """
    Наносекундная метка времени, строго возрастающая в пределах процесса.

    На платформах с грубыми часами два вызова подряд могут вернуть
    одно и то же time_ns(), тогда метка сдвигается на 1 нс.
    """
    global _last_timestamp_ns
    with _timestamp_lock:
        ts = max(time.time_ns(), _last_timestamp_ns + 1)
        _last_timestamp_ns = ts
        return ts


def generate_filename(original_filename: str) -> str:
    """Имя файла в хранилище: наносекундная метка времени + очищенное имя."""
    return f"{next_timestamp_ns()}-{sanitize_filename(original_filename)}"


class StorageWriter:
    """
    Сохраняет поток байтов в файл и возвращает его публичный URL.

    Экземпляр не хранит изменяемого состояния и безопасен
    для одновременного вызова из нескольких потоков.
    """

    def __init__(self, settings: Settings):
        self.upload_path = os.path.abspath(settings.upload_path)
        self.url_prefix = settings.media_url_prefix

    def store(self, stream: BinaryIO, original_filename: str) -> StoredObject:
        """
        Записывает поток в новый файл хранилища.

        Args:
            stream: поток, читаемый до конца
            original_filename: имя файла от клиента (произвольная строка)

        Returns:
            StoredObject: имя, путь, URL и размер сохранённого файла

        Raises:
            DirectoryCreateError: не удалось создать каталог хранилища
            FileCreateError: не удалось создать файл
            CopyError: ошибка при копировании данных
        """
        filename = generate_filename(original_filename)
        dst_path = os.path.join(self.upload_path, filename)

        try:
            os.makedirs(self.upload_path, exist_ok=True)
        except OSError as e:
            raise DirectoryCreateError(f"Не удалось создать каталог загрузки: {e}") from e

        try:
            # "xb": совпадение имени даёт ошибку, а не перезапись чужого файла
            dst_file = open(dst_path, "xb")
        except OSError as e:
            raise FileCreateError(f"Не удалось создать файл: {e}") from e

        # ValueError: чтение из уже закрытого потока
        try:
            with dst_file:
                shutil.copyfileobj(stream, dst_file, COPY_CHUNK_SIZE)
                size_bytes = dst_file.tell()
        except (OSError, ValueError) as e:
            raise CopyError(f"Не удалось скопировать данные файла: {e}") from e

        logger.info(f"Файл сохранён: {original_filename} -> {filename} ({size_bytes} байт)")

        return StoredObject(
            filename=filename,
            path=dst_path,
            url=self.url_prefix + filename,
            size_bytes=size_bytes,
        )
