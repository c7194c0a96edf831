"""
Пакетная загрузка файлов.

Каждый файл пакета обрабатывается отдельной задачей в ThreadPoolExecutor:
    open -> store -> запись результата

Ошибка одного файла не влияет на остальные: она попадает в errors
под исходным именем файла. Координатор возвращает результат только
после завершения всех задач.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Sequence

from media_processor.config import Settings
from media_processor.errors import (
    FileTooLargeError,
    MediaProcessorError,
    NoFilesProvidedError,
    StreamOpenError,
)
from media_processor.schemas import BatchResult, UploadItem
from media_processor.services.storage import StorageWriter

logger = logging.getLogger(__name__)


class BatchCoordinator:
    """
    Параллельно сохраняет файлы пакета через StorageWriter.

    Число одновременно записываемых файлов ограничено batch_concurrency.
    """

    def __init__(self, settings: Settings, writer: StorageWriter):
        self.writer = writer
        self.max_workers = settings.batch_concurrency
        self.max_file_size = settings.max_upload_size

    def store_all(self, items: Sequence[UploadItem]) -> BatchResult:
        """
        Сохраняет все файлы пакета и собирает результаты.

        Args:
            items: файлы пакета (не пустой список)

        Returns:
            BatchResult: URL успешных файлов и ошибки по остальным

        Raises:
            NoFilesProvidedError: если items пуст
        """
        if not items:
            raise NoFilesProvidedError("Не загружено ни одного файла")

        start = time.perf_counter()
        result = BatchResult()

        with ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(items)),
            thread_name_prefix="batch-upload",
        ) as executor:
            futures = [executor.submit(self._process_item, item, result) for item in items]
            # Выход из with дожидается всех задач; result() поднимает
            # только непредвиденные ошибки, которые _process_item не перехватил
            for future in futures:
                future.result()

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            f"Пакет обработан: файлов={len(items)}, "
            f"успешно={len(result.urls)}, ошибок={len(result.errors)}, {duration_ms}ms"
        )

        return result

    def _process_item(self, item: UploadItem, result: BatchResult) -> None:
        """
        Обрабатывает один файл пакета и записывает исход в result.

        Ошибки сервиса фиксируются как ошибка файла и дальше не передаются.
        """
        try:
            url = self._store_item(item)
        except MediaProcessorError as e:
            logger.error(f"Ошибка загрузки файла {item.filename}: {e}")
            result.add_error(item.filename, str(e))
            return

        result.add_url(url)

    def _store_item(self, item: UploadItem) -> str:
        if item.size is not None and item.size > self.max_file_size:
            raise FileTooLargeError(
                f"Файл слишком большой: {item.size} байт, максимум: {self.max_file_size} байт"
            )

        try:
            stream = item.opener()
        except Exception as e:
            raise StreamOpenError(f"Не удалось открыть файл: {e}") from e

        with stream:
            return self.writer.store(stream, item.filename).url
