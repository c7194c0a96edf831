"""
Ошибки сервиса загрузки медиа.

Каждая ошибка несёт стабильный код (поле error в ответе API)
и HTTP статус, в который её переводит слой FastAPI.
"""


class MediaProcessorError(Exception):
    """Базовая ошибка сервиса."""

    code = "internal_error"
    status_code = 500


class InvalidInputError(MediaProcessorError):
    """Отсутствует файл/поле или запрос некорректен."""

    code = "invalid_input"
    status_code = 400


class NoFilesProvidedError(InvalidInputError):
    """Пакетная загрузка без единого файла."""

    code = "no_files"


class FileTooLargeError(InvalidInputError):
    code = "file_too_large"
    status_code = 413


class StorageError(MediaProcessorError):
    """
    Ошибка записи в хранилище.

    Исходная ошибка ввода-вывода доступна через __cause__.
    """

    code = "storage_error"
    status_code = 500


class StreamOpenError(StorageError):
    code = "stream_open_failed"


class DirectoryCreateError(StorageError):
    code = "directory_create_failed"


class FileCreateError(StorageError):
    code = "file_create_failed"


class CopyError(StorageError):
    code = "copy_failed"


class OCRProviderError(MediaProcessorError):
    """Внешний OCR сервис вернул ошибку или недоступен."""

    code = "ocr_provider_error"
    status_code = 500
