"""
Сервис загрузки изображений и распознавания текста — FastAPI приложение.

Эндпоинты:
    POST /upload        — загрузка одного файла (поле image)
    POST /upload/batch  — пакетная загрузка (поле images)
    POST /ocr           — распознавание текста по URL изображения
    GET  /health        — проверка работоспособности и текущие лимиты

Запуск:
    uvicorn media_processor.main:app --host 0.0.0.0 --port 3000
    python -m media_processor.main
"""

import json
import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile as StarletteUploadFile

from media_processor.config import Settings
from media_processor.errors import (
    FileTooLargeError,
    InvalidInputError,
    MediaProcessorError,
    NoFilesProvidedError,
    OCRProviderError,
)
from media_processor.schemas import (
    BatchUploadResponse,
    OCRRequest,
    UploadItem,
    UploadResponse,
)
from media_processor.services.batch import BatchCoordinator
from media_processor.services.ocr_gateway import OCRGateway, OCRService, build_ocr_gateway
from media_processor.services.storage import StorageWriter

# Настройка логгера
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [Media-Processor] %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


class UnicodeJSONResponse(JSONResponse):
    """JSON ответ без \\uXXXX экранирования (распознанный текст, имена файлов)."""

    def render(self, content) -> bytes:
        return json.dumps(
            content,
            ensure_ascii=False,
            allow_nan=False,
            indent=None,
            separators=(",", ":"),
        ).encode("utf-8")


router = APIRouter()


@router.get("/health")
async def health_check(request: Request) -> dict:
    """
    Проверка работоспособности сервиса.

    Returns:
        dict: статус, провайдер OCR и действующие лимиты
    """
    settings: Settings = request.app.state.settings
    return {
        "status": "ok",
        "service": "media-processor",
        "version": VERSION,
        "ocr_provider": settings.ocr_provider,
        "config": {
            "upload_path": settings.upload_path,
            "media_url_prefix": settings.media_url_prefix,
            "max_upload_size_mb": settings.max_upload_size_mb,
            "batch_size_factor": settings.batch_size_factor,
            "batch_concurrency": settings.batch_concurrency,
        },
    }


@router.post("/upload", response_model=UploadResponse)
async def upload_single(request: Request) -> UploadResponse:
    """
    Сохраняет один файл и возвращает его публичный URL.

    Тело: multipart/form-data, файл в поле image. Поле без файла
    (обычное текстовое значение) считается отсутствующим.

    Returns:
        UploadResponse: {"url": ...}

    Raises:
        HTTPException: 400 без файла, 413 если запрос или файл больше лимита,
            500 при ошибке записи
    """
    settings: Settings = request.app.state.settings
    writer: StorageWriter = request.app.state.writer

    _check_content_length(request, settings.max_upload_size)

    form = await request.form()
    image = form.get("image")
    if not isinstance(image, StarletteUploadFile):
        raise _http_error(
            InvalidInputError("Файл не загружен или неверное имя поля 'image'")
        )

    if image.size is not None and image.size > settings.max_upload_size:
        raise _http_error(
            FileTooLargeError(
                f"Файл слишком большой: {image.size} байт, "
                f"максимум: {settings.max_upload_size_mb} МБ"
            )
        )

    logger.info(f"Загрузка файла: {image.filename}")

    try:
        stored = await run_in_threadpool(writer.store, image.file, image.filename or "")
    except MediaProcessorError as e:
        logger.exception(f"Ошибка сохранения файла {image.filename}: {e}")
        raise _http_error(e)

    return UploadResponse(url=stored.url)


@router.post(
    "/upload/batch",
    response_model=BatchUploadResponse,
    response_model_exclude_none=True,
)
async def upload_batch(request: Request) -> BatchUploadResponse:
    """
    Сохраняет все файлы пакета параллельно.

    Тело: multipart/form-data, файлы в поле images (можно несколько).
    Текстовые значения поля images игнорируются.
    Ошибка отдельного файла не прерывает пакет и попадает в errors.
    Порядок urls не совпадает с порядком файлов в запросе.

    Returns:
        BatchUploadResponse: {"urls": [...], "errors": {имя: сообщение}}

    Raises:
        HTTPException: 400 если файлов нет, 413 если запрос больше лимита пакета
    """
    settings: Settings = request.app.state.settings
    coordinator: BatchCoordinator = request.app.state.coordinator

    _check_content_length(request, settings.max_batch_size)

    form = await request.form()
    items = [
        _to_upload_item(upload)
        for upload in form.getlist("images")
        if isinstance(upload, StarletteUploadFile)
    ]
    logger.info(f"Пакетная загрузка: {len(items)} файлов")

    try:
        result = await run_in_threadpool(coordinator.store_all, items)
    except NoFilesProvidedError as e:
        raise _http_error(e)

    return result.to_response()


@router.post("/ocr")
async def recognize(request: Request) -> dict:
    """
    Распознаёт текст на изображении по URL.

    Тело запроса: JSON {"url": "https://..."}. Некорректный JSON
    или отсутствие url дают 400, провайдер при этом не вызывается.

    Returns:
        dict: результат в формате провайдера OCR

    Raises:
        HTTPException: 400 без url, 500 при ошибке провайдера
    """
    ocr_service: OCRService = request.app.state.ocr_service

    try:
        payload = await request.json()
        ocr_request = OCRRequest(**payload) if isinstance(payload, dict) else OCRRequest()
    except ValueError:
        # JSONDecodeError и ValidationError наследуют ValueError
        ocr_request = OCRRequest()

    try:
        return await ocr_service.recognize_text(ocr_request.url)
    except InvalidInputError as e:
        raise _http_error(e)
    except OCRProviderError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.code,
                "message": f"Ошибка обработки OCR: {e}",
            },
        )


def _check_content_length(request: Request, limit: int) -> None:
    """
    Отклоняет запрос по заголовку Content-Length до чтения тела.

    Запрос без Content-Length (chunked) проходит дальше, для него
    действует только проверка размера каждого файла.

    Raises:
        HTTPException: 413 если тело больше limit
    """
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > limit:
        raise _http_error(
            FileTooLargeError(
                f"Запрос слишком большой: {content_length} байт, максимум: {limit} байт"
            )
        )


def _to_upload_item(upload: StarletteUploadFile) -> UploadItem:
    """Оборачивает UploadFile в UploadItem для координатора пакета."""

    def opener():
        upload.file.seek(0)
        return upload.file

    return UploadItem(filename=upload.filename or "", opener=opener, size=upload.size)


def _http_error(error: MediaProcessorError) -> HTTPException:
    """Переводит ошибку сервиса в HTTPException с кодом и сообщением."""
    return HTTPException(
        status_code=error.status_code,
        detail={
            "error": error.code,
            "message": str(error),
        },
    )


def create_app(
    settings: Optional[Settings] = None,
    ocr_gateway: Optional[OCRGateway] = None,
) -> FastAPI:
    """
    Собирает приложение и все сервисы из одного экземпляра Settings.

    Args:
        settings: настройки (по умолчанию читаются из окружения/.env/YAML)
        ocr_gateway: провайдер OCR (по умолчанию по settings.ocr_provider)

    Returns:
        FastAPI: готовое приложение
    """
    settings = settings or Settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    writer = StorageWriter(settings)

    application = FastAPI(
        title="Media Processor",
        description="Загрузка изображений и распознавание текста",
        version=VERSION,
        default_response_class=UnicodeJSONResponse,
    )
    application.state.settings = settings
    application.state.writer = writer
    application.state.coordinator = BatchCoordinator(settings, writer)
    application.state.ocr_service = OCRService(ocr_gateway or build_ocr_gateway(settings))
    application.include_router(router)

    return application


# FastAPI приложение
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings

    logger.info("Доступные API:")
    logger.info("  POST /upload        - загрузка одного файла")
    logger.info("  POST /upload/batch  - пакетная загрузка")
    logger.info("  POST /ocr           - распознавание текста")
    logger.info(f"Запуск на {settings.server_host}:{settings.server_port}")
    logger.info(f"Хранилище: {settings.upload_path}, провайдер OCR: {settings.ocr_provider}")

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
    )
