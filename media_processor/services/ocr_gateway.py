"""
Шлюз к внешнему OCR сервису.

Провайдеры:
    - aliyun: Alibaba Cloud OCR (RecognizeAllText, тип Advanced)
    - http: OCR воркер, принимающий POST {"url": ...}

Сам сервис изображения не обрабатывает: URL передаётся провайдеру
как есть, результат возвращается клиенту без преобразований.
"""

import logging
import threading
import time
from typing import Any, Optional

import httpx
from alibabacloud_ocr_api20210707 import models as ocr_models
from alibabacloud_ocr_api20210707.client import Client as OcrClient
from alibabacloud_tea_openapi import models as open_api_models
from alibabacloud_tea_util import models as util_models
from starlette.concurrency import run_in_threadpool

from media_processor.config import Settings
from media_processor.errors import InvalidInputError, OCRProviderError

logger = logging.getLogger(__name__)

# Тип распознавания для RecognizeAllText
ALIYUN_RECOGNIZE_TYPE = "Advanced"


def validate_image_url(image_url: Optional[str]) -> str:
    """
    Единственная проверка перед отправкой провайдеру — наличие URL.

    Raises:
        InvalidInputError: URL не передан или пустой
    """
    if not image_url or not image_url.strip():
        raise InvalidInputError("Некорректный запрос: требуется url")
    return image_url.strip()


class OCRGateway:
    """Базовый класс провайдера OCR."""

    name = "base"

    async def recognize(self, image_url: str) -> dict[str, Any]:
        """
        Распознаёт текст на изображении по URL.

        Args:
            image_url: публичный URL изображения

        Returns:
            dict: результат в формате провайдера

        Raises:
            OCRProviderError: провайдер вернул ошибку или недоступен
        """
        raise NotImplementedError


class AliyunOCRGateway(OCRGateway):
    """
    Alibaba Cloud OCR API (2021-07-07).

    SDK клиент создаётся при первом запросе, чтобы сервис запускался
    и без ключей доступа (например, когда нужна только загрузка).
    """

    name = "aliyun"

    def __init__(self, settings: Settings):
        self.endpoint = settings.ocr_endpoint
        self.access_key_id = settings.alibaba_cloud_access_key_id
        self.access_key_secret = settings.alibaba_cloud_access_key_secret
        self._client: Optional[OcrClient] = None
        self._client_lock = threading.Lock()

    def _get_client(self) -> OcrClient:
        with self._client_lock:
            if self._client is None:
                api_config = open_api_models.Config(
                    access_key_id=self.access_key_id,
                    access_key_secret=self.access_key_secret,
                    endpoint=self.endpoint,
                )
                self._client = OcrClient(api_config)
                logger.info(f"Создан клиент Alibaba Cloud OCR: {self.endpoint}")
            return self._client

    def _recognize_sync(self, image_url: str) -> dict[str, Any]:
        try:
            client = self._get_client()
            request = ocr_models.RecognizeAllTextRequest(
                url=image_url,
                type=ALIYUN_RECOGNIZE_TYPE,
            )
            response = client.recognize_all_text_with_options(
                request, util_models.RuntimeOptions()
            )
        except Exception as e:
            # TeaException несёт message отдельно от служебного текста
            message = getattr(e, "message", None) or str(e)
            raise OCRProviderError(message) from e

        return response.body.to_map() if response.body is not None else {}

    async def recognize(self, image_url: str) -> dict[str, Any]:
        return await run_in_threadpool(self._recognize_sync, image_url)


class HTTPOCRGateway(OCRGateway):
    """
    OCR воркер по HTTP.

    Отправляет {"url": ...} на ocr_worker_url и возвращает JSON ответа.
    """

    name = "http"

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.worker_url = settings.ocr_worker_url
        self.timeout_seconds = settings.ocr_timeout_seconds
        self._transport = transport

    async def recognize(self, image_url: str) -> dict[str, Any]:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            ) as client:
                response = await client.post(self.worker_url, json={"url": image_url})
        except httpx.ConnectError as e:
            raise OCRProviderError(f"OCR воркер недоступен по адресу {self.worker_url}") from e
        except httpx.TimeoutException as e:
            raise OCRProviderError(
                f"OCR воркер не ответил за {self.timeout_seconds} секунд"
            ) from e
        except httpx.HTTPError as e:
            raise OCRProviderError(f"Ошибка запроса к OCR воркеру: {e}") from e

        if response.status_code != 200:
            raise OCRProviderError(
                f"OCR воркер вернул ошибку: {response.status_code} - {response.text}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise OCRProviderError("OCR воркер вернул некорректный JSON") from e


class OCRService:
    """Проверяет запрос и передаёт его выбранному провайдеру."""

    def __init__(self, gateway: OCRGateway):
        self.gateway = gateway

    async def recognize_text(self, image_url: Optional[str]) -> dict[str, Any]:
        """
        Распознаёт текст по URL изображения.

        Raises:
            InvalidInputError: URL не передан
            OCRProviderError: ошибка провайдера
        """
        url = validate_image_url(image_url)

        start = time.perf_counter()
        logger.info(f"OCR запрос ({self.gateway.name}): {url}")

        try:
            result = await self.gateway.recognize(url)
        except OCRProviderError as e:
            logger.error(f"Ошибка OCR ({self.gateway.name}) для {url}: {e}")
            raise

        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"OCR завершён за {duration_ms}ms")

        return result


def build_ocr_gateway(settings: Settings) -> OCRGateway:
    """Создаёт провайдера OCR по settings.ocr_provider."""
    if settings.ocr_provider == "http":
        return HTTPOCRGateway(settings)
    return AliyunOCRGateway(settings)
