"""
Конфигурация сервиса загрузки медиа.

Источники значений (по убыванию приоритета):
    1. Аргументы конструктора Settings(...)
    2. Переменные окружения (UPLOAD_PATH, MEDIA_URL_PREFIX, ...)
    3. .env файл
    4. YAML файл (configs/config.yaml, путь меняется переменной
       окружения CONFIG_FILE; из .env она не читается)
    5. Дефолты полей

Экземпляр создаётся один раз при старте процесса и передаётся
в сервисы явно (см. media_processor.main.create_app).

Документация по параметрам: .env.example, configs/config.example.yaml
"""

import logging
import os
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "configs/config.yaml"


def config_file_path() -> str:
    """Путь к YAML конфигу (переменная CONFIG_FILE или дефолт)."""
    return os.getenv("CONFIG_FILE", DEFAULT_CONFIG_FILE)


def load_yaml_config(path: str, field_names: set[str]) -> dict[str, Any]:
    """
    Читает YAML конфиг и раскладывает секции по плоским полям Settings.

    Ключ section.key сопоставляется полю section_key, а если такого
    поля нет — полю key. Например:
        server.port              -> server_port
        upload.media_url_prefix  -> media_url_prefix

    Отсутствующий файл — не ошибка. Нечитаемый или битый файл
    логируется как предупреждение, конфиг продолжает собираться
    из окружения и дефолтов.

    Args:
        path: путь к YAML файлу
        field_names: имена полей Settings

    Returns:
        dict: значения для известных полей
    """
    if not os.path.exists(path):
        return {}

    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning(f"Не удалось загрузить конфиг {path}: {e}")
        return {}

    if not isinstance(raw, dict):
        logger.warning(f"Не удалось загрузить конфиг {path}: ожидается словарь на верхнем уровне")
        return {}

    values: dict[str, Any] = {}
    for section, content in raw.items():
        if not isinstance(content, dict):
            if section in field_names:
                values[section] = content
            continue

        for key, value in content.items():
            prefixed = f"{section}_{key}"
            if prefixed in field_names:
                values[prefixed] = value
            elif key in field_names:
                values[key] = value

    return values


class YamlFileSettingsSource(PydanticBaseSettingsSource):
    """Источник настроек из YAML файла с секциями server/upload/ocr."""

    def __init__(self, settings_cls: type[BaseSettings], path: str):
        super().__init__(settings_cls)
        self.path = path
        self._values = load_yaml_config(path, set(settings_cls.model_fields))

    def get_field_value(self, field: FieldInfo, field_name: str) -> tuple[Any, str, bool]:
        return self._values.get(field_name), field_name, False

    def __call__(self) -> dict[str, Any]:
        return dict(self._values)


class Settings(BaseSettings):
    """
    Настройки сервиса.

    Переменные окружения без префикса, имена совпадают с полями
    в верхнем регистре: UPLOAD_PATH, MEDIA_URL_PREFIX, SERVER_PORT, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        # Пустая переменная не перекрывает значение из YAML
        env_ignore_empty=True,
    )

    # --- Сервер ---
    server_host: str = "0.0.0.0"
    server_port: int = 3000

    # --- Хранилище ---
    upload_path: str = "./images"
    # Публичный URL = media_url_prefix + имя файла
    media_url_prefix: str = "http://localhost:3000/uploader/"

    # --- Лимиты ---
    max_upload_size_mb: int = Field(default=10, ge=1)
    # Тело пакетного запроса ограничено max_upload_size * batch_size_factor
    batch_size_factor: int = Field(default=10, ge=1)
    # Сколько файлов пакета пишется одновременно
    batch_concurrency: int = Field(default=8, ge=1)

    # --- OCR ---
    ocr_provider: Literal["aliyun", "http"] = "aliyun"
    ocr_endpoint: str = "ocr-api.cn-hangzhou.aliyuncs.com"
    alibaba_cloud_access_key_id: str = ""
    alibaba_cloud_access_key_secret: str = ""
    # Для ocr_provider=http: адрес воркера, принимающего {"url": ...}
    ocr_worker_url: str = "http://localhost:8000/ocr"
    ocr_timeout_seconds: float = 30.0

    # --- Логирование ---
    log_level: str = "INFO"

    @property
    def max_upload_size(self) -> int:
        """Лимит одного файла в байтах."""
        return self.max_upload_size_mb * 1024 * 1024

    @property
    def max_batch_size(self) -> int:
        """Лимит тела пакетного запроса в байтах."""
        return self.max_upload_size * self.batch_size_factor

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlFileSettingsSource(settings_cls, config_file_path()),
            file_secret_settings,
        )
