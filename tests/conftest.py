"""
Общие фикстуры тестов.

Каждый тест получает собственный каталог хранилища (tmp_path)
и не читает YAML/.env из рабочего каталога.
"""

import pytest

from media_processor.config import Settings

URL_PREFIX = "http://cdn.test/uploader/"


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Отключает чтение configs/config.yaml из рабочего каталога."""
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "missing-config.yaml"))
    for name in Settings.model_fields:
        monkeypatch.delenv(name.upper(), raising=False)


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "images"


@pytest.fixture
def settings(upload_dir) -> Settings:
    return Settings(
        _env_file=None,
        upload_path=str(upload_dir),
        media_url_prefix=URL_PREFIX,
        ocr_provider="http",
        batch_concurrency=4,
    )
