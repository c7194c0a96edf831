"""Тесты сборки конфигурации: YAML + окружение + дефолты."""

import logging

import pytest

from media_processor.config import Settings, config_file_path, load_yaml_config

YAML_CONFIG = """
server:
  port: "8080"
upload:
  path: /srv/images
  media_url_prefix: https://files.example.com/uploader/
ocr:
  endpoint: ocr-api.cn-shanghai.aliyuncs.com
  alibaba_cloud_access_key_id: yaml-key
  alibaba_cloud_access_key_secret: yaml-secret
"""


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text(YAML_CONFIG, encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))
    return path


def test_defaults_without_config_file():
    settings = Settings(_env_file=None)

    assert settings.server_port == 3000
    assert settings.max_upload_size == 10 * 1024 * 1024
    assert settings.max_batch_size == 100 * 1024 * 1024
    assert settings.ocr_provider == "aliyun"


def test_yaml_sections_are_flattened(config_file):
    settings = Settings(_env_file=None)

    assert settings.server_port == 8080
    assert settings.upload_path == "/srv/images"
    assert settings.media_url_prefix == "https://files.example.com/uploader/"
    assert settings.ocr_endpoint == "ocr-api.cn-shanghai.aliyuncs.com"
    assert settings.alibaba_cloud_access_key_id == "yaml-key"


def test_environment_overrides_yaml(config_file, monkeypatch):
    monkeypatch.setenv("UPLOAD_PATH", "/data/uploads")
    monkeypatch.setenv("MEDIA_URL_PREFIX", "https://cdn.example.com/")
    monkeypatch.setenv("ALIBABA_CLOUD_ACCESS_KEY_ID", "env-key")

    settings = Settings(_env_file=None)

    assert settings.upload_path == "/data/uploads"
    assert settings.media_url_prefix == "https://cdn.example.com/"
    assert settings.alibaba_cloud_access_key_id == "env-key"
    # Не перекрытые окружением значения остаются из YAML
    assert settings.alibaba_cloud_access_key_secret == "yaml-secret"
    assert settings.server_port == 8080


def test_malformed_yaml_degrades_to_defaults(tmp_path, monkeypatch, caplog):
    path = tmp_path / "config.yaml"
    path.write_text("server: [unclosed\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))

    with caplog.at_level(logging.WARNING, logger="media_processor.config"):
        settings = Settings(_env_file=None)

    assert settings.server_port == 3000
    assert "Не удалось загрузить конфиг" in caplog.text


def test_load_yaml_config_ignores_unknown_keys(config_file):
    values = load_yaml_config(str(config_file), {"server_port", "upload_path"})

    assert values == {"server_port": "8080", "upload_path": "/srv/images"}


def test_missing_file_is_silent(tmp_path, caplog):
    with caplog.at_level(logging.WARNING):
        values = load_yaml_config(str(tmp_path / "nope.yaml"), {"server_port"})

    assert values == {}
    assert caplog.text == ""


def test_empty_environment_value_keeps_yaml(config_file, monkeypatch):
    monkeypatch.setenv("ALIBABA_CLOUD_ACCESS_KEY_ID", "")
    monkeypatch.setenv("SERVER_PORT", "")

    settings = Settings(_env_file=None)

    assert settings.alibaba_cloud_access_key_id == "yaml-key"
    assert settings.server_port == 8080


def test_empty_environment_value_keeps_default(monkeypatch):
    monkeypatch.setenv("SERVER_PORT", "")
    monkeypatch.setenv("MAX_UPLOAD_SIZE_MB", "")

    settings = Settings(_env_file=None)

    assert settings.server_port == 3000
    assert settings.max_upload_size_mb == 10


def test_config_file_path_read_from_process_environment(tmp_path, monkeypatch):
    yaml_path = tmp_path / "custom.yaml"
    yaml_path.write_text("server:\n  port: 9000\n", encoding="utf-8")
    env_file = tmp_path / ".env"
    env_file.write_text(f"CONFIG_FILE={tmp_path / 'other.yaml'}\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(yaml_path))

    assert config_file_path() == str(yaml_path)
    # CONFIG_FILE в .env не влияет на выбор YAML файла
    assert Settings(_env_file=str(env_file)).server_port == 9000
