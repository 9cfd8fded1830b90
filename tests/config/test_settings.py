"""Тесты для настроек приложения."""

import pytest
from pydantic import SecretStr

from src.config.constants import TEST_IMAGES_DIR
from src.config.models import ImageProvidersSettings
from src.config.settings import Settings, load_settings


class TestImageProvidersSettings:
    """Тесты для ImageProvidersSettings."""

    def test_defaults(self) -> None:
        """Тест: по умолчанию ни один провайдер не настроен."""
        ai = ImageProvidersSettings()

        assert ai.has_openai is False
        assert ai.has_deepinfra is False
        assert ai.has_replicate is False
        assert ai.has_gemini is False
        assert ai.has_vertex is False
        assert ai.has_runware is False
        assert ai.has_fal is False
        assert ai.google_cloud_location == "us-central1"

    def test_vertex_needs_project_and_key(self) -> None:
        """Тест: Vertex настроен только при наличии проекта и ключа."""
        only_key = ImageProvidersSettings(google_service_account_key=SecretStr("e30="))
        full = ImageProvidersSettings(
            google_cloud_project_id="my-project",
            google_service_account_key=SecretStr("e30="),
        )

        assert only_key.has_vertex is False
        assert full.has_vertex is True

    def test_secret_is_hidden(self) -> None:
        """Тест: ключ не попадает в repr."""
        ai = ImageProvidersSettings(fal_api_key=SecretStr("fal-secret"))

        assert "fal-secret" not in repr(ai)
        assert ai.fal_api_key is not None
        assert ai.fal_api_key.get_secret_value() == "fal-secret"


class TestSettings:
    """Тесты для Settings."""

    def test_defaults(self, settings: Settings) -> None:
        """Тест: значения по умолчанию."""
        assert settings.logging.level == "INFO"
        assert settings.logging.timezone == "UTC"
        assert settings.proxy is None
        assert settings.request_timeout == 180.0
        assert settings.test_provider.images_dir == TEST_IMAGES_DIR

    def test_nested_env_variables(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Тест: вложенные поля задаются через двойное подчёркивание."""
        monkeypatch.setenv("AI__OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("AI__GEMINI_API_KEYS", "key1,key2")
        monkeypatch.setenv("LOGGING__LEVEL", "DEBUG")
        monkeypatch.setenv("PROXY", "http://proxy.example.com:8080")

        settings = Settings(_env_file=None)

        assert settings.ai.has_openai is True
        assert settings.ai.has_gemini is True
        assert settings.ai.gemini_api_keys is not None
        assert settings.ai.gemini_api_keys.get_secret_value() == "key1,key2"
        assert settings.logging.level == "DEBUG"
        assert settings.proxy == "http://proxy.example.com:8080"

    def test_load_settings_invalid_exits(
        self,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Тест: некорректные настройки — понятное сообщение и выход."""
        monkeypatch.setenv("REQUEST_TIMEOUT", "not-a-number")

        with pytest.raises(SystemExit) as exc_info:
            load_settings()

        assert exc_info.value.code == 1
        stderr = capsys.readouterr().err
        assert "Configuration error" in stderr
        assert "request_timeout" in stderr
