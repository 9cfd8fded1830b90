"""Модели настроек приложения.

Этот модуль содержит только классы настроек (Pydantic модели),
БЕЗ загрузки из переменных окружения. Это позволяет:
- Импортировать классы в тестах без побочных эффектов
- Создавать экземпляры с тестовыми данными
- Изолировать тесты от реальных переменных окружения

Для загрузки настроек из .env используйте модуль settings.py.
"""

from pathlib import Path

from pydantic import BaseModel, SecretStr

from src.config.constants import TEST_IMAGES_DIR, TEST_IMAGES_PUBLIC_URL


class LoggingSettings(BaseModel):
    """Настройки логирования."""

    level: str = "INFO"

    # Часовой пояс для отображения времени в логах.
    # Формат: строка из базы IANA (Europe/Moscow, UTC, America/New_York).
    timezone: str = "UTC"


class ImageProvidersSettings(BaseModel):
    """Настройки провайдеров генерации изображений.

    Поддерживаемые провайдеры:
    - OpenAI (https://platform.openai.com) — gpt-image-1, DALL-E
    - DeepInfra (https://deepinfra.com) — OpenAI-совместимый API
    - Replicate (https://replicate.com) — асинхронные predictions
    - Gemini (https://ai.google.dev) — пул ключей, ротация для бесплатной модели
    - Vertex AI (https://cloud.google.com/vertex-ai) — Imagen через сервисный аккаунт
    - Runware (https://runware.ai) — пакетный REST API
    - Fal (https://fal.ai) — очередь задач с опросом статуса

    Переменные окружения: AI__OPENAI_API_KEY, AI__GEMINI_API_KEYS и т.д.
    """

    # OpenAI API ключ.
    openai_api_key: SecretStr | None = None

    # DeepInfra API ключ.
    deepinfra_api_key: SecretStr | None = None

    # Replicate API ключ.
    # Получить: https://replicate.com/account/api-tokens
    replicate_api_key: SecretStr | None = None

    # Ключи Google Gemini через запятую: "key1,key2,key3".
    # Для бесплатной модели ключ выбирается случайно, для платных — первый.
    gemini_api_keys: SecretStr | None = None

    # Runware API ключ.
    runware_api_key: SecretStr | None = None

    # Fal API ключ (передаётся в заголовке "Authorization: Key ...").
    fal_api_key: SecretStr | None = None

    # Vertex AI: проект, регион и сервисный аккаунт.
    # Сервисный аккаунт — JSON-ключ, закодированный в base64 целиком.
    google_cloud_project_id: str | None = None
    google_cloud_location: str = "us-central1"
    google_service_account_key: SecretStr | None = None

    @property
    def has_openai(self) -> bool:
        """Проверить, настроен ли OpenAI."""
        return self.openai_api_key is not None

    @property
    def has_deepinfra(self) -> bool:
        """Проверить, настроен ли DeepInfra."""
        return self.deepinfra_api_key is not None

    @property
    def has_replicate(self) -> bool:
        """Проверить, настроен ли Replicate."""
        return self.replicate_api_key is not None

    @property
    def has_gemini(self) -> bool:
        """Проверить, настроен ли хотя бы один ключ Gemini."""
        return self.gemini_api_keys is not None

    @property
    def has_vertex(self) -> bool:
        """Проверить, настроен ли Vertex AI (проект и сервисный аккаунт)."""
        return (
            self.google_cloud_project_id is not None
            and self.google_service_account_key is not None
        )

    @property
    def has_runware(self) -> bool:
        """Проверить, настроен ли Runware."""
        return self.runware_api_key is not None

    @property
    def has_fal(self) -> bool:
        """Проверить, настроен ли Fal."""
        return self.fal_api_key is not None


class TestProviderSettings(BaseModel):
    """Настройки тестового провайдера.

    Тестовый провайдер не ходит в сеть: он отдаёт заранее подготовленные
    картинки ({quality}.png) — для проверки проводки без реальной генерации.
    """

    # Не собирать этот класс как тест (имя начинается с Test).
    __test__ = False

    # Папка с картинками-фикстурами.
    images_dir: Path = TEST_IMAGES_DIR

    # Публичный URL той же папки (для response_format=url).
    public_base_url: str = TEST_IMAGES_PUBLIC_URL
