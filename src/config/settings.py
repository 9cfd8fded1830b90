"""Настройки приложения через переменные окружения.

ВАЖНО: Этот модуль НЕ загружает настройки при импорте — вызывайте
load_settings() один раз при старте процесса и передавайте результат
по ссылке в ImageService и реестр адаптеров.

Пример для тестов:
    # Изолированный импорт без чтения окружения:
    from src.config.models import ImageProvidersSettings

    settings = ImageProvidersSettings(openai_api_key=SecretStr("sk-test"))
"""

import sys
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.config.models import (
    ImageProvidersSettings,
    LoggingSettings,
    TestProviderSettings,
)

# Путь к корню проекта (вычисляем от текущего файла)
# src/config/settings.py → src/config → src → корень проекта
PROJECT_ROOT = Path(__file__).parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

# Если файл .env существует — используем его, иначе None (только переменные окружения)
ENV_FILE_PATH = ENV_FILE if ENV_FILE.exists() else None

__all__ = [
    "ImageProvidersSettings",
    "LoggingSettings",
    "Settings",
    "TestProviderSettings",
    "load_settings",
]

# Сообщение по умолчанию для ошибок конфигурации
DEFAULT_ERROR_MESSAGE = "Configuration error. Check the .env file or environment variables"


class Settings(BaseSettings):
    """Главные настройки приложения.

    Настройки загружаются из двух источников (в порядке приоритета):
    1. Переменные окружения (приоритет выше)
    2. Файл .env (если существует)

    Вложенные поля задаются через двойное подчёркивание:
        AI__OPENAI_API_KEY=sk-...
        AI__GEMINI_API_KEYS=key1,key2
        LOGGING__LEVEL=DEBUG
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    ai: ImageProvidersSettings = ImageProvidersSettings()
    logging: LoggingSettings = LoggingSettings()
    test_provider: TestProviderSettings = TestProviderSettings()

    # URL прокси-сервера для исходящих запросов (опционально).
    # Формат: http://host:port, https://host:port
    # Используется адаптером Gemini (обход региональных ограничений).
    proxy: str | None = None

    # Таймаут HTTP-запросов к провайдерам (в секундах).
    request_timeout: float = 180.0


def _format_validation_error(error: ValidationError) -> str:
    """Преобразовать ошибку Pydantic в понятное сообщение.

    Args:
        error: Ошибка валидации от Pydantic.

    Returns:
        Сообщение с перечнем некорректных полей.
    """
    messages: list[str] = [DEFAULT_ERROR_MESSAGE]

    for err in error.errors():
        # Путь к полю (например, ("ai", "openai_api_key") -> "ai.openai_api_key")
        field_path = ".".join(str(loc) for loc in err["loc"])
        messages.append(f"  {field_path}: {err['msg']} ({err['type']})")

    return "\n".join(messages)


def load_settings() -> Settings:
    """Загрузить настройки из переменных окружения.

    Если настройки некорректны — выводит понятную ошибку
    и завершает программу.

    Returns:
        Объект Settings с загруженными настройками.
    """
    try:
        return Settings()
    except ValidationError as e:
        print(_format_validation_error(e), file=sys.stderr)
        sys.exit(1)
