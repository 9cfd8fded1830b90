"""Централизованные исключения приложения.

Этот модуль содержит ВСЕ кастомные исключения проекта.
Централизация исключений обеспечивает:
- Единый источник правды для всех типов ошибок
- Единообразную иерархию исключений
- Удобный импорт: `from src.core.exceptions import SomeError`

Организация исключений по категориям:
- Configuration: отсутствующие ключи, битые секреты, незарегистрированные провайдеры
- Image Service: ошибки вызывающей стороны (неизвестная модель, редактирование
  не поддерживается)
- Image Providers: жёсткие ошибки апстрима (CanonicalError)

"Мягкие" исходы (таймаут опроса, ошибка опроса, провал задачи) — НЕ исключения.
Они возвращаются как данные внутри ImageGenerationResult (поле error),
чтобы биллинг не делал полный возврат средств.
"""

from typing import Any

from typing_extensions import override

# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================
# Ошибки конфигурации: не хватает ключа, секрет в неверном формате,
# провайдер не зарегистрирован. Никогда не повторяются — запрос фатален.
# =============================================================================


class ConfigurationError(Exception):
    """Ошибка конфигурации сервиса.

    Возникает когда:
    - Не настроен обязательный API-ключ провайдера
    - Секрет сервисного аккаунта не декодируется
    - Не удалось получить токен доступа у облачного провайдера
    - Не передан обязательный идентификатор (usage_log_id для Runware)

    Attributes:
        message: Описание ошибки.
        provider: Провайдер, к которому относится ошибка (опционально).
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        """Создать ошибку конфигурации.

        Args:
            message: Описание ошибки.
            provider: Идентификатор провайдера (опционально).
        """
        self.message = message
        self.provider = provider
        super().__init__(message)


class ProviderNotAvailableError(ConfigurationError):
    """Провайдер недоступен или не зарегистрирован.

    Возникает когда:
    - Для провайдера не зарегистрирован адаптер
    - API-ключ для провайдера не настроен
    """

    def __init__(self, message: str, provider_type: str | None = None) -> None:
        """Создать исключение ProviderNotAvailableError.

        Args:
            message: Описание ошибки.
            provider_type: Тип провайдера (опционально).
        """
        super().__init__(message, provider=provider_type)
        self.provider_type = provider_type


# =============================================================================
# IMAGE SERVICE EXCEPTIONS
# =============================================================================
# Ошибки диспетчера: модель не найдена, операция не поддерживается моделью.
# Это ошибки вызывающей стороны, а не провайдера.
# =============================================================================


class ImageServiceError(Exception):
    """Базовое исключение для ошибок сервиса генерации изображений.

    Attributes:
        message: Описание ошибки.
        model_key: Идентификатор модели, с которой произошла ошибка.
    """

    def __init__(self, message: str, model_key: str | None = None) -> None:
        self.message = message
        self.model_key = model_key
        super().__init__(message)


class ModelNotFoundError(ImageServiceError):
    """Модель не найдена в каталоге."""


class UnsupportedOperationError(ImageServiceError):
    """Модель не поддерживает запрошенную операцию (редактирование, маску).

    Attributes:
        supported_models: Модели, которые поддерживают операцию.
    """

    def __init__(
        self,
        message: str,
        model_key: str | None = None,
        supported_models: list[str] | None = None,
    ) -> None:
        super().__init__(message, model_key=model_key)
        self.supported_models = supported_models or []


# =============================================================================
# IMAGE PROVIDER EXCEPTIONS
# =============================================================================
# Жёсткие ошибки апстрима (non-2xx ответы). Каноническая форма ошибки
# одинакова для всех провайдеров.
# =============================================================================


def build_error_response(
    *,
    status: int | None,
    status_text: str | None,
    message: str | None,
    error_type: str | None,
    original_response: Any,
) -> dict[str, Any]:
    """Собрать каноническое тело ошибки.

    Формат:
        {
            "status": 400,
            "statusText": "Bad Request",
            "error": {"message": "...", "type": "..."},
            "original_response_from_provider": {...},
        }

    Сообщение никогда не бывает пустым: если провайдер его не прислал,
    подставляется общий текст.

    Args:
        status: Статус из тела ответа провайдера.
        status_text: Краткое описание статуса.
        message: Человекочитаемое сообщение об ошибке.
        error_type: Тип ошибки.
        original_response: Исходное тело ответа провайдера (без изменений).

    Returns:
        Словарь errorResponse.
    """
    return {
        "status": status,
        "statusText": status_text or "Error",
        "error": {
            "message": message or "An unknown error occurred",
            "type": error_type or status_text or "Unknown Error",
        },
        "original_response_from_provider": original_response,
    }


class ProviderError(Exception):
    """Жёсткая ошибка провайдера (каноническая ошибка).

    Выбрасывается когда провайдер вернул non-2xx ответ или ответ,
    из которого нельзя извлечь изображения. Биллинг трактует её
    как ошибку с полным возвратом.

    Attributes:
        status: HTTP-статус, который нужно вернуть клиенту.
        error_response: Каноническое тело ошибки (см. build_error_response).
        provider: Идентификатор провайдера.
    """

    def __init__(
        self,
        status: int,
        error_response: dict[str, Any],
        *,
        provider: str,
    ) -> None:
        """Создать ошибку провайдера.

        Args:
            status: HTTP-статус ответа.
            error_response: Каноническое тело ошибки.
            provider: Идентификатор провайдера.
        """
        self.status = status
        self.error_response = error_response
        self.provider = provider
        super().__init__(self.message)

    @property
    def message(self) -> str:
        """Сообщение об ошибке из канонического тела."""
        error = self.error_response.get("error") or {}
        return str(error.get("message") or "An unknown error occurred")

    @property
    def error_type(self) -> str | None:
        """Тип ошибки из канонического тела."""
        error = self.error_response.get("error") or {}
        return error.get("type")

    @property
    def original_response(self) -> Any:
        """Исходный ответ провайдера."""
        return self.error_response.get("original_response_from_provider")

    def to_dict(self) -> dict[str, Any]:
        """Сериализовать ошибку в каноническую форму {status, errorResponse}."""
        return {"status": self.status, "errorResponse": self.error_response}

    @override
    def __str__(self) -> str:
        """Строковое представление ошибки."""
        return f"[{self.provider}:{self.status}] {self.message}"
