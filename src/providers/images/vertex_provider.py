"""Адаптер для Vertex AI (Imagen).

Авторизация — через сервисный аккаунт Google Cloud. JSON-ключ аккаунта
хранится в конфигурации целиком, закодированным в base64
(AI__GOOGLE_SERVICE_ACCOUNT_KEY). По нему google-auth выдаёт bearer-токен.

Ошибки декодирования ключа и получения токена — ошибки конфигурации:
повторять такой запрос бессмысленно.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import json
from typing import TYPE_CHECKING, Any, Protocol

import httpx
from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account
from typing_extensions import override

from src.core.exceptions import ConfigurationError, ProviderError, build_error_response
from src.providers.images.base import (
    BaseImageAdapter,
    GenerationRequest,
    ImageData,
    ImageGenerationResult,
)
from src.providers.images.http import (
    DEFAULT_TIMEOUT_SECONDS,
    create_http_client,
    read_json,
    send_request,
)
from src.providers.images.registry import register_provider
from src.utils.logging import get_logger
from src.utils.timezone import unix_now

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = get_logger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


class AccessTokenProvider(Protocol):
    """Источник bearer-токена Google Cloud."""

    async def get_token(self) -> str:
        """Получить действующий токен доступа."""
        ...


def decode_service_account_key(encoded_key: str) -> dict[str, Any]:
    """Декодировать base64-JSON ключ сервисного аккаунта.

    Raises:
        ConfigurationError: Если строка не base64 или внутри не JSON-объект.
    """
    try:
        info = json.loads(base64.b64decode(encoded_key, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise ConfigurationError(
            "Invalid GOOGLE_SERVICE_ACCOUNT_KEY format. Must be base64 encoded JSON.",
            provider="vertex",
        ) from e

    if not isinstance(info, dict):
        raise ConfigurationError(
            "Invalid GOOGLE_SERVICE_ACCOUNT_KEY format. Must be base64 encoded JSON.",
            provider="vertex",
        )
    return info


class ServiceAccountTokenProvider:
    """Токены через google-auth по ключу сервисного аккаунта.

    Credentials создаются один раз и обновляются, когда токен истёк.
    refresh() синхронный (requests), поэтому выполняется в отдельном потоке.
    """

    def __init__(self, service_account_info: dict[str, Any]) -> None:
        self._info = service_account_info
        self._credentials: service_account.Credentials | None = None

    async def get_token(self) -> str:
        """Получить действующий токен доступа.

        Raises:
            ConfigurationError: Ключ некорректен или токен не выдан.
        """
        try:
            if self._credentials is None:
                self._credentials = service_account.Credentials.from_service_account_info(
                    self._info,
                    scopes=[CLOUD_PLATFORM_SCOPE],
                )
            if not self._credentials.valid:
                await asyncio.to_thread(self._credentials.refresh, Request())
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            logger.error("Не удалось получить токен Google Cloud: %s", e)
            raise ConfigurationError(
                "Failed to get Google Cloud access token",
                provider="vertex",
            ) from e

        token = self._credentials.token
        if not token:
            raise ConfigurationError(
                "Failed to get Google Cloud access token",
                provider="vertex",
            )
        return token


class VertexAdapter(BaseImageAdapter):
    """Адаптер для Vertex AI Imagen (:predict)."""

    def __init__(
        self,
        *,
        project_id: str,
        location: str,
        service_account_key: str | None = None,
        token_provider: AccessTokenProvider | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Создать адаптер Vertex AI.

        Args:
            project_id: ID проекта Google Cloud.
            location: Регион (например, us-central1).
            service_account_key: base64-JSON ключ сервисного аккаунта.
            token_provider: Готовый источник токенов (для тестов).
            timeout: Таймаут HTTP-запросов в секундах.
            http_client: Готовый httpx-клиент (для тестов).
        """
        self._project_id = project_id
        self._location = location
        self._service_account_key = service_account_key
        self._token_provider = token_provider
        self._client = http_client or create_http_client(timeout=timeout)

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "vertex"

    def _get_token_provider(self) -> AccessTokenProvider:
        """Источник токенов (ключ декодируется при первом вызове)."""
        if self._token_provider is None:
            if not self._service_account_key:
                raise ConfigurationError(
                    "GOOGLE_SERVICE_ACCOUNT_KEY is required for Vertex AI "
                    "(base64 encoded service account JSON)",
                    provider="vertex",
                )
            info = decode_service_account_key(self._service_account_key)
            self._token_provider = ServiceAccountTokenProvider(info)
        return self._token_provider

    def _predict_url(self, model_id: str) -> str:
        return (
            f"https://{self._location}-aiplatform.googleapis.com/v1/"
            f"projects/{self._project_id}/locations/{self._location}/"
            f"publishers/google/models/{model_id}:predict"
        )

    @override
    async def generate(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Выполнить генерацию через Imagen :predict."""
        token = await self._get_token_provider().get_token()

        logger.debug("Vertex: model=%s, prompt='%s'", request.model, request.prompt[:100])

        response = await send_request(
            self._client,
            "POST",
            self._predict_url(request.model),
            provider=self.provider_name,
            headers={"Authorization": f"Bearer {token}"},
            json={
                "instances": [{"prompt": request.prompt}],
                "parameters": {
                    "sampleCount": 1,
                    "safetySetting": "block_only_high",
                },
            },
        )
        data = read_json(response)

        if not response.is_success:
            error = data.get("error") if isinstance(data, dict) else None
            if not isinstance(error, dict):
                error = {}
            logger.error(
                "Vertex вернул ошибку: status=%d, reason=%s",
                response.status_code,
                error.get("status"),
            )
            raise ProviderError(
                response.status_code,
                build_error_response(
                    status=error.get("code") or response.status_code,
                    status_text=error.get("status") or response.reason_phrase,
                    message=error.get("message"),
                    error_type=error.get("status"),
                    original_response=data,
                ),
                provider=self.provider_name,
            )

        predictions = data.get("predictions") if isinstance(data, dict) else None
        images = [
            prediction["bytesBase64Encoded"]
            for prediction in predictions or []
            if prediction.get("bytesBase64Encoded")
        ]

        if not images:
            # Пустой predictions — обычно промпт заблокирован фильтрами
            raise ProviderError(
                406,
                build_error_response(
                    status=406,
                    status_text="No image generated",
                    message="Vertex AI returned no images (the prompt may have been filtered)",
                    error_type="No image generated",
                    original_response=data,
                ),
                provider=self.provider_name,
            )

        return ImageGenerationResult(
            created=unix_now(),
            data=[ImageData(b64_json=image) for image in images],
        )

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.aclose()


class VertexAdapterFactory:
    """Фабрика для создания Vertex-адаптера."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер если настроены проект и сервисный аккаунт."""
        ai = settings.ai
        if ai.google_cloud_project_id is None or ai.google_service_account_key is None:
            return None

        return VertexAdapter(
            project_id=ai.google_cloud_project_id,
            location=ai.google_cloud_location,
            service_account_key=ai.google_service_account_key.get_secret_value(),
            timeout=settings.request_timeout,
        )


# AI__GOOGLE_CLOUD_PROJECT_ID, AI__GOOGLE_CLOUD_LOCATION, AI__GOOGLE_SERVICE_ACCOUNT_KEY
register_provider("vertex", VertexAdapterFactory())
