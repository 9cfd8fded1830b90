"""Адаптер для OpenAI Images API.

Этот модуль реализует интеграцию с OpenAI для:
- Генерации изображений (POST /v1/images/generations, JSON)
- Редактирования изображений (POST /v1/images/edits, multipart)

Режим редактирования выбирается по наличию исходного изображения
в запросе (его выставляет хук applyImage модели). Для multipart-запроса
Content-Type не задаётся вручную — SDK сам выставляет boundary.

Базовый класс OpenAICompatibleAdapter переиспользуется для провайдеров
с OpenAI-совместимым API (DeepInfra).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from openai import NOT_GIVEN, APIConnectionError, APIStatusError, AsyncOpenAI
from typing_extensions import override

from src.core.exceptions import ProviderError, build_error_response
from src.providers.images.base import (
    BaseImageAdapter,
    GenerationRequest,
    ImageData,
    ImageGenerationResult,
)
from src.providers.images.http import DEFAULT_TIMEOUT_SECONDS, network_error, read_json
from src.providers.images.registry import register_provider
from src.utils.logging import get_logger
from src.utils.timezone import unix_now

if TYPE_CHECKING:
    from openai.types import ImagesResponse

    from src.config.settings import Settings

logger = get_logger(__name__)

# Для этой модели принудительно ставится минимальный уровень модерации
LOW_MODERATION_MODEL_ID = "gpt-image-1"


class OpenAICompatibleAdapter(BaseImageAdapter):
    """Общая часть адаптеров с OpenAI-совместимым Images API.

    Подклассы определяют provider_name, набор параметров запроса
    и формат канонической ошибки.

    Attributes:
        _client: Асинхронный клиент OpenAI SDK (без автоматических повторов).
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        proxy_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Создать адаптер.

        Args:
            api_key: API-ключ провайдера.
            base_url: URL API провайдера. None — стандартный OpenAI URL.
            timeout: Таймаут запросов в секундах.
            proxy_url: URL прокси-сервера (опционально).
            http_client: Готовый httpx-клиент (для тестов).
        """
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout
        self._proxy_url = proxy_url

        if http_client is None and proxy_url:
            logger.info("Используем прокси для %s: %s", self.provider_name, proxy_url)
            http_client = httpx.AsyncClient(proxy=proxy_url, timeout=timeout)

        # max_retries=0: повторов в ядре нет, ошибка сразу уходит наверх
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
            http_client=http_client,
        )

    @override
    async def generate(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Выполнить генерацию через Images API."""
        try:
            response = await self._call_images_api(request, user_id=user_id)
        except APIStatusError as e:
            payload = read_json(e.response)
            logger.error(
                "%s вернул ошибку: status=%d, model=%s",
                self.provider_name,
                e.status_code,
                request.model,
            )
            raise ProviderError(
                e.status_code,
                self._error_response(e.response, payload),
                provider=self.provider_name,
            ) from e
        except APIConnectionError as e:
            raise network_error(self.provider_name, e) from e

        return self._normalize(response)

    async def _call_images_api(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
    ) -> ImagesResponse:
        """Отправить запрос генерации (JSON)."""
        return await self._client.images.generate(
            prompt=request.prompt,
            model=request.model,
            user=str(user_id),
        )

    def _error_response(
        self,
        response: httpx.Response,
        payload: Any,
    ) -> dict[str, Any]:
        """Каноническое тело ошибки по ответу провайдера."""
        error = payload.get("error") if isinstance(payload, dict) else None
        if not isinstance(error, dict):
            error = {"message": error} if error else {}

        return build_error_response(
            status=response.status_code,
            status_text=response.reason_phrase,
            message=error.get("message"),
            error_type=error.get("type") or error.get("code"),
            original_response=payload,
        )

    def _normalize(self, response: ImagesResponse) -> ImageGenerationResult:
        """Привести ответ Images API к каноническому формату."""
        items = response.data or []
        if not items:
            raise ProviderError(
                502,
                build_error_response(
                    status=502,
                    status_text="No image generated",
                    message=f"{self.provider_name} returned no images",
                    error_type="empty_response",
                    original_response=response.model_dump(exclude_none=True),
                ),
                provider=self.provider_name,
            )

        return ImageGenerationResult(
            created=response.created or unix_now(),
            data=[
                ImageData(
                    url=item.url,
                    b64_json=item.b64_json,
                    revised_prompt=item.revised_prompt,
                )
                for item in items
            ],
        )

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.close()


class OpenAIAdapter(OpenAICompatibleAdapter):
    """Адаптер для OpenAI Images API.

    Пример использования:
        adapter = OpenAIAdapter(api_key="sk-...")
        result = await adapter.generate(
            GenerationRequest(prompt="Кот в космосе", model="gpt-image-1"),
            user_id="42",
        )
    """

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "openai"

    @override
    async def _call_images_api(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
    ) -> ImagesResponse:
        """Отправить запрос генерации (JSON) или редактирования (multipart)."""
        extra_body: dict[str, Any] | None = None
        if request.model == LOW_MODERATION_MODEL_ID:
            extra_body = {"moderation": "low"}

        quality: Any = request.quality or NOT_GIVEN

        if request.image is not None:
            # Несколько исходных изображений уходят списком (image[] в multipart)
            image: Any
            if isinstance(request.image, tuple):
                image = [item.as_upload() for item in request.image]
            else:
                image = request.image.as_upload()

            logger.debug(
                "OpenAI edit: model=%s, images=%d, mask=%s",
                request.model,
                len(image) if isinstance(image, list) else 1,
                "да" if request.mask else "нет",
            )
            return await self._client.images.edit(
                image=image,
                mask=request.mask.as_upload() if request.mask else NOT_GIVEN,
                prompt=request.prompt,
                model=request.model,
                quality=quality,
                user=str(user_id),
                n=1,
                extra_body=extra_body,
            )

        logger.debug("OpenAI generate: model=%s, quality=%s", request.model, request.quality)
        return await self._client.images.generate(
            prompt=request.prompt,
            model=request.model,
            quality=quality,
            user=str(user_id),
            n=1,
            extra_body=extra_body,
        )


# ==============================================================================
# ФАБРИКА АДАПТЕРОВ
# ==============================================================================


class OpenAIAdapterFactory:
    """Фабрика для создания OpenAI-адаптера."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер если настроен API-ключ."""
        api_key = settings.ai.openai_api_key
        if api_key is None:
            return None

        return OpenAIAdapter(
            api_key=api_key.get_secret_value(),
            timeout=settings.request_timeout,
        )


# ==============================================================================
# РЕГИСТРАЦИЯ ПРОВАЙДЕРА
# ==============================================================================

# API-ключ: AI__OPENAI_API_KEY
register_provider("openai", OpenAIAdapterFactory())
