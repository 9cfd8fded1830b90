"""Адаптер для Google Gemini (generateContent с картинками в ответе).

Особенности:
- Ключ берётся из пула (см. credentials.py): для бесплатной модели —
  случайный, для остальных — первый
- Запрос может идти через HTTP(S)-прокси (Settings.proxy)
- Ответ — список частей: текст и inline-картинки в base64. Картинки
  извлекаются по порядку; если картинок нет, возвращается ошибка 406
  с текстом модели для диагностики
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
from typing_extensions import override

from src.core.exceptions import ProviderError, build_error_response
from src.providers.images.base import (
    BaseImageAdapter,
    GenerationRequest,
    ImageData,
    ImageGenerationResult,
)
from src.providers.images.credentials import (
    GEMINI_FREE_MODEL_ID,
    parse_key_list,
    select_gemini_key,
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

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta"

# Понятное сообщение вместо RESOURCE_EXHAUSTED для бесплатной модели
RATE_LIMIT_MESSAGE = "This model hit a global rate limit. Please try again."


class GeminiAdapter(BaseImageAdapter):
    """Адаптер для Gemini API."""

    def __init__(
        self,
        api_keys: list[str],
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        proxy_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Создать адаптер Gemini.

        Args:
            api_keys: Пул API-ключей (может быть пустым — тогда ошибка при вызове).
            timeout: Таймаут HTTP-запросов в секундах.
            proxy_url: URL прокси-сервера (опционально).
            http_client: Готовый httpx-клиент (для тестов).
        """
        self._api_keys = api_keys
        self._timeout = timeout
        self._proxy_url = proxy_url

        if http_client is None and proxy_url:
            logger.info("Используем прокси для Gemini API: %s", proxy_url)
        self._client = http_client or create_http_client(
            timeout=timeout,
            proxy_url=proxy_url,
        )

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "gemini"

    @override
    async def generate(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Выполнить генерацию через generateContent."""
        api_key = select_gemini_key(request.model, self._api_keys)

        parts: list[dict[str, Any]] = [{"text": request.prompt}]
        for image in request.images_data:
            parts.append(
                {
                    "inline_data": {
                        "mime_type": image.content_type,
                        "data": image.to_base64(),
                    }
                }
            )

        logger.debug(
            "Gemini: model=%s, images=%d, prompt='%s'",
            request.model,
            len(request.images_data),
            request.prompt[:100],
        )

        response = await send_request(
            self._client,
            "POST",
            f"{GEMINI_API_URL}/models/{request.model}:generateContent",
            provider=self.provider_name,
            params={"key": api_key},
            json={
                "contents": [{"parts": parts}],
                "generationConfig": {"responseModalities": ["Text", "Image"]},
            },
        )
        data = read_json(response)

        if not response.is_success:
            raise self._provider_error(response.status_code, data, request.model)

        images, text = _extract_parts(data)

        if not images:
            logger.warning(
                "Gemini не вернул изображение: model=%s, text=%s",
                request.model,
                (text or "")[:200],
            )
            raise ProviderError(
                406,
                build_error_response(
                    status=406,
                    status_text="No image generated",
                    message=text or "No image or text found in response",
                    error_type="No image generated",
                    original_response=data,
                ),
                provider=self.provider_name,
            )

        return ImageGenerationResult(
            created=unix_now(),
            data=[ImageData(b64_json=image) for image in images],
        )

    def _provider_error(
        self,
        http_status: int,
        data: Any,
        model_id: str,
    ) -> ProviderError:
        """Каноническая ошибка по ответу Google API.

        Формат ответа: {"error": {"code": 429, "status": "RESOURCE_EXHAUSTED",
        "message": "..."}}.
        """
        error = data.get("error") if isinstance(data, dict) else None
        if not isinstance(error, dict):
            error = {}

        status_text = error.get("status")
        message = error.get("message")
        if status_text == "RESOURCE_EXHAUSTED" and model_id == GEMINI_FREE_MODEL_ID:
            message = RATE_LIMIT_MESSAGE

        logger.error(
            "Gemini вернул ошибку: status=%d, reason=%s, model=%s",
            http_status,
            status_text,
            model_id,
        )
        return ProviderError(
            http_status,
            build_error_response(
                status=error.get("code") or http_status,
                status_text=status_text,
                message=message,
                error_type=status_text,
                original_response=data,
            ),
            provider=self.provider_name,
        )

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.aclose()


def _extract_parts(data: Any) -> tuple[list[str], str | None]:
    """Извлечь картинки (base64) и первый текст из первого кандидата.

    Returns:
        (картинки в порядке ответа, первый текстовый фрагмент или None).
    """
    if not isinstance(data, dict):
        return [], None

    candidates = data.get("candidates")
    first = candidates[0] if isinstance(candidates, list) and candidates else None
    if not isinstance(first, dict):
        return [], None

    content = first.get("content")
    parts = content.get("parts") if isinstance(content, dict) else None
    images: list[str] = []
    text: str | None = None

    for part in parts if isinstance(parts, list) else []:
        if not isinstance(part, dict):
            continue
        inline = part.get("inlineData") or part.get("inline_data")
        if isinstance(inline, dict) and inline.get("data"):
            images.append(inline["data"])
        elif text is None and part.get("text"):
            text = part["text"]

    return images, text


class GeminiAdapterFactory:
    """Фабрика для создания Gemini-адаптера."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер если настроена строка ключей."""
        raw_keys = settings.ai.gemini_api_keys
        if raw_keys is None:
            return None

        return GeminiAdapter(
            api_keys=parse_key_list(raw_keys.get_secret_value()),
            timeout=settings.request_timeout,
            proxy_url=settings.proxy,
        )


# Ключи через запятую: AI__GEMINI_API_KEYS
register_provider("gemini", GeminiAdapterFactory())
