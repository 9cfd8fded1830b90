"""Адаптер для DeepInfra (OpenAI-совместимый Images API).

Тело запроса — подмножество OpenAI: prompt, model, user.
Ответы об ошибках у DeepInfra бывают в разных формах, поэтому каждое поле
канонической ошибки берётся из нескольких необязательных полей ответа
с откатом на общий текст.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from typing_extensions import override

from src.core.exceptions import build_error_response
from src.providers.images.base import BaseImageAdapter
from src.providers.images.openai_provider import OpenAICompatibleAdapter
from src.providers.images.registry import register_provider

if TYPE_CHECKING:
    import httpx

    from src.config.settings import Settings

# OpenAI-совместимый endpoint DeepInfra
DEEPINFRA_BASE_URL = "https://api.deepinfra.com/v1/openai"


class DeepInfraAdapter(OpenAICompatibleAdapter):
    """Адаптер для DeepInfra."""

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "deepinfra"

    @override
    def _error_response(
        self,
        response: httpx.Response,
        payload: Any,
    ) -> dict[str, Any]:
        """Каноническое тело ошибки с откатом по полям ответа.

        status      ← payload.status        | 500
        statusText  ← payload.statusText    | "Unknown Error"
        message     ← payload.error.message | "An unknown error occurred"
        type        ← payload.error.type    | payload.statusText | "Unknown Error"
        """
        body = payload if isinstance(payload, dict) else {}
        error = body.get("error")
        if not isinstance(error, dict):
            error = {}

        status_text = body.get("statusText")
        return build_error_response(
            status=body.get("status") or 500,
            status_text=status_text or "Unknown Error",
            message=error.get("message") or "An unknown error occurred",
            error_type=error.get("type") or status_text or "Unknown Error",
            original_response=payload,
        )


class DeepInfraAdapterFactory:
    """Фабрика для создания DeepInfra-адаптера."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер если настроен API-ключ."""
        api_key = settings.ai.deepinfra_api_key
        if api_key is None:
            return None

        return DeepInfraAdapter(
            api_key=api_key.get_secret_value(),
            base_url=DEEPINFRA_BASE_URL,
            timeout=settings.request_timeout,
        )


# API-ключ: AI__DEEPINFRA_API_KEY
register_provider("deepinfra", DeepInfraAdapterFactory())
