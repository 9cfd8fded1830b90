"""Адаптер для Runware REST API.

Runware принимает пакет задач (массив) и отвечает массивом результатов.
Отправляется одна задача imageInference. Её taskUUID — это идентификатор
записи учёта использования: по нему запрос можно найти и у Runware,
и в нашем биллинге.

Runware сам считает стоимость (includeCost=true) — она поднимается
на верхний уровень результата (поле cost).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
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

RUNWARE_API_URL = "https://api.runware.ai/v1"

# Сила изменения исходного изображения по умолчанию (image-to-image, inpainting)
DEFAULT_STRENGTH = 0.8


class RunwareAdapter(BaseImageAdapter):
    """Адаптер для Runware."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key
        self._client = http_client or create_http_client(timeout=timeout)

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "runware"

    @override
    async def generate(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Выполнить генерацию через Runware.

        Raises:
            ConfigurationError: Не передан usage_log_id (нужен как taskUUID).
            ProviderError: Runware вернул ошибку или ответ без data.
        """
        if not usage_log_id:
            raise ConfigurationError(
                "usageLogId is required for Runware provider",
                provider=self.provider_name,
            )

        task = self._build_task(request, task_uuid=usage_log_id)

        logger.debug(
            "Runware: model=%s, task=%s, image=%s, mask=%s",
            request.model,
            usage_log_id,
            "да" if request.image else "нет",
            "да" if request.mask else "нет",
        )

        response = await send_request(
            self._client,
            "POST",
            RUNWARE_API_URL,
            provider=self.provider_name,
            headers={"Authorization": f"Bearer {self._api_key}"},
            json=[task],
        )
        data = read_json(response)

        results = data.get("data") if isinstance(data, dict) else None
        tasks = (
            [item for item in results if isinstance(item, dict)]
            if isinstance(results, list)
            else []
        )

        # 2xx без data — тоже ошибка, статус берётся из ответа как есть
        if not response.is_success or not tasks:
            raise self._provider_error(response.status_code, data)

        # Ищем результат нашей задачи; если не нашли — берём первый
        task_result = next(
            (item for item in tasks if item.get("taskUUID") == usage_log_id),
            tasks[0],
        )

        logger.info(
            "Runware завершён: task=%s, cost=%s",
            usage_log_id,
            task_result.get("cost"),
        )

        return ImageGenerationResult(
            created=unix_now(),
            data=[
                ImageData(
                    url=task_result.get("imageURL"),
                    original_response_from_provider=data,
                )
            ],
            cost=task_result.get("cost"),
        )

    def _build_task(self, request: GenerationRequest, *, task_uuid: str) -> dict[str, Any]:
        """Собрать задачу imageInference."""
        task: dict[str, Any] = {
            "taskType": "imageInference",
            "taskUUID": task_uuid,
            "positivePrompt": request.prompt,
            "model": request.model,
            "outputFormat": "WEBP",
            "width": 1024,
            "height": 1024,
            "numberResults": 1,
            "includeCost": True,
        }

        if request.steps:
            task["steps"] = request.steps

        if request.negative_prompt:
            task["negativePrompt"] = request.negative_prompt

        strength = request.strength if request.strength is not None else DEFAULT_STRENGTH

        if request.source_image is not None:
            task["seedImage"] = request.source_image.to_data_uri()
            task["strength"] = strength

        if request.mask is not None:
            task["maskImage"] = request.mask.to_data_uri()
            task.setdefault("strength", strength)

        return task

    def _provider_error(self, http_status: int, data: Any) -> ProviderError:
        """Каноническая ошибка по ответу Runware ({"errors": [{code, message}]})."""
        errors = data.get("errors") if isinstance(data, dict) else None
        error = errors[0] if errors and isinstance(errors[0], dict) else {}

        logger.error(
            "Runware вернул ошибку: status=%d, code=%s",
            http_status,
            error.get("code"),
        )
        return ProviderError(
            http_status,
            build_error_response(
                status=http_status,
                status_text=error.get("code") or "Error",
                message=error.get("message") or "Runware generation failed",
                error_type=error.get("code") or "runware_error",
                original_response=data,
            ),
            provider=self.provider_name,
        )

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.aclose()


class RunwareAdapterFactory:
    """Фабрика для создания Runware-адаптера."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер если настроен API-ключ."""
        api_key = settings.ai.runware_api_key
        if api_key is None:
            return None

        return RunwareAdapter(
            api_key=api_key.get_secret_value(),
            timeout=settings.request_timeout,
        )


# API-ключ: AI__RUNWARE_API_KEY
register_provider("runware", RunwareAdapterFactory())
