"""Адаптер для Replicate API.

Replicate — платформа для запуска ML-моделей в облаке.
Особенность: модели запускаются асинхронно. Запрос создания идёт
с заголовком "Prefer: wait" — если модель успела отработать, результат
приходит сразу; иначе адаптер опрашивает urls.get через AsyncJobPoller.

Документация: https://replicate.com/docs
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
from src.providers.images.http import (
    DEFAULT_TIMEOUT_SECONDS,
    create_http_client,
    read_json,
    send_request,
)
from src.providers.images.polling import (
    MAX_POLL_ATTEMPTS,
    POLL_INTERVAL_SECONDS,
    AsyncJobPoller,
    JobStatus,
    PollableJob,
)
from src.providers.images.registry import register_provider
from src.utils.logging import get_logger
from src.utils.timezone import to_unix_seconds, unix_now

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = get_logger(__name__)

# URL API Replicate
REPLICATE_API_URL = "https://api.replicate.com/v1"

# Статусы prediction → состояние задачи
REPLICATE_STATUSES: dict[str, JobStatus] = {
    "starting": JobStatus.RUNNING,
    "processing": JobStatus.RUNNING,
    "succeeded": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
    "canceled": JobStatus.CANCELED,
}


def map_replicate_status(status: Any) -> JobStatus:
    """Перевести статус prediction в JobStatus.

    Неизвестный статус считается "ещё выполняется".
    """
    if status is None:
        return JobStatus.SUBMITTED
    mapped = REPLICATE_STATUSES.get(str(status))
    if mapped is None:
        logger.warning("Неизвестный статус prediction: %s", status)
        return JobStatus.RUNNING
    return mapped


class ReplicateAdapter(BaseImageAdapter):
    """Адаптер для Replicate API.

    Тело запроса — один объект input: {"prompt": ...}. Для image-to-image
    (например flux-kontext-max) добавляется исходное изображение
    в виде data URI и aspect_ratio = "match_input_image".

    Пример использования:
        adapter = ReplicateAdapter(api_key="r8_...")
        result = await adapter.generate(
            GenerationRequest(prompt="Кот", model="black-forest-labs/flux-schnell"),
            user_id="42",
        )
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        proxy_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
    ) -> None:
        """Создать адаптер Replicate API.

        Args:
            api_key: API-ключ Replicate (формат: r8_...).
            timeout: Таймаут HTTP-запросов в секундах.
            proxy_url: URL прокси-сервера (опционально).
            http_client: Готовый httpx-клиент (для тестов).
            poll_interval: Интервал опроса статуса в секундах.
            max_poll_attempts: Максимум запросов статуса.
        """
        self._api_key = api_key
        self._timeout = timeout
        self._proxy_url = proxy_url

        self._client = http_client or create_http_client(
            timeout=timeout,
            proxy_url=proxy_url,
        )
        self._poller = AsyncJobPoller(
            self._client,
            provider_label="Replicate",
            interval=poll_interval,
            max_attempts=max_poll_attempts,
        )

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "replicate"

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}"}

    @override
    async def generate(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Выполнить генерацию через Replicate API."""
        input_data: dict[str, Any] = {"prompt": request.prompt}

        if request.source_image is not None:
            input_data["input_image"] = request.source_image.to_data_uri(
                "application/octet-stream"
            )
            input_data["aspect_ratio"] = "match_input_image"

        logger.debug(
            "Replicate: model=%s, image=%s, prompt='%s'",
            request.model,
            "да" if request.image else "нет",
            request.prompt[:100],
        )

        response = await send_request(
            self._client,
            "POST",
            f"{REPLICATE_API_URL}/models/{request.model}/predictions",
            provider=self.provider_name,
            json={"input": input_data},
            headers={**self._auth_headers, "Prefer": "wait"},
        )
        data = read_json(response)

        if not response.is_success:
            raise self._provider_error(response.status_code, data)

        if not isinstance(data, dict):
            raise self._provider_error(502, data)

        if data.get("status") != "succeeded" or not data.get("output"):
            data = await self._wait_for_prediction(data)
            if isinstance(data, ImageGenerationResult):
                return data

        if data.get("status") == "timeout" or not data.get("output"):
            logger.warning("Replicate prediction без результата: id=%s", data.get("id"))
            return ImageGenerationResult.soft_failure(
                created=unix_now(),
                message="Prediction timed out on Replicate - please try again later",
                error_type="timeout_error",
                original_response=data,
            )

        return self._normalize(data)

    async def _wait_for_prediction(
        self,
        data: dict[str, Any],
    ) -> dict[str, Any] | ImageGenerationResult:
        """Ждать завершения prediction (опрашивать urls.get).

        Returns:
            Финальный ответ prediction или результат с мягкой ошибкой.
        """
        status_url = (data.get("urls") or {}).get("get")
        if not status_url:
            status_url = f"{REPLICATE_API_URL}/predictions/{data.get('id')}"

        job = PollableJob(
            status_url=status_url,
            status=map_replicate_status(data.get("status")),
            last_payload=data,
        )
        logger.debug("Ожидание prediction: id=%s, status=%s", data.get("id"), job.status)

        outcome = await self._poller.wait(
            job,
            map_replicate_status,
            headers=self._auth_headers,
        )

        if not outcome.is_completed:
            return ImageGenerationResult(created=unix_now(), error=outcome.error)

        return outcome.job.last_payload

    def _normalize(self, data: dict[str, Any]) -> ImageGenerationResult:
        """Привести prediction к каноническому формату.

        output бывает строкой (один URL) или списком URL.
        """
        output = data["output"]
        urls = output if isinstance(output, list) else [output]

        logger.info("Prediction завершён: id=%s, images=%d", data.get("id"), len(urls))

        return ImageGenerationResult(
            created=to_unix_seconds(data.get("created_at")),
            data=[
                ImageData(url=url, original_response_from_provider=data)
                for url in urls
            ],
        )

    def _provider_error(self, http_status: int, data: Any) -> ProviderError:
        """Каноническая ошибка создания prediction.

        Replicate отвечает в формате problem+json: {"status": 422, "detail": "..."}.
        """
        body = data if isinstance(data, dict) else {}
        logger.error(
            "Ошибка создания prediction: status=%d, detail=%s",
            http_status,
            str(body.get("detail"))[:200],
        )
        return ProviderError(
            http_status,
            build_error_response(
                status=body.get("status") or http_status,
                status_text=body.get("detail") or body.get("title"),
                message=body.get("detail") or body.get("title"),
                error_type=str(body["status"]) if body.get("status") else None,
                original_response=data,
            ),
            provider=self.provider_name,
        )

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.aclose()


# ==============================================================================
# ФАБРИКА АДАПТЕРОВ
# ==============================================================================


class ReplicateAdapterFactory:
    """Фабрика для создания Replicate-адаптеров."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер если настроен API-ключ."""
        api_key = settings.ai.replicate_api_key
        if api_key is None:
            return None

        return ReplicateAdapter(
            api_key=api_key.get_secret_value(),
            timeout=settings.request_timeout,
        )


# ==============================================================================
# РЕГИСТРАЦИЯ ПРОВАЙДЕРА
# ==============================================================================

# Регистрируем Replicate — платформа для запуска ML-моделей
# API-ключ: AI__REPLICATE_API_KEY
register_provider("replicate", ReplicateAdapterFactory())
