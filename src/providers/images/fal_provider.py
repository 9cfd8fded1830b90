"""Адаптер для fal.ai Queue API.

Fal всегда работает через очередь:
1. POST https://queue.fal.run/{model} — задача поставлена в очередь
2. GET  {status_url}?logs=0           — опрос (IN_QUEUE → IN_PROGRESS → COMPLETED)
3. GET  {response_url}                — готовый результат

Неуспешные исходы опроса и получения результата — мягкие ошибки
(см. polling.py).
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
    SoftError,
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
    error_message,
)
from src.providers.images.registry import register_provider
from src.utils.logging import get_logger
from src.utils.timezone import unix_now

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = get_logger(__name__)

FAL_QUEUE_URL = "https://queue.fal.run"

# Статусы очереди Fal → состояние задачи
FAL_STATUSES: dict[str, JobStatus] = {
    "IN_QUEUE": JobStatus.RUNNING,
    "IN_PROGRESS": JobStatus.RUNNING,
    "COMPLETED": JobStatus.COMPLETED,
    "FAILED": JobStatus.FAILED,
    "ERROR": JobStatus.FAILED,
    "CANCELED": JobStatus.CANCELED,
}


def map_fal_status(status: Any) -> JobStatus:
    """Перевести статус очереди Fal в JobStatus."""
    if status is None:
        return JobStatus.SUBMITTED
    return FAL_STATUSES.get(str(status), JobStatus.RUNNING)


def flatten_image_urls(images: Any) -> list[str]:
    """Собрать URL картинок из ответа Fal.

    images бывает списком объектов {"url": ...} или списком списков
    таких объектов. Порядок сохраняется.
    """
    urls: list[str] = []
    if not isinstance(images, list):
        return urls

    for item in images:
        entries = item if isinstance(item, list) else [item]
        for entry in entries:
            if isinstance(entry, dict) and entry.get("url"):
                urls.append(entry["url"])
    return urls


class FalAdapter(BaseImageAdapter):
    """Адаптер для fal.ai."""

    def __init__(
        self,
        api_key: str,
        *,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        http_client: httpx.AsyncClient | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        max_poll_attempts: int = MAX_POLL_ATTEMPTS,
    ) -> None:
        """Создать адаптер Fal.

        Args:
            api_key: API-ключ Fal.
            timeout: Таймаут HTTP-запросов в секундах.
            http_client: Готовый httpx-клиент (для тестов).
            poll_interval: Интервал опроса статуса в секундах.
            max_poll_attempts: Максимум запросов статуса.
        """
        self._api_key = api_key
        self._client = http_client or create_http_client(timeout=timeout)
        self._poller = AsyncJobPoller(
            self._client,
            provider_label="fal.ai",
            interval=poll_interval,
            max_attempts=max_poll_attempts,
        )

    @property
    @override
    def provider_name(self) -> str:
        """Название провайдера."""
        return "fal"

    @property
    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Key {self._api_key}"}

    @override
    async def generate(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Поставить задачу в очередь, дождаться и забрать результат."""
        submit_response = await send_request(
            self._client,
            "POST",
            f"{FAL_QUEUE_URL}/{request.model}",
            provider=self.provider_name,
            headers=self._auth_headers,
            json={"prompt": request.prompt, "num_images": 1},
        )
        submit_data = read_json(submit_response)

        if not submit_response.is_success or not isinstance(submit_data, dict):
            raise self._provider_error(submit_response, submit_data)

        request_id = submit_data.get("request_id")
        base = f"{FAL_QUEUE_URL}/{request.model}/requests/{request_id}"
        job = PollableJob(
            status_url=submit_data.get("status_url") or f"{base}/status",
            result_url=submit_data.get("response_url") or base,
            status=map_fal_status(submit_data.get("status")),
            last_payload=submit_data,
        )
        logger.debug("Fal: задача поставлена, request_id=%s, model=%s", request_id, request.model)

        outcome = await self._poller.wait(
            job,
            map_fal_status,
            headers=self._auth_headers,
            params={"logs": "0"},
        )
        if not outcome.is_completed:
            return ImageGenerationResult(created=unix_now(), error=outcome.error)

        return await self._fetch_result(job)

    async def _fetch_result(self, job: PollableJob) -> ImageGenerationResult:
        """Забрать результат завершённой задачи."""
        try:
            response = await self._client.get(
                job.result_url or job.status_url,
                headers=self._auth_headers,
            )
        except httpx.HTTPError as e:
            logger.warning("Сбой получения результата Fal: %s", e)
            return ImageGenerationResult(
                created=unix_now(),
                error=SoftError(
                    message="Failed to fetch generation result",
                    type="result_error",
                ),
            )

        result_data = read_json(response)

        if not response.is_success or not isinstance(result_data, dict):
            logger.warning("Fal вернул ошибку результата: status=%d", response.status_code)
            return ImageGenerationResult(
                created=unix_now(),
                error=SoftError(
                    message=error_message(result_data, "Failed to fetch generation result"),
                    type="result_error",
                    original_response_from_provider=result_data,
                ),
            )

        urls = flatten_image_urls(result_data.get("images"))
        logger.info("Fal завершён: images=%d, attempts=%d", len(urls), job.attempts)

        return ImageGenerationResult(
            created=unix_now(),
            data=[
                ImageData(url=url, original_response_from_provider=result_data)
                for url in urls
            ],
            seed=result_data.get("seed"),
        )

    def _provider_error(self, response: httpx.Response, data: Any) -> ProviderError:
        """Каноническая ошибка постановки в очередь.

        Fal отвечает {"detail": "..."} или {"detail": [{"msg": ...}]} (валидация).
        """
        body = data if isinstance(data, dict) else {}
        detail = body.get("detail")
        if isinstance(detail, list) and detail and isinstance(detail[0], dict):
            detail = detail[0].get("msg")

        logger.error("Fal вернул ошибку: status=%d", response.status_code)
        return ProviderError(
            response.status_code,
            build_error_response(
                status=response.status_code,
                status_text=response.reason_phrase,
                message=str(detail) if detail else error_message(data, ""),
                error_type=body.get("type"),
                original_response=data,
            ),
            provider=self.provider_name,
        )

    @override
    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        await self._client.aclose()


class FalAdapterFactory:
    """Фабрика для создания Fal-адаптера."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер если настроен API-ключ."""
        api_key = settings.ai.fal_api_key
        if api_key is None:
            return None

        return FalAdapter(
            api_key=api_key.get_secret_value(),
            timeout=settings.request_timeout,
        )


# API-ключ: AI__FAL_API_KEY
register_provider("fal", FalAdapterFactory())
