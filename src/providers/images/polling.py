"""Опрос асинхронных задач провайдеров (Replicate, Fal).

Некоторые провайдеры не отдают результат сразу: они ставят задачу
в очередь и возвращают URL статуса. Этот модуль реализует общую
машину состояний опроса:

    SUBMITTED → RUNNING → {COMPLETED | FAILED | CANCELED | TIMEOUT}

У провайдеров разные словари статусов ("starting"/"succeeded" у Replicate,
"IN_QUEUE"/"COMPLETED" у Fal) — адаптер передаёт функцию, которая
переводит их в JobStatus.

Все неуспешные исходы опроса — "мягкие": возвращаются как SoftError,
а не выбрасываются. Провайдер мог уже потратить ресурсы, и биллинг
должен отличать такой исход от обычной ошибки.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

import httpx

from src.providers.images.base import SoftError
from src.providers.images.http import read_json
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Интервал опроса статуса задачи (в секундах)
POLL_INTERVAL_SECONDS = 2.0

# Максимальное количество попыток опроса (60 × 2 сек ≈ 2 минуты)
MAX_POLL_ATTEMPTS = 60


class JobStatus(StrEnum):
    """Состояние асинхронной задачи у провайдера."""

    SUBMITTED = "submitted"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELED = "canceled"
    TIMEOUT = "timeout"


# Состояния, в которых задача завершилась неуспешно
FAILURE_STATUSES = frozenset({JobStatus.FAILED, JobStatus.CANCELED})

# Функция перевода статуса провайдера в JobStatus
StatusMapper = Callable[[Any], JobStatus]


@dataclass
class PollableJob:
    """Асинхронная задача на время одного вызова адаптера.

    Нигде не сохраняется: живёт только пока идёт опрос.

    Attributes:
        status_url: URL для опроса статуса.
        result_url: URL для получения результата (Fal) или None.
        status: Текущее состояние.
        attempts: Сколько запросов статуса уже выполнено.
        last_payload: Последний ответ провайдера.
    """

    status_url: str
    result_url: str | None = None
    status: JobStatus = JobStatus.SUBMITTED
    attempts: int = 0
    last_payload: Any = None


@dataclass
class PollOutcome:
    """Итог опроса.

    Attributes:
        job: Задача в конечном состоянии.
        error: Мягкая ошибка или None, если задача COMPLETED.
    """

    job: PollableJob
    error: SoftError | None = None

    @property
    def is_completed(self) -> bool:
        """Проверить, завершилась ли задача успешно."""
        return self.error is None and self.job.status is JobStatus.COMPLETED


def error_message(payload: Any, default: str) -> str:
    """Достать текст ошибки из ответа провайдера.

    Args:
        payload: Тело ответа (dict, строка или None).
        default: Текст по умолчанию.

    Returns:
        Значение поля "error" (приведённое к строке) или default.
    """
    if isinstance(payload, Mapping):
        error = payload.get("error")
        if error:
            return error if isinstance(error, str) else str(error)
    return default


class AsyncJobPoller:
    """Опрос статуса задачи с фиксированным интервалом.

    Пример использования:
        poller = AsyncJobPoller(client, provider_label="fal.ai")
        job = PollableJob(status_url=status_url, result_url=result_url)
        outcome = await poller.wait(job, map_fal_status, headers=auth_headers)
        if not outcome.is_completed:
            return ImageGenerationResult.soft_failure(...)
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        provider_label: str,
        interval: float = POLL_INTERVAL_SECONDS,
        max_attempts: int = MAX_POLL_ATTEMPTS,
    ) -> None:
        """Создать поллер.

        Args:
            client: HTTP-клиент адаптера.
            provider_label: Название провайдера для сообщений об ошибках.
            interval: Пауза перед каждым запросом статуса (в секундах).
            max_attempts: Максимум запросов статуса.
        """
        self._client = client
        self._provider_label = provider_label
        self._interval = interval
        self._max_attempts = max_attempts

    async def wait(
        self,
        job: PollableJob,
        map_status: StatusMapper,
        *,
        headers: Mapping[str, str] | None = None,
        params: Mapping[str, str] | None = None,
    ) -> PollOutcome:
        """Опрашивать статус, пока задача не завершится.

        Перед каждым запросом — пауза interval. Опрос прекращается:
        - при COMPLETED — успех
        - при FAILED/CANCELED — мягкая ошибка с типом = статус провайдера
        - при сбое самого запроса статуса — мягкая ошибка polling_error
        - после max_attempts запросов — мягкая ошибка timeout_error

        Args:
            job: Задача (status уже выставлен по ответу на создание).
            map_status: Перевод статуса провайдера в JobStatus.
            headers: Заголовки запроса статуса (авторизация).
            params: Query-параметры запроса статуса.

        Returns:
            PollOutcome с задачей и мягкой ошибкой (если есть).
        """
        if job.status in FAILURE_STATUSES:
            return PollOutcome(job=job, error=self._failure_error(job))

        while job.status is not JobStatus.COMPLETED and job.attempts < self._max_attempts:
            await asyncio.sleep(self._interval)

            try:
                response = await self._client.get(
                    job.status_url,
                    headers=headers,
                    params=params,
                )
            except httpx.HTTPError as e:
                job.attempts += 1
                logger.warning(
                    "Сбой запроса статуса %s: attempt=%d, error=%s",
                    self._provider_label,
                    job.attempts,
                    e,
                )
                return PollOutcome(
                    job=job,
                    error=SoftError(
                        message="Polling request failed",
                        type="polling_error",
                        original_response_from_provider=None,
                    ),
                )

            job.attempts += 1
            job.last_payload = read_json(response)

            if not response.is_success:
                logger.warning(
                    "Запрос статуса %s вернул %d: attempt=%d",
                    self._provider_label,
                    response.status_code,
                    job.attempts,
                )
                return PollOutcome(
                    job=job,
                    error=SoftError(
                        message=error_message(job.last_payload, "Polling request failed"),
                        type="polling_error",
                        original_response_from_provider=job.last_payload,
                    ),
                )

            upstream_status = _upstream_status(job.last_payload)
            job.status = map_status(upstream_status)

            logger.debug(
                "Статус задачи %s: status=%s (%s), attempt=%d/%d",
                self._provider_label,
                upstream_status,
                job.status.value,
                job.attempts,
                self._max_attempts,
            )

            if job.status in FAILURE_STATUSES:
                return PollOutcome(job=job, error=self._failure_error(job))

        if job.status is not JobStatus.COMPLETED:
            job.status = JobStatus.TIMEOUT
            logger.warning(
                "Превышено время ожидания задачи %s (%d попыток)",
                self._provider_label,
                job.attempts,
            )
            return PollOutcome(
                job=job,
                error=SoftError(
                    message=(
                        f"Prediction timed out on {self._provider_label} "
                        "- please try again later"
                    ),
                    type="timeout_error",
                    original_response_from_provider=job.last_payload,
                ),
            )

        return PollOutcome(job=job)

    def _failure_error(self, job: PollableJob) -> SoftError:
        """Мягкая ошибка для задачи, которую провайдер пометил как неуспешную."""
        upstream_status = _upstream_status(job.last_payload) or job.status.value
        logger.warning(
            "Задача %s завершилась неуспешно: status=%s",
            self._provider_label,
            upstream_status,
        )
        return SoftError(
            message=error_message(job.last_payload, "Generation failed"),
            type=str(upstream_status).lower(),
            original_response_from_provider=job.last_payload,
        )


def _upstream_status(payload: Any) -> Any:
    """Статус задачи из ответа провайдера (поле "status")."""
    if isinstance(payload, Mapping):
        return payload.get("status")
    return None
