"""Тесты для опроса асинхронных задач."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from src.providers.images.fal_provider import map_fal_status
from src.providers.images.polling import (
    AsyncJobPoller,
    JobStatus,
    PollableJob,
    error_message,
)
from src.providers.images.replicate_provider import map_replicate_status

STATUS_URL = "https://api.example.com/jobs/1"


def _sequence(
    items: list[httpx.Response | Exception],
) -> tuple[Callable[[httpx.Request], httpx.Response], list[httpx.Request]]:
    """Обработчик MockTransport, который отдаёт ответы по очереди.

    Последний элемент повторяется, если запросов больше, чем ответов.
    """
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        item = items[min(len(calls), len(items)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    return handler, calls


def _poller(handler: Any, max_attempts: int = 60) -> AsyncJobPoller:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AsyncJobPoller(
        client,
        provider_label="Replicate",
        interval=0,
        max_attempts=max_attempts,
    )


@pytest.mark.asyncio
async def test_poller_completes_after_exact_number_of_polls() -> None:
    """Тест: успех ровно после того опроса, который вернул succeeded."""
    handler, calls = _sequence(
        [
            httpx.Response(200, json={"status": "starting"}),
            httpx.Response(200, json={"status": "processing"}),
            httpx.Response(200, json={"status": "succeeded", "output": ["https://x/1.png"]}),
        ]
    )
    job = PollableJob(status_url=STATUS_URL, status=JobStatus.RUNNING)

    outcome = await _poller(handler).wait(job, map_replicate_status)

    assert outcome.is_completed is True
    assert outcome.error is None
    assert len(calls) == 3
    assert job.attempts == 3
    assert job.last_payload["output"] == ["https://x/1.png"]


@pytest.mark.asyncio
async def test_poller_times_out_softly() -> None:
    """Тест: задача не завершилась за 60 попыток — мягкий timeout_error."""
    handler, calls = _sequence([httpx.Response(200, json={"status": "processing"})])
    job = PollableJob(status_url=STATUS_URL, status=JobStatus.RUNNING)

    outcome = await _poller(handler).wait(job, map_replicate_status)

    assert len(calls) == 60
    assert job.status is JobStatus.TIMEOUT
    assert outcome.is_completed is False
    assert outcome.error is not None
    assert outcome.error.type == "timeout_error"
    assert outcome.error.message == "Prediction timed out on Replicate - please try again later"
    assert outcome.error.original_response_from_provider == {"status": "processing"}


@pytest.mark.asyncio
async def test_poller_transport_failure_stops_polling() -> None:
    """Тест: сбой сети на попытке k — polling_error и больше ни одного запроса."""
    handler, calls = _sequence(
        [
            httpx.Response(200, json={"status": "processing"}),
            httpx.Response(200, json={"status": "processing"}),
            httpx.ConnectError("connection reset"),
            httpx.Response(200, json={"status": "succeeded"}),
        ]
    )
    job = PollableJob(status_url=STATUS_URL, status=JobStatus.RUNNING)

    outcome = await _poller(handler).wait(job, map_replicate_status)

    assert len(calls) == 3
    assert job.attempts == 3
    assert outcome.error is not None
    assert outcome.error.type == "polling_error"
    assert outcome.error.message == "Polling request failed"


@pytest.mark.asyncio
async def test_poller_http_error_is_soft() -> None:
    """Тест: non-2xx ответ на запрос статуса — мягкий polling_error с телом ответа."""
    handler, calls = _sequence([httpx.Response(503, json={"error": "Service unavailable"})])
    job = PollableJob(status_url=STATUS_URL, status=JobStatus.RUNNING)

    outcome = await _poller(handler).wait(job, map_replicate_status)

    assert len(calls) == 1
    assert outcome.error is not None
    assert outcome.error.type == "polling_error"
    assert outcome.error.message == "Service unavailable"
    assert outcome.error.original_response_from_provider == {"error": "Service unavailable"}


@pytest.mark.asyncio
async def test_poller_failed_job_uses_upstream_status_as_type() -> None:
    """Тест: задача провалилась — тип ошибки равен статусу провайдера в нижнем регистре."""
    handler, _ = _sequence(
        [
            httpx.Response(200, json={"status": "IN_PROGRESS"}),
            httpx.Response(200, json={"status": "ERROR", "error": "NSFW content detected"}),
        ]
    )
    job = PollableJob(status_url=STATUS_URL, status=JobStatus.RUNNING)

    outcome = await _poller(handler).wait(job, map_fal_status)

    assert job.status is JobStatus.FAILED
    assert outcome.error is not None
    assert outcome.error.type == "error"
    assert outcome.error.message == "NSFW content detected"


@pytest.mark.asyncio
async def test_poller_canceled_job() -> None:
    """Тест: отменённая задача — мягкая ошибка canceled."""
    handler, _ = _sequence([httpx.Response(200, json={"status": "canceled"})])
    job = PollableJob(status_url=STATUS_URL, status=JobStatus.RUNNING)

    outcome = await _poller(handler).wait(job, map_replicate_status)

    assert outcome.error is not None
    assert outcome.error.type == "canceled"
    assert outcome.error.message == "Generation failed"


@pytest.mark.asyncio
async def test_poller_does_not_poll_already_failed_job() -> None:
    """Тест: задача провалилась уже при создании — опроса нет."""
    handler, calls = _sequence([httpx.Response(200, json={"status": "processing"})])
    job = PollableJob(
        status_url=STATUS_URL,
        status=JobStatus.FAILED,
        last_payload={"status": "failed", "error": "Invalid input"},
    )

    outcome = await _poller(handler).wait(job, map_replicate_status)

    assert calls == []
    assert outcome.error is not None
    assert outcome.error.type == "failed"
    assert outcome.error.message == "Invalid input"


@pytest.mark.asyncio
async def test_poller_passes_headers_and_params() -> None:
    """Тест: заголовки авторизации и query-параметры уходят в запрос статуса."""
    handler, calls = _sequence([httpx.Response(200, json={"status": "COMPLETED"})])
    job = PollableJob(status_url=STATUS_URL)

    await _poller(handler).wait(
        job,
        map_fal_status,
        headers={"Authorization": "Key fal-key"},
        params={"logs": "0"},
    )

    assert calls[0].headers["Authorization"] == "Key fal-key"
    assert calls[0].url.params["logs"] == "0"


def test_error_message_variants() -> None:
    """Тест: текст ошибки из поля error или текст по умолчанию."""
    assert error_message({"error": "boom"}, "default") == "boom"
    assert error_message({"error": {"code": 1}}, "default") == "{'code': 1}"
    assert error_message({"status": "failed"}, "default") == "default"
    assert error_message("not json", "default") == "default"
