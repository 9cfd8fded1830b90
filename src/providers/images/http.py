"""Общие HTTP-помощники для адаптеров на httpx."""

from __future__ import annotations

from typing import Any

import httpx

from src.core.exceptions import ProviderError, build_error_response
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Таймаут по умолчанию для HTTP-запросов (в секундах)
DEFAULT_TIMEOUT_SECONDS = 180.0


def create_http_client(
    *,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    proxy_url: str | None = None,
    base_url: str = "",
) -> httpx.AsyncClient:
    """Создать HTTP-клиент адаптера.

    Args:
        timeout: Таймаут запросов в секундах.
        proxy_url: URL прокси-сервера (опционально).
        base_url: Базовый URL API провайдера.

    Returns:
        Настроенный httpx.AsyncClient.
    """
    return httpx.AsyncClient(base_url=base_url, timeout=timeout, proxy=proxy_url)


def read_json(response: httpx.Response) -> Any:
    """Прочитать тело ответа как JSON.

    Если тело не JSON — возвращается сырой текст (или None для пустого тела),
    чтобы исходный ответ провайдера всё равно попал в диагностику.
    """
    try:
        return response.json()
    except ValueError:
        return response.text or None


async def send_request(
    client: httpx.AsyncClient,
    method: str,
    url: str,
    *,
    provider: str,
    **kwargs: Any,
) -> httpx.Response:
    """Выполнить запрос к провайдеру.

    Сетевые сбои (обрыв соединения, таймаут) превращаются в ProviderError
    со статусом 502: ответа провайдера нет, поэтому
    original_response_from_provider = None.

    Args:
        client: HTTP-клиент адаптера.
        method: HTTP-метод.
        url: URL (абсолютный или относительно base_url клиента).
        provider: Идентификатор провайдера для ошибок и логов.
        **kwargs: Аргументы httpx.AsyncClient.request (json, headers, ...).

    Returns:
        Ответ провайдера (с любым статусом).

    Raises:
        ProviderError: При сетевой ошибке.
    """
    try:
        return await client.request(method, url, **kwargs)
    except httpx.TransportError as e:
        raise network_error(provider, e) from e


def network_error(provider: str, error: Exception) -> ProviderError:
    """Каноническая ошибка для сетевого сбоя (ответа провайдера нет)."""
    logger.error("Сетевая ошибка %s: %s", provider, error)
    return ProviderError(
        502,
        build_error_response(
            status=502,
            status_text="Bad Gateway",
            message=f"Network error while calling {provider}: {error}",
            error_type="network_error",
            original_response=None,
        ),
        provider=provider,
    )
