"""Общие фикстуры для всех тестов.

Этот файл содержит pytest-фикстуры, которые используются во всех тестах:
- Настройки без чтения .env (изоляция от окружения разработчика)
- Фабрика httpx-клиентов на MockTransport (ответы провайдеров без сети)
- Потоковый ответ-заглушка для проверки heartbeat
"""

from collections.abc import Callable

import httpx
import pytest

from src.config.models import ImageProvidersSettings
from src.config.settings import Settings

Handler = Callable[[httpx.Request], httpx.Response]


class RecordingSink:
    """Потоковый ответ, который запоминает всё, что в него записали."""

    def __init__(self) -> None:
        self.headers: dict[str, str] = {}
        self.headers_flushed = False
        self.writes: list[bytes] = []
        self._close_callbacks: list[Callable[[], None]] = []

    def set_header(self, name: str, value: str) -> None:
        self.headers[name] = value

    def flush_headers(self) -> None:
        self.headers_flushed = True

    async def write(self, data: bytes) -> None:
        self.writes.append(data)

    def on_close(self, callback: Callable[[], None]) -> None:
        self._close_callbacks.append(callback)

    def disconnect(self) -> None:
        """Сымитировать отключение клиента."""
        for callback in self._close_callbacks:
            callback()


@pytest.fixture
def settings() -> Settings:
    """Настройки без ключей провайдеров (кроме тестового)."""
    return Settings(_env_file=None, ai=ImageProvidersSettings())


@pytest.fixture
def make_client() -> Callable[[Handler], httpx.AsyncClient]:
    """Фабрика httpx-клиентов с MockTransport.

    Пример:
        client = make_client(lambda request: httpx.Response(200, json={...}))
    """

    def _make(handler: Handler) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


@pytest.fixture
def sink() -> RecordingSink:
    """Потоковый ответ-заглушка."""
    return RecordingSink()
