"""Keep-alive для долгих генераций.

Пока адаптер ждёт провайдера (опрос очереди может длиться минуты),
прокси между клиентом и сервером закрывают "молчащие" соединения.
Heartbeat раз в интервал пишет в ответ один пробел: JSON-парсер клиента
пропускает ведущие пробелы, данных в них нет.

Время жизни фоновой задачи привязано к блоку async with: она отменяется
при любом выходе из блока (успех, исключение) и при отключении клиента.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from types import TracebackType
from typing import Protocol

from src.config.constants import HEARTBEAT_INTERVAL_SECONDS
from src.utils.logging import get_logger

logger = get_logger(__name__)

KEEP_ALIVE_BYTE = b" "


class ResponseSink(Protocol):
    """Потоковый ответ клиенту (граница HTTP-слоя)."""

    def set_header(self, name: str, value: str) -> None:
        """Установить заголовок (до первой записи)."""
        ...

    def flush_headers(self) -> None:
        """Отправить заголовки клиенту."""
        ...

    async def write(self, data: bytes) -> None:
        """Записать байты в тело ответа."""
        ...

    def on_close(self, callback: Callable[[], None]) -> None:
        """Подписаться на отключение клиента."""
        ...


class Heartbeat:
    """Фоновая запись keep-alive байтов в ответ.

    Пример:
        async with Heartbeat(sink):
            result = await adapter.generate(request, user_id=user_id)
    """

    def __init__(
        self,
        sink: ResponseSink,
        interval: float = HEARTBEAT_INTERVAL_SECONDS,
    ) -> None:
        self._sink = sink
        self._interval = interval
        self._task: asyncio.Task[None] | None = None
        self.beats = 0

    @property
    def is_running(self) -> bool:
        """Пишет ли heartbeat сейчас."""
        return self._task is not None and not self._task.done()

    async def __aenter__(self) -> Heartbeat:
        self._sink.set_header("Content-Type", "application/json")
        self._sink.flush_headers()
        self._task = asyncio.create_task(self._run())
        self._sink.on_close(self.stop)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
        logger.debug("Heartbeat остановлен: байтов=%d", self.beats)

    def stop(self) -> None:
        """Отменить фоновую задачу (безопасно вызывать повторно)."""
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def _run(self) -> None:
        """Цикл: пауза, затем один байт."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._sink.write(KEEP_ALIVE_BYTE)
            except Exception as e:
                # Клиент ушёл: генерация продолжается без keep-alive
                logger.warning("Не удалось записать heartbeat, остановка: %s", e)
                return
            self.beats += 1
