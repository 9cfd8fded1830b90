"""Тесты для Heartbeat (keep-alive в потоковый ответ)."""

import asyncio
from collections.abc import Callable
from typing import Any

import pytest

from src.services.heartbeat import KEEP_ALIVE_BYTE, Heartbeat


class BrokenSink:
    """Ответ, запись в который всегда падает (клиент отключился)."""

    def __init__(self) -> None:
        self.attempts = 0

    def set_header(self, name: str, value: str) -> None:
        pass

    def flush_headers(self) -> None:
        pass

    async def write(self, data: bytes) -> None:
        self.attempts += 1
        raise ConnectionResetError("Connection reset by peer")

    def on_close(self, callback: Callable[[], None]) -> None:
        pass


@pytest.mark.asyncio
async def test_heartbeat_sets_json_headers(sink: Any) -> None:
    """Тест: при входе выставляется Content-Type и отправляются заголовки."""
    async with Heartbeat(sink, interval=10):
        assert sink.headers == {"Content-Type": "application/json"}
        assert sink.headers_flushed is True


@pytest.mark.asyncio
async def test_heartbeat_writes_single_spaces(sink: Any) -> None:
    """Тест: раз в интервал пишется один пробел."""
    async with Heartbeat(sink, interval=0.02) as heartbeat:
        await asyncio.sleep(0.1)

    assert sink.writes
    assert all(chunk == KEEP_ALIVE_BYTE for chunk in sink.writes)
    assert heartbeat.beats == len(sink.writes)
    # Не чаще одного байта за интервал
    assert len(sink.writes) <= 6


@pytest.mark.asyncio
async def test_no_write_before_first_interval(sink: Any) -> None:
    """Тест: быстрая генерация — ни одного байта."""
    async with Heartbeat(sink, interval=10):
        await asyncio.sleep(0)

    assert sink.writes == []


@pytest.mark.asyncio
async def test_no_writes_after_exit(sink: Any) -> None:
    """Тест: после выхода из блока запись прекращается."""
    async with Heartbeat(sink, interval=0.01) as heartbeat:
        await asyncio.sleep(0.03)

    writes = len(sink.writes)
    await asyncio.sleep(0.05)

    assert heartbeat.is_running is False
    assert len(sink.writes) == writes


@pytest.mark.asyncio
async def test_stops_when_block_raises(sink: Any) -> None:
    """Тест: исключение в блоке останавливает heartbeat и пробрасывается."""
    heartbeat = Heartbeat(sink, interval=0.01)

    with pytest.raises(RuntimeError):
        async with heartbeat:
            await asyncio.sleep(0.03)
            raise RuntimeError("adapter failed")

    writes = len(sink.writes)
    await asyncio.sleep(0.05)

    assert heartbeat.is_running is False
    assert len(sink.writes) == writes


@pytest.mark.asyncio
async def test_stops_on_client_disconnect(sink: Any) -> None:
    """Тест: отключение клиента останавливает запись, генерация продолжается."""
    async with Heartbeat(sink, interval=0.01) as heartbeat:
        await asyncio.sleep(0.03)
        sink.disconnect()
        await asyncio.sleep(0)
        writes = len(sink.writes)

        await asyncio.sleep(0.05)

        assert heartbeat.is_running is False
        assert len(sink.writes) == writes


@pytest.mark.asyncio
async def test_write_failure_stops_heartbeat() -> None:
    """Тест: ошибка записи останавливает heartbeat без исключения в блоке."""
    sink = BrokenSink()

    async with Heartbeat(sink, interval=0.01) as heartbeat:
        await asyncio.sleep(0.05)
        assert heartbeat.is_running is False

    assert sink.attempts == 1
    assert heartbeat.beats == 0


@pytest.mark.asyncio
async def test_stop_is_idempotent(sink: Any) -> None:
    """Тест: повторная остановка безопасна."""
    async with Heartbeat(sink, interval=0.01) as heartbeat:
        heartbeat.stop()
        heartbeat.stop()

    heartbeat.stop()
    assert sink.writes == []
