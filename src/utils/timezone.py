"""Утилиты для работы со временем и часовыми поясами.

- get_timezone() — часовой пояс для форматтера логов
- unix_now() — текущее время в unix-секундах (поле created результата)
- to_unix_seconds() — ISO-8601 строка провайдера → unix-секунды
"""

import time
from datetime import UTC, datetime
from zoneinfo import ZoneInfo


def get_timezone(timezone_name: str) -> ZoneInfo:
    """Получить объект часового пояса по имени.

    Args:
        timezone_name: Название часового пояса из базы IANA.
            Примеры: "Europe/Moscow", "UTC", "America/New_York".

    Returns:
        Объект ZoneInfo для указанного часового пояса.

    Raises:
        ZoneInfoNotFoundError: Если указанный часовой пояс не найден.
    """
    return ZoneInfo(timezone_name)


def unix_now() -> int:
    """Текущее время в целых unix-секундах."""
    return int(time.time())


def to_unix_seconds(value: str | None) -> int:
    """Преобразовать ISO-8601 время провайдера в unix-секунды.

    Replicate присылает created_at вида "2025-01-07T21:55:46.123456Z".
    Naive время считается UTC. Если строки нет или она не разбирается —
    возвращается текущее время.

    Args:
        value: Строка времени от провайдера.

    Returns:
        Целое число секунд с начала эпохи.
    """
    if not value:
        return unix_now()

    try:
        # fromisoformat в 3.11+ понимает суффикс "Z"
        dt = datetime.fromisoformat(value)
    except ValueError:
        return unix_now()

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)

    return int(dt.timestamp())
