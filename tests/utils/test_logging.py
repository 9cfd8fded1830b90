"""Тесты для настройки логирования."""

import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from src.utils.logging import (
    AnsiColors,
    ColoredFormatter,
    TimezoneFormatter,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger() -> Iterator[None]:
    """Вернуть root-логгер в исходное состояние после теста."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    yield

    for handler in list(root.handlers):
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _record(level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        "src.services.image_service", level, __file__, 1, "Генерация завершена", None, None
    )


def test_formatter_strips_src_prefix() -> None:
    """Тест: префикс src. убирается только в выводе."""
    formatter = TimezoneFormatter("%(name)s | %(message)s")
    record = _record()

    assert formatter.format(record) == "services.image_service | Генерация завершена"
    assert record.name == "src.services.image_service"


def test_formatter_uses_timezone() -> None:
    """Тест: время выводится в заданном часовом поясе."""
    record = _record()
    record.created = 0

    utc = TimezoneFormatter(datefmt="%H:%M", timezone_name="UTC")
    moscow = TimezoneFormatter(datefmt="%H:%M", timezone_name="Europe/Moscow")

    assert utc.formatTime(record, "%H:%M") == "00:00"
    assert moscow.formatTime(record, "%H:%M") == "03:00"


def test_colored_formatter() -> None:
    """Тест: уровень подсвечивается цветом, если цвета включены."""
    fmt = "%(levelname)s | %(name)s | %(message)s"
    colored = ColoredFormatter("| " + fmt, use_colors=True)
    plain = ColoredFormatter("| " + fmt, use_colors=False)
    record = _record(level=logging.WARNING)

    assert f"| {AnsiColors.WARNING}WARNING{AnsiColors.RESET} |" in colored.format(record)
    assert AnsiColors.WARNING not in plain.format(record)


@pytest.mark.usefixtures("restore_root_logger")
def test_setup_logging(tmp_path: Path) -> None:
    """Тест: консольный и файловый handler, уровень, тишина httpx."""
    setup_logging("debug", "UTC", logs_dir=tmp_path / "logs")

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert len(root.handlers) == 2
    assert any(isinstance(handler, RotatingFileHandler) for handler in root.handlers)
    assert logging.getLogger("httpx").level == logging.WARNING

    get_logger("src.providers.images.fal_provider").info("Fal завершён")
    for handler in root.handlers:
        handler.flush()

    content = (tmp_path / "logs" / "app.log").read_text(encoding="utf-8")
    assert "| INFO | providers.images.fal_provider | Fal завершён" in content


@pytest.mark.usefixtures("restore_root_logger")
def test_setup_logging_twice_replaces_handlers(tmp_path: Path) -> None:
    """Тест: повторный вызов не дублирует handler-ы."""
    setup_logging("INFO", "UTC", logs_dir=tmp_path)
    setup_logging("INFO", "UTC", logs_dir=tmp_path)

    assert len(logging.getLogger().handlers) == 2
