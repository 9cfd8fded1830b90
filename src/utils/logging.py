"""Настройка логирования.

Два канала вывода:
1. Консоль (stdout) — с цветной подсветкой уровней, если это терминал
2. Файл с ротацией — data/logs/app.log

Компактный формат логов:
    25-01-07 21:55:46 | INFO | services.image_service | Сообщение
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from typing_extensions import override

from src.config.constants import DATA_DIR
from src.utils.timezone import get_timezone

# Папка для логов
LOGS_DIR = DATA_DIR / "logs"

# Формат строки и даты (короткий год: 25-01-07)
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%y-%m-%d %H:%M:%S"

# Клиентские библиотеки провайдеров: каждый запрос опроса иначе попадает в INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "google.auth", "urllib3")


class AnsiColors:
    """ANSI escape-коды для цветного вывода в терминале."""

    RESET = "\033[0m"

    DEBUG = "\033[36m"  # Голубой
    INFO = "\033[32m"  # Зелёный
    WARNING = "\033[33m"  # Жёлтый
    ERROR = "\033[31m"  # Красный
    CRITICAL = "\033[35m"  # Пурпурный


# Соответствие уровней логирования и цветов
LEVEL_COLORS: dict[str, str] = {
    "DEBUG": AnsiColors.DEBUG,
    "INFO": AnsiColors.INFO,
    "WARNING": AnsiColors.WARNING,
    "ERROR": AnsiColors.ERROR,
    "CRITICAL": AnsiColors.CRITICAL,
}


class TimezoneFormatter(logging.Formatter):
    """Форматтер логов с поддержкой часового пояса.

    Стандартный logging.Formatter использует локальное время системы.
    Этот форматтер показывает время в заданном часовом поясе
    и убирает префикс "src." из имени логгера.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        timezone_name: str = "UTC",
    ) -> None:
        """Инициализировать форматтер.

        Args:
            fmt: Формат строки лога.
            datefmt: Формат даты/времени.
            timezone_name: Название часового пояса из базы IANA.
        """
        super().__init__(fmt, datefmt)
        self.timezone = get_timezone(timezone_name)

    @override
    def formatTime(
        self,
        record: logging.LogRecord,
        datefmt: str | None = None,
    ) -> str:
        dt = datetime.fromtimestamp(record.created, tz=self.timezone)
        if datefmt:
            return dt.strftime(datefmt)
        return dt.strftime(self.default_time_format)

    @override
    def format(self, record: logging.LogRecord) -> str:
        # src.providers.images.fal_provider → providers.images.fal_provider
        original_name = record.name
        record.name = record.name.removeprefix("src.")
        try:
            return super().format(record)
        finally:
            # Оригинальное имя нужно другим handler-ам
            record.name = original_name


class ColoredFormatter(TimezoneFormatter):
    """Форматтер логов с цветной подсветкой уровней.

    Цвета отображаются только в терминале с поддержкой ANSI-кодов.
    В файловом логе используется обычный TimezoneFormatter.
    """

    def __init__(
        self,
        fmt: str | None = None,
        datefmt: str | None = None,
        timezone_name: str = "UTC",
        use_colors: bool = True,
    ) -> None:
        super().__init__(fmt, datefmt, timezone_name)
        self.use_colors = use_colors

    @override
    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if not self.use_colors:
            return formatted

        level_color = LEVEL_COLORS.get(record.levelname, "")
        if level_color:
            # "| INFO |" → "| \033[32mINFO\033[0m |"
            colored_level = f"{level_color}{record.levelname}{AnsiColors.RESET}"
            formatted = formatted.replace(
                f"| {record.levelname} |",
                f"| {colored_level} |",
            )

        return formatted


def _should_use_colors() -> bool:
    """Определить, поддерживает ли терминал цвета.

    Проверяет:
    1. Переменную окружения NO_COLOR (стандарт https://no-color.org/)
    2. Переменную FORCE_COLOR (принудительное включение)
    3. Является ли stdout терминалом (tty)

    Returns:
        True если можно использовать цвета.
    """
    if os.environ.get("NO_COLOR"):
        return False

    if os.environ.get("FORCE_COLOR"):
        return True

    # В Docker/CI/перенаправлении в файл — isatty() вернёт False
    return sys.stdout.isatty()


def setup_logging(
    level: str = "INFO",
    timezone_name: str = "UTC",
    logs_dir: Path | None = None,
) -> None:
    """Настроить логирование приложения.

    Логи выводятся в консоль (с цветной подсветкой) и сохраняются в файл
    с ротацией (максимум 5 МБ, 3 резервных копии).

    Повторный вызов заменяет ранее установленные handler-ы,
    а не добавляет новые.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        timezone_name: Часовой пояс для отображения времени в логах.
        logs_dir: Папка для файлов логов (по умолчанию data/logs).
    """
    target_dir = logs_dir or LOGS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    console_formatter = ColoredFormatter(
        LOG_FORMAT,
        datefmt=DATE_FORMAT,
        timezone_name=timezone_name,
        use_colors=_should_use_colors(),
    )
    file_formatter = TimezoneFormatter(
        LOG_FORMAT, datefmt=DATE_FORMAT, timezone_name=timezone_name
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(console_formatter)
    root_logger.addHandler(console_handler)

    file_handler = RotatingFileHandler(
        target_dir / "app.log",
        maxBytes=5 * 1024 * 1024,  # 5 МБ
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(file_formatter)
    root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер с указанным именем.

    Args:
        name: Имя логгера (обычно __name__).

    Returns:
        Настроенный экземпляр логгера.
    """
    return logging.getLogger(name)
