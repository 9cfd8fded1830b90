"""Выбор API-ключа из пула (используется адаптером Gemini).

Ключи задаются одной строкой через запятую: AI__GEMINI_API_KEYS=key1,key2.

Политика выбора:
- Бесплатная модель (жёсткие лимиты на ключ) — случайный ключ из всех,
  чтобы размазать нагрузку по квотам
- Любая другая (платная) модель — всегда первый ключ, чтобы расходы
  приписывались одному аккаунту
"""

import random

from src.core.exceptions import ConfigurationError

# Бесплатная модель Gemini с глобальным rate limit
GEMINI_FREE_MODEL_ID = "gemini-2.0-flash-exp-image-generation"


def parse_key_list(raw: str | None) -> list[str]:
    """Разобрать строку ключей через запятую.

    Пустые элементы и пробелы по краям отбрасываются.

    Args:
        raw: Строка вида "key1, key2,,key3" или None.

    Returns:
        Список непустых ключей в исходном порядке.
    """
    if not raw:
        return []
    return [key.strip() for key in raw.split(",") if key.strip()]


def select_gemini_key(model_id: str, keys: list[str]) -> str:
    """Выбрать ключ Gemini для модели.

    Args:
        model_id: Настоящее имя модели у провайдера.
        keys: Пул настроенных ключей.

    Returns:
        Выбранный ключ.

    Raises:
        ConfigurationError: Если не настроено ни одного ключа.
    """
    if not keys:
        raise ConfigurationError("No Google Gemini API key found", provider="gemini")

    if model_id == GEMINI_FREE_MODEL_ID and len(keys) > 1:
        return random.choice(keys)

    return keys[0]
