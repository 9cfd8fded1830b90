"""Реестр провайдеров изображений (паттерн Registry, Open/Closed Principle).

Таблица "id провайдера → фабрика адаптера". Каждый модуль провайдера
регистрирует свою фабрику при импорте. Добавление провайдера — это новый
модуль с register_provider(), диспетчер при этом не меняется.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from src.core.exceptions import ProviderNotAvailableError
from src.providers.images.base import BaseImageAdapter
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = get_logger(__name__)


class ProviderAdapterFactory(Protocol):
    """Протокол фабрики адаптеров (structural subtyping)."""

    def create(self, settings: Settings) -> BaseImageAdapter | None:
        """Создать адаптер, если настроены обязательные секреты.

        Returns:
            Адаптер или None, если секреты провайдера не настроены.
        """
        ...


class ImageProviderRegistry:
    """Реестр провайдеров изображений."""

    def __init__(self) -> None:
        self._factories: dict[str, ProviderAdapterFactory] = {}

    def register(self, provider_type: str, factory: ProviderAdapterFactory) -> None:
        """Зарегистрировать провайдер."""
        self._factories[provider_type] = factory
        logger.debug("Зарегистрирован провайдер: %s", provider_type)

    def is_registered(self, provider_type: str) -> bool:
        """Проверить, зарегистрирован ли провайдер."""
        return provider_type in self._factories

    def create_adapter(
        self,
        provider_type: str,
        settings: Settings,
    ) -> BaseImageAdapter:
        """Создать адаптер для провайдера.

        Raises:
            ProviderNotAvailableError: Провайдер не зарегистрирован
                или его секреты не настроены.
        """
        if provider_type not in self._factories:
            raise ProviderNotAvailableError(
                f"No handler implemented for provider {provider_type}",
                provider_type=provider_type,
            )

        adapter = self._factories[provider_type].create(settings)

        if adapter is None:
            raise ProviderNotAvailableError(
                f"API credentials for provider '{provider_type}' are not configured",
                provider_type=provider_type,
            )

        return adapter

    def list_providers(self) -> list[str]:
        """Список зарегистрированных провайдеров."""
        return sorted(self._factories.keys())


_registry = ImageProviderRegistry()


def register_provider(provider_type: str, factory: ProviderAdapterFactory) -> None:
    """Зарегистрировать провайдер в глобальном реестре."""
    _registry.register(provider_type, factory)


def get_registry() -> ImageProviderRegistry:
    """Получить глобальный реестр."""
    return _registry
