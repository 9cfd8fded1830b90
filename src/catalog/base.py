"""Описание моделей каталога и их привязки к провайдерам.

ProviderBinding — какой провайдер обслуживает модель, под каким именем
модель известна провайдеру и какие хуки модель умеет применять к запросу.
Хук — обычная функция GenerationRequest -> GenerationRequest. Если хука
нет, соответствующая операция (редактирование, маска, quality) моделью
не поддерживается.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from src.providers.images.base import GenerationRequest

RequestHook = Callable[[GenerationRequest], GenerationRequest]


@dataclass(frozen=True)
class ProviderBinding:
    """Привязка модели к провайдеру.

    Attributes:
        id: Идентификатор провайдера (ключ реестра адаптеров).
        model_name: Имя модели у провайдера. None — совпадает с id модели.
        apply_image: Хук редактирования по исходному изображению.
        apply_mask: Хук inpainting по маске.
        apply_quality: Хук quality (может подменить модель).
    """

    id: str
    model_name: str | None = None
    apply_image: RequestHook | None = None
    apply_mask: RequestHook | None = None
    apply_quality: RequestHook | None = None


@dataclass(frozen=True)
class ModelDefinition:
    """Модель каталога.

    Используется первый провайдер из списка.
    """

    id: str
    providers: tuple[ProviderBinding, ...]
    supported_params: dict[str, Any] = field(default_factory=dict)

    @property
    def binding(self) -> ProviderBinding:
        """Активная привязка (первый провайдер)."""
        return self.providers[0]

    @property
    def upstream_model_name(self) -> str:
        """Имя модели у провайдера."""
        return self.binding.model_name or self.id

    @property
    def supports_edit(self) -> bool:
        """Поддерживает ли модель редактирование изображений."""
        return self.supported_params.get("edit") is True
