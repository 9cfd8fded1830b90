"""Каталог моделей изображений.

Каталог — статическая таблица "id модели → ModelDefinition". Диспетчер
только читает её: находит привязку к провайдеру, имя модели у провайдера
и хуки.
"""

from __future__ import annotations

from collections.abc import Iterable

from src.catalog.base import ModelDefinition, ProviderBinding
from src.catalog.hooks import (
    keep_request,
    quality_to_model,
    set_image,
    set_images_data,
    set_mask,
)
from src.providers.images.credentials import GEMINI_FREE_MODEL_ID
from src.utils.logging import get_logger

logger = get_logger(__name__)


class ModelCatalog:
    """Таблица моделей, доступных для генерации."""

    def __init__(self, models: Iterable[ModelDefinition] = ()) -> None:
        self._models: dict[str, ModelDefinition] = {}
        for model in models:
            self.add(model)

    def add(self, model: ModelDefinition) -> None:
        """Добавить модель (одинаковый id перезаписывается)."""
        if not model.providers:
            raise ValueError(f"Model {model.id} has no providers")
        self._models[model.id] = model

    def get(self, model_id: str) -> ModelDefinition | None:
        """Найти модель по id."""
        return self._models.get(model_id)

    def models_supporting_edit(self) -> list[str]:
        """id моделей с supported_params.edit == True (в порядке добавления)."""
        return [model.id for model in self._models.values() if model.supports_edit]

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __len__(self) -> int:
        return len(self._models)


def _test_binding() -> ProviderBinding:
    return ProviderBinding(
        id="test",
        apply_image=keep_request,
        apply_mask=keep_request,
        apply_quality=keep_request,
    )


DEFAULT_MODELS: tuple[ModelDefinition, ...] = (
    # Проверка проводки без обращения к сети
    ModelDefinition(id="ir/test", providers=(_test_binding(),)),
    ModelDefinition(id="ir/test-video", providers=(_test_binding(),)),
    ModelDefinition(
        id="openai/gpt-image-1",
        providers=(
            ProviderBinding(
                id="openai",
                model_name="gpt-image-1",
                apply_image=set_image,
                apply_mask=set_mask,
                apply_quality=keep_request,
            ),
        ),
        supported_params={"edit": True, "mask": True, "quality": True},
    ),
    ModelDefinition(
        id="black-forest-labs/FLUX-1-schnell",
        providers=(
            ProviderBinding(
                id="deepinfra",
                model_name="black-forest-labs/FLUX-1-schnell",
            ),
        ),
    ),
    ModelDefinition(
        id="black-forest-labs/flux-kontext-max",
        providers=(
            ProviderBinding(
                id="replicate",
                model_name="black-forest-labs/flux-kontext-max",
                apply_image=set_image,
            ),
        ),
        supported_params={"edit": True},
    ),
    ModelDefinition(
        id="google/gemini-2.0-flash-exp:free",
        providers=(
            ProviderBinding(
                id="gemini",
                model_name=GEMINI_FREE_MODEL_ID,
                apply_image=set_images_data,
            ),
        ),
        supported_params={"edit": True},
    ),
    ModelDefinition(
        id="google/imagen-4-05-20",
        providers=(
            ProviderBinding(id="vertex", model_name="imagen-4.0-generate-preview-05-20"),
        ),
    ),
    ModelDefinition(
        id="google/imagen-4-fast-06-06",
        providers=(
            ProviderBinding(id="vertex", model_name="imagen-4.0-fast-generate-preview-06-06"),
        ),
    ),
    ModelDefinition(
        id="run-diffusion/juggernaut-pro-flux",
        providers=(
            ProviderBinding(
                id="runware",
                model_name="rundiffusion:130@100",
                apply_image=set_image,
                apply_mask=set_mask,
            ),
        ),
        supported_params={"edit": True, "mask": True},
    ),
    # quality выбирает конкретную модель Fal
    ModelDefinition(
        id="black-forest-labs/flux-1",
        providers=(
            ProviderBinding(
                id="fal",
                model_name="fal-ai/flux/dev",
                apply_quality=quality_to_model(
                    {
                        "low": "fal-ai/flux/schnell",
                        "medium": "fal-ai/flux/dev",
                        "high": "fal-ai/flux-pro/v1.1",
                    }
                ),
            ),
        ),
        supported_params={"quality": True},
    ),
)


def build_default_catalog() -> ModelCatalog:
    """Собрать встроенный каталог моделей."""
    catalog = ModelCatalog(DEFAULT_MODELS)
    logger.debug("Каталог моделей: %d моделей", len(catalog))
    return catalog
