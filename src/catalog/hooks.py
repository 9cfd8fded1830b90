"""Готовые хуки для моделей каталога."""

from __future__ import annotations

from dataclasses import replace

from src.catalog.base import RequestHook
from src.providers.images.base import GenerationRequest, ImageFile, RequestFiles


def _all_images(files: RequestFiles) -> tuple[ImageFile, ...]:
    image = files.image
    if image is None:
        return ()
    if isinstance(image, tuple):
        return image
    return (image,)


def _source_images(files: RequestFiles) -> ImageFile | tuple[ImageFile, ...] | None:
    images = _all_images(files)
    if not images:
        return None
    # Один файл остаётся одиночным, несколько уходят кортежем
    return images[0] if len(images) == 1 else images


def keep_request(request: GenerationRequest) -> GenerationRequest:
    """Ничего не менять (параметры уже проверены выше по стеку)."""
    return request


def set_image(request: GenerationRequest) -> GenerationRequest:
    """Перенести исходные изображения из files в поле image."""
    return replace(request, image=_source_images(request.files))


def set_mask(request: GenerationRequest) -> GenerationRequest:
    """Перенести маску из files в поле mask."""
    return replace(request, mask=request.files.mask)


def set_images_data(request: GenerationRequest) -> GenerationRequest:
    """Передать все изображения как inline-части (мультимодальные модели)."""
    return replace(request, images_data=_all_images(request.files))


def quality_to_model(models: dict[str, str]) -> RequestHook:
    """Хук, который реализует quality как подмену модели.

    Args:
        models: quality → имя модели у провайдера.
            Неизвестный quality оставляет модель как есть.
    """

    def apply_quality(request: GenerationRequest) -> GenerationRequest:
        model = models.get(request.quality or "")
        if model is None:
            return request
        return replace(request, model=model)

    return apply_quality
