"""Каталог моделей изображений и их привязка к провайдерам."""

from src.catalog.base import ModelDefinition, ProviderBinding, RequestHook
from src.catalog.registry import ModelCatalog, build_default_catalog

__all__ = [
    "ModelCatalog",
    "ModelDefinition",
    "ProviderBinding",
    "RequestHook",
    "build_default_catalog",
]
