"""Провайдеры генерации изображений.

Этот пакет реализует плагинную архитектуру для работы с провайдерами.
Каждый провайдер — это адаптер, который реализует единый интерфейс
BaseImageAdapter и регистрирует свою фабрику в реестре при импорте.

Поддерживаемые провайдеры:
- openai    — OpenAI Images API (JSON / multipart для редактирования)
- deepinfra — OpenAI-совместимый API DeepInfra
- replicate — predictions с опросом статуса
- gemini    — generateContent с пулом ключей и прокси
- vertex    — Imagen через сервисный аккаунт Google Cloud
- runware   — пакетный REST API, стоимость в ответе
- fal       — очередь задач с опросом статуса
- test      — картинки-фикстуры без сети

Пример использования:
    from src.providers.images import get_registry

    adapter = get_registry().create_adapter("fal", settings)
    result = await adapter.generate(request, user_id="42")
"""

from src.core.exceptions import ProviderError, ProviderNotAvailableError
from src.providers.images.base import (
    BaseImageAdapter,
    GenerationRequest,
    ImageData,
    ImageFile,
    ImageGenerationResult,
    RequestFiles,
    ResponseFormat,
    SoftError,
)
from src.providers.images.deepinfra_provider import DeepInfraAdapter
from src.providers.images.fal_provider import FalAdapter
from src.providers.images.gemini_provider import GeminiAdapter
from src.providers.images.openai_provider import OpenAIAdapter
from src.providers.images.registry import get_registry, register_provider
from src.providers.images.replicate_provider import ReplicateAdapter
from src.providers.images.runware_provider import RunwareAdapter
from src.providers.images.test_provider import TestImageAdapter
from src.providers.images.vertex_provider import VertexAdapter

__all__ = [
    "BaseImageAdapter",
    "DeepInfraAdapter",
    "FalAdapter",
    "GeminiAdapter",
    "GenerationRequest",
    "ImageData",
    "ImageFile",
    "ImageGenerationResult",
    "OpenAIAdapter",
    "ProviderError",
    "ProviderNotAvailableError",
    "ReplicateAdapter",
    "RequestFiles",
    "ResponseFormat",
    "RunwareAdapter",
    "SoftError",
    "TestImageAdapter",
    "VertexAdapter",
    "get_registry",
    "register_provider",
]
