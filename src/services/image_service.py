"""Диспетчер генерации изображений.

ImageService принимает запрос клиента, находит модель в каталоге,
применяет хуки модели, вызывает адаптер провайдера и возвращает
канонический результат. Пока адаптер работает, в потоковый ответ
(если он передан) пишется heartbeat.

Ошибки адаптеров не перехватываются: они логируются и пробрасываются
вызывающему коду как есть.
"""

from __future__ import annotations

import time
from dataclasses import replace
from typing import TYPE_CHECKING, Protocol

from src.config.constants import HEARTBEAT_INTERVAL_SECONDS, TEST_MODEL_MARKER
from src.core.exceptions import (
    ModelNotFoundError,
    ProviderError,
    UnsupportedOperationError,
)
from src.providers.images import get_registry
from src.providers.images.base import (
    BaseImageAdapter,
    GenerationRequest,
    ImageGenerationResult,
    RequestFiles,
    ResponseFormat,
)
from src.services.heartbeat import Heartbeat, ResponseSink
from src.utils.logging import get_logger

if TYPE_CHECKING:
    from src.catalog import ModelCatalog
    from src.config.settings import Settings
    from src.providers.images.registry import ImageProviderRegistry

logger = get_logger(__name__)


class ImageResultProcessor(Protocol):
    """Постобработка результата (сохранение картинок в хранилище).

    Может вернуть изменённый результат, например с URL хранилища
    вместо URL провайдера.
    """

    async def process_image_result(
        self,
        result: ImageGenerationResult,
        user_id: str,
        response_format: ResponseFormat,
        usage_log_id: str | None,
    ) -> ImageGenerationResult:
        """Обработать результат генерации."""
        ...


class ImageService:
    """Центральный сервис генерации изображений.

    Адаптеры создаются лениво при первом обращении к провайдеру
    и переиспользуются между запросами.
    """

    def __init__(
        self,
        settings: Settings,
        catalog: ModelCatalog,
        *,
        registry: ImageProviderRegistry | None = None,
        result_processor: ImageResultProcessor | None = None,
        heartbeat_interval: float = HEARTBEAT_INTERVAL_SECONDS,
    ) -> None:
        self._settings = settings
        self._catalog = catalog
        self._registry = registry or get_registry()
        self._result_processor = result_processor
        self._heartbeat_interval = heartbeat_interval
        self._adapters: dict[str, BaseImageAdapter] = {}

        logger.info(
            "ImageService: моделей=%d, провайдеров=%d, хранилище=%s",
            len(catalog),
            len(self._registry.list_providers()),
            "да" if result_processor else "нет",
        )

    def _get_adapter(self, provider: str) -> BaseImageAdapter:
        """Получить адаптер для провайдера (с ленивой инициализацией)."""
        if provider in self._adapters:
            return self._adapters[provider]

        adapter = self._registry.create_adapter(provider, self._settings)

        self._adapters[provider] = adapter
        logger.debug("Создан адаптер: %s", provider)
        return adapter

    def prepare_request(self, request: GenerationRequest) -> tuple[str, GenerationRequest]:
        """Применить к запросу привязку модели и её хуки.

        Returns:
            Кортеж (id провайдера, запрос для адаптера).

        Raises:
            ModelNotFoundError: Модели нет в каталоге.
            UnsupportedOperationError: Модель не умеет редактирование или маски.
        """
        model = self._catalog.get(request.model)
        if model is None:
            raise ModelNotFoundError("Invalid model specified", model_key=request.model)

        binding = model.binding

        if request.files.image is not None:
            if binding.apply_image is None:
                supported = self._catalog.models_supporting_edit()
                raise UnsupportedOperationError(
                    "Image editing is not supported for this model. "
                    f"Supported models: {', '.join(supported)}",
                    model_key=model.id,
                    supported_models=supported,
                )
            request = binding.apply_image(request)

        if request.files.mask is not None:
            if binding.apply_mask is None:
                raise UnsupportedOperationError(
                    "Mask editing is not supported for this model",
                    model_key=model.id,
                )
            request = binding.apply_mask(request)

        # Сырые файлы больше не нужны: дальше живут только поля от хуков
        request = replace(request, files=RequestFiles(), model=model.upstream_model_name)

        # quality может подменить модель
        if request.quality and binding.apply_quality is not None:
            request = binding.apply_quality(request)

        return binding.id, request

    async def dispatch(
        self,
        request: GenerationRequest,
        user_id: str,
        response_sink: ResponseSink | None = None,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Выполнить генерацию изображения.

        Args:
            request: Запрос клиента (request.model — id модели каталога).
            user_id: Идентификатор пользователя.
            response_sink: Потоковый ответ для heartbeat (опционально).
            usage_log_id: ID записи учёта использования.

        Returns:
            Канонический результат. Мягкие исходы (таймаут, провал задачи)
            приходят в result.error, а не исключением.

        Raises:
            ModelNotFoundError: Модели нет в каталоге.
            UnsupportedOperationError: Операция не поддерживается моделью.
            ProviderNotAvailableError: Нет адаптера или ключей провайдера.
            ConfigurationError: Ошибка конфигурации провайдера.
            ProviderError: Провайдер вернул ошибку.
        """
        started = time.monotonic()
        model_key = request.model

        provider, request = self.prepare_request(request)
        adapter = self._get_adapter(provider)

        logger.debug(
            "Генерация: model_key=%s, provider=%s, model=%s, format=%s",
            model_key,
            provider,
            request.model,
            request.response_format,
        )

        try:
            if response_sink is not None:
                async with Heartbeat(response_sink, self._heartbeat_interval):
                    result = await adapter.generate(
                        request, user_id=user_id, usage_log_id=usage_log_id
                    )
            else:
                result = await adapter.generate(
                    request, user_id=user_id, usage_log_id=usage_log_id
                )
        except ProviderError as e:
            logger.warning(
                "Провайдер %s вернул ошибку: status=%d, type=%s, message=%s",
                provider,
                e.status,
                e.error_type,
                e.message,
            )
            raise
        except Exception:
            logger.exception("Ошибка генерации: model_key=%s, provider=%s", model_key, provider)
            raise

        result.latency = int((time.monotonic() - started) * 1000)

        if result.error is not None:
            logger.warning(
                "Генерация без результата: model_key=%s, type=%s, message=%s",
                model_key,
                result.error.type,
                result.error.message,
            )
        else:
            logger.info(
                "Генерация завершена: model_key=%s, provider=%s, images=%d, latency=%dms",
                model_key,
                provider,
                len(result.data),
                result.latency,
            )

        if TEST_MODEL_MARKER in request.model:
            return result

        if self._result_processor is None:
            return result

        return await self._result_processor.process_image_result(
            result,
            user_id,
            request.response_format,
            usage_log_id,
        )

    async def close(self) -> None:
        """Закрыть все созданные адаптеры."""
        for provider, adapter in self._adapters.items():
            await adapter.close()
            logger.debug("Адаптер закрыт: %s", provider)
        self._adapters.clear()


def create_image_service(
    settings: Settings | None = None,
    result_processor: ImageResultProcessor | None = None,
) -> ImageService:
    """Создать сервис с настройками из окружения и встроенным каталогом."""
    from src.catalog import build_default_catalog
    from src.config.settings import load_settings
    from src.utils.logging import setup_logging

    if settings is None:
        settings = load_settings()

    setup_logging(settings.logging.level, settings.logging.timezone)

    return ImageService(
        settings,
        build_default_catalog(),
        result_processor=result_processor,
    )
