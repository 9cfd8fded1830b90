"""Базовый адаптер и каноническая модель данных для провайдеров изображений.

Этот модуль определяет:
- GenerationRequest — входной запрос (неизменяемый, хуки создают новый)
- ImageGenerationResult — единственная форма успешного ответа адаптера
- SoftError — "мягкий" исход (таймаут, ошибка опроса, провал задачи),
  который возвращается как данные, а не выбрасывается
- BaseImageAdapter — интерфейс, который реализует каждый провайдер

Это позволяет:
- Единообразно работать с разными провайдерами (OpenAI, Replicate, Fal...)
- Легко добавлять новые провайдеры без изменения диспетчера

Паттерн: Adapter (GoF) + Strategy
"""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class ResponseFormat(StrEnum):
    """Формат возврата изображений клиенту."""

    URL = "url"
    B64_JSON = "b64_json"


@dataclass(frozen=True)
class ImageFile:
    """Бинарный файл изображения из запроса.

    Attributes:
        data: Байты файла.
        filename: Исходное имя файла (нужно для multipart).
        content_type: MIME-тип (image/png, image/jpeg, ...).
    """

    data: bytes
    filename: str = "image.png"
    content_type: str = "image/png"

    def to_base64(self) -> str:
        """Закодировать файл в base64 (без data URI префикса)."""
        return base64.b64encode(self.data).decode("ascii")

    def to_data_uri(self, content_type: str | None = None) -> str:
        """Закодировать файл в data URI.

        Args:
            content_type: MIME-тип для префикса. По умолчанию — тип файла.

        Returns:
            Строка вида "data:image/png;base64,iVBORw0...".
        """
        mime_type = content_type or self.content_type or "image/png"
        return f"data:{mime_type};base64,{self.to_base64()}"

    def as_upload(self) -> tuple[str, bytes, str]:
        """Кортеж (filename, bytes, content_type) для multipart-загрузки."""
        return (self.filename, self.data, self.content_type)


@dataclass(frozen=True)
class RequestFiles:
    """Сырые файлы, пришедшие от клиента.

    Существуют только до применения хуков applyImage/applyMask:
    диспетчер удаляет их после хуков, дальше живут только поля,
    которые выставили хуки.
    """

    image: ImageFile | tuple[ImageFile, ...] | None = None
    mask: ImageFile | None = None


@dataclass(frozen=True)
class GenerationRequest:
    """Запрос на генерацию изображения.

    Неизменяемый: адаптеры только читают его, а хуки модели
    возвращают новый экземпляр через dataclasses.replace().

    Attributes:
        prompt: Текстовое описание изображения.
        model: Идентификатор модели (до диспетчеризации — ключ каталога,
            после — настоящее имя модели у провайдера).
        quality: Качество (low, medium, high, auto) или None.
        response_format: Формат ответа (url или b64_json).
        files: Сырые файлы клиента (image, mask).
        image: Исходное изображение для редактирования (выставляет хук).
            Несколько файлов приходят кортежем.
        mask: Маска для inpainting (выставляет хук).
        images_data: Несколько изображений для мультимодальных моделей (Gemini).
        steps: Количество шагов генерации (Runware).
        strength: Сила изменения исходного изображения (Runware).
        negative_prompt: Что НЕ генерировать.
    """

    prompt: str
    model: str
    quality: str | None = None
    response_format: ResponseFormat = ResponseFormat.URL
    files: RequestFiles = field(default_factory=RequestFiles)
    image: ImageFile | tuple[ImageFile, ...] | None = None
    mask: ImageFile | None = None
    images_data: tuple[ImageFile, ...] = ()
    steps: int | None = None
    strength: float | None = None
    negative_prompt: str | None = None

    @property
    def source_image(self) -> ImageFile | None:
        """Первое исходное изображение (для провайдеров с одним seed-изображением)."""
        if isinstance(self.image, tuple):
            return self.image[0] if self.image else None
        return self.image


@dataclass
class ImageData:
    """Одно сгенерированное изображение в каноническом формате.

    Заполнено либо url, либо b64_json (в зависимости от провайдера).
    revised_prompt всегда None, если провайдер не прислал свой вариант.
    """

    url: str | None = None
    b64_json: str | None = None
    revised_prompt: str | None = None
    original_response_from_provider: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Сериализовать в JSON-совместимый словарь.

        Отсутствующие url/b64_json в словарь не попадают.
        """
        item: dict[str, Any] = {}
        if self.url is not None:
            item["url"] = self.url
        if self.b64_json is not None:
            item["b64_json"] = self.b64_json
        item["revised_prompt"] = self.revised_prompt
        if self.original_response_from_provider is not None:
            item["original_response_from_provider"] = (
                self.original_response_from_provider
            )
        return item


@dataclass
class SoftError:
    """Мягкая ошибка: задача у провайдера не дала результата.

    Возвращается внутри результата, НЕ выбрасывается: провайдер мог уже
    потратить ресурсы, поэтому биллинг не должен считать это обычной
    ошибкой с полным возвратом.

    Attributes:
        message: Описание исхода.
        type: timeout_error, polling_error, failed, canceled, error, result_error.
        original_response_from_provider: Последний ответ провайдера.
    """

    message: str
    type: str
    original_response_from_provider: Any = None

    def to_dict(self) -> dict[str, Any]:
        """Сериализовать в JSON-совместимый словарь."""
        return {
            "message": self.message,
            "type": self.type,
            "original_response_from_provider": self.original_response_from_provider,
        }


@dataclass
class ImageGenerationResult:
    """Канонический результат генерации.

    Единственная форма, которую адаптер может вернуть.
    Порядок data совпадает с порядком изображений в ответе провайдера.

    Attributes:
        created: Время создания (unix-секунды).
        data: Сгенерированные изображения.
        cost: Стоимость, посчитанная провайдером (Runware).
        seed: Seed генерации (Fal).
        latency: Время выполнения в миллисекундах (ставит диспетчер).
        error: Мягкая ошибка. Если задана — data пустой.
    """

    created: int
    data: list[ImageData] = field(default_factory=list)
    cost: float | None = None
    seed: int | None = None
    latency: int | None = None
    error: SoftError | None = None

    @classmethod
    def soft_failure(
        cls,
        *,
        created: int,
        message: str,
        error_type: str,
        original_response: Any = None,
    ) -> ImageGenerationResult:
        """Создать результат с мягкой ошибкой."""
        return cls(
            created=created,
            error=SoftError(
                message=message,
                type=error_type,
                original_response_from_provider=original_response,
            ),
        )

    @property
    def is_soft_failure(self) -> bool:
        """Проверить, завершилась ли задача мягкой ошибкой."""
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        """Сериализовать в каноническую JSON-совместимую форму."""
        payload: dict[str, Any] = {
            "created": self.created,
            "data": [item.to_dict() for item in self.data],
        }
        if self.cost is not None:
            payload["cost"] = self.cost
        if self.seed is not None:
            payload["seed"] = self.seed
        if self.latency is not None:
            payload["latency"] = self.latency
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload


class BaseImageAdapter(ABC):
    """Абстрактный базовый класс для провайдеров изображений.

    Определяет интерфейс, который должны реализовать все провайдеры.
    Это позволяет ImageService работать с любым провайдером единообразно.

    Контракт generate():
    - Успех → ImageGenerationResult с непустым data
    - Мягкий исход → ImageGenerationResult с заполненным error
    - Жёсткая ошибка апстрима → ProviderError
    - Ошибка конфигурации → ConfigurationError

    Для добавления нового провайдера:
    1. Создайте класс, наследующий BaseImageAdapter
    2. Реализуйте provider_name и generate()
    3. Зарегистрируйте фабрику через register_provider()
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Идентификатор провайдера (для логов и ошибок).

        Совпадает с id провайдера в каталоге моделей.
        Примеры: "openai", "replicate", "fal".
        """

    @abstractmethod
    async def generate(
        self,
        request: GenerationRequest,
        *,
        user_id: str,
        usage_log_id: str | None = None,
    ) -> ImageGenerationResult:
        """Выполнить генерацию.

        Args:
            request: Запрос после применения хуков модели.
                request.model — настоящее имя модели у провайдера.
            user_id: Идентификатор пользователя (передаётся провайдеру).
            usage_log_id: ID записи учёта использования (корреляция).

        Returns:
            ImageGenerationResult с изображениями или мягкой ошибкой.

        Raises:
            ProviderError: Жёсткая ошибка провайдера.
            ConfigurationError: Не настроены ключи или секреты.
        """

    async def close(self) -> None:  # noqa: B027
        """Освободить HTTP-ресурсы адаптера.

        По умолчанию ничего не делает.
        """
