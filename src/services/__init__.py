"""Сервисы приложения.

Сервисы:
- ImageService — диспетчер генерации изображений: каталог моделей,
  хуки, выбор адаптера, heartbeat, передача результата в хранилище.
- Heartbeat — keep-alive для потокового ответа.
"""

from src.services.heartbeat import Heartbeat, ResponseSink
from src.services.image_service import (
    ImageResultProcessor,
    ImageService,
    create_image_service,
)

__all__ = [
    "Heartbeat",
    "ImageResultProcessor",
    "ImageService",
    "ResponseSink",
    "create_image_service",
]
