"""Константы приложения."""

from pathlib import Path

# ==============================================================================
# ПУТИ К ФАЙЛАМ И ДИРЕКТОРИЯМ
# ==============================================================================

# Корень проекта (где лежит pyproject.toml)
PROJECT_ROOT = Path(__file__).parent.parent.parent

# Папка для данных (логи)
DATA_DIR = PROJECT_ROOT / "data"

# Картинки тестового провайдера (low.png, medium.png, high.png, auto.png)
TEST_IMAGES_DIR = Path(__file__).parent.parent / "static" / "test_images"

# Публичная копия тех же картинок
TEST_IMAGES_PUBLIC_URL = (
    "https://raw.githubusercontent.com/DaWe35/image-router/refs/heads/main/"
    "src/shared/imageModels/test"
)

# ==============================================================================
# ПАРАМЕТРЫ ДИСПЕТЧЕРА
# ==============================================================================

# Интервал keep-alive байтов в стриминговый ответ (в секундах)
HEARTBEAT_INTERVAL_SECONDS = 3.0

# Маркер тестовой модели: такие результаты не отправляются в хранилище
TEST_MODEL_MARKER = "test"
