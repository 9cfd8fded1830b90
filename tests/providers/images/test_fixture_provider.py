"""Тесты для тестового провайдера (картинки-фикстуры)."""

import base64
from pathlib import Path

import pytest

from src.config.constants import TEST_IMAGES_DIR, TEST_IMAGES_PUBLIC_URL
from src.config.settings import Settings
from src.core.exceptions import ConfigurationError
from src.providers.images.base import GenerationRequest, ResponseFormat
from src.providers.images.test_provider import TestImageAdapter, TestImageAdapterFactory


def _adapter() -> TestImageAdapter:
    return TestImageAdapter(images_dir=TEST_IMAGES_DIR, public_base_url=TEST_IMAGES_PUBLIC_URL)


def test_factory_uses_settings(settings: Settings) -> None:
    """Тест: фабрика создаёт адаптер без ключей."""
    adapter = TestImageAdapterFactory().create(settings)

    assert isinstance(adapter, TestImageAdapter)
    assert adapter.provider_name == "test"


@pytest.mark.asyncio
async def test_b64_uses_auto_by_default() -> None:
    """Тест: без quality отдаётся auto.png в base64."""
    result = await _adapter().generate(
        GenerationRequest(prompt="x", model="test", response_format=ResponseFormat.B64_JSON),
        user_id="1",
    )

    expected = base64.b64encode((TEST_IMAGES_DIR / "auto.png").read_bytes()).decode("ascii")
    assert len(result.data) == 1
    assert result.data[0].b64_json == expected
    assert result.data[0].url is None
    assert result.created > 0


@pytest.mark.asyncio
async def test_b64_uses_quality_file() -> None:
    """Тест: quality=low — картинка low.png."""
    result = await _adapter().generate(
        GenerationRequest(
            prompt="x",
            model="test",
            quality="low",
            response_format=ResponseFormat.B64_JSON,
        ),
        user_id="1",
    )

    expected = base64.b64encode((TEST_IMAGES_DIR / "low.png").read_bytes()).decode("ascii")
    assert result.data[0].b64_json == expected


@pytest.mark.asyncio
async def test_url_mode_returns_public_url() -> None:
    """Тест: response_format=url — публичная ссылка, без base64."""
    result = await _adapter().generate(
        GenerationRequest(prompt="x", model="test", quality="high"),
        user_id="1",
    )

    assert result.data[0].url == f"{TEST_IMAGES_PUBLIC_URL}/high.png"
    assert result.data[0].b64_json is None
    assert result.data[0].revised_prompt is None


@pytest.mark.asyncio
async def test_missing_image_is_configuration_error(tmp_path: Path) -> None:
    """Тест: картинки нет в папке — ошибка конфигурации."""
    adapter = TestImageAdapter(images_dir=tmp_path, public_base_url="https://example.com/")

    with pytest.raises(ConfigurationError) as exc_info:
        await adapter.generate(
            GenerationRequest(
                prompt="x",
                model="test",
                quality="medium",
                response_format=ResponseFormat.B64_JSON,
            ),
            user_id="1",
        )

    assert exc_info.value.message == "Test image not found: medium.png"
    assert exc_info.value.provider == "test"
