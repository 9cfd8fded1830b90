"""Тесты для каталога моделей и хуков."""

import pytest

from src.catalog import (
    ModelCatalog,
    ModelDefinition,
    ProviderBinding,
    build_default_catalog,
)
from src.catalog.hooks import (
    keep_request,
    quality_to_model,
    set_image,
    set_images_data,
    set_mask,
)
from src.providers.images import get_registry
from src.providers.images.base import GenerationRequest, ImageFile, RequestFiles

IMAGE = ImageFile(data=b"img", filename="cat.png", content_type="image/png")
SECOND = ImageFile(data=b"img2", filename="dog.png", content_type="image/png")
MASK = ImageFile(data=b"mask", filename="mask.png", content_type="image/png")


class TestModelCatalog:
    """Тесты для ModelCatalog."""

    def test_get_known_and_unknown(self) -> None:
        """Тест: get возвращает модель или None."""
        catalog = build_default_catalog()

        model = catalog.get("openai/gpt-image-1")

        assert model is not None
        assert model.binding.id == "openai"
        assert catalog.get("unknown/model") is None
        assert "ir/test" in catalog
        assert "unknown/model" not in catalog

    def test_models_supporting_edit(self) -> None:
        """Тест: в список попадают только модели с edit=True."""
        catalog = build_default_catalog()

        edit_models = catalog.models_supporting_edit()

        assert edit_models == [
            "openai/gpt-image-1",
            "black-forest-labs/flux-kontext-max",
            "google/gemini-2.0-flash-exp:free",
            "run-diffusion/juggernaut-pro-flux",
        ]
        assert "ir/test" not in edit_models
        assert "black-forest-labs/FLUX-1-schnell" not in edit_models

    def test_upstream_model_name_defaults_to_id(self) -> None:
        """Тест: без model_name модель известна провайдеру под своим id."""
        model = ModelDefinition(id="acme/model", providers=(ProviderBinding(id="acme"),))
        named = ModelDefinition(
            id="acme/alias",
            providers=(ProviderBinding(id="acme", model_name="acme-v2"),),
        )

        assert model.upstream_model_name == "acme/model"
        assert named.upstream_model_name == "acme-v2"

    def test_first_provider_is_used(self) -> None:
        """Тест: активна первая привязка из списка."""
        model = ModelDefinition(
            id="acme/model",
            providers=(ProviderBinding(id="first"), ProviderBinding(id="second")),
        )

        assert model.binding.id == "first"

    def test_add_without_providers(self) -> None:
        """Тест: модель без провайдеров не добавляется."""
        catalog = ModelCatalog()

        with pytest.raises(ValueError):
            catalog.add(ModelDefinition(id="acme/empty", providers=()))

        assert len(catalog) == 0

    def test_every_default_binding_is_registered(self) -> None:
        """Тест: каждая модель встроенного каталога ссылается на известный провайдер."""
        registry = get_registry()
        catalog = build_default_catalog()

        for model_id in ("ir/test", "black-forest-labs/flux-1", "google/imagen-4-05-20"):
            model = catalog.get(model_id)
            assert model is not None
            assert registry.is_registered(model.binding.id)


class TestHooks:
    """Тесты для хуков запроса."""

    def test_keep_request(self) -> None:
        """Тест: keep_request возвращает тот же запрос."""
        request = GenerationRequest(prompt="x", model="m")

        assert keep_request(request) is request

    def test_set_image_keeps_all_files(self) -> None:
        """Тест: несколько файлов переносятся все, один файл остаётся одиночным."""
        request = GenerationRequest(
            prompt="x",
            model="m",
            files=RequestFiles(image=(IMAGE, SECOND)),
        )
        single = GenerationRequest(prompt="x", model="m", files=RequestFiles(image=(IMAGE,)))

        updated = set_image(request)

        assert updated.image == (IMAGE, SECOND)
        assert updated.source_image == IMAGE
        assert request.image is None
        assert set_image(single).image == IMAGE
        assert set_image(GenerationRequest(prompt="x", model="m")).image is None

    def test_set_mask(self) -> None:
        """Тест: маска переносится из files."""
        request = GenerationRequest(prompt="x", model="m", files=RequestFiles(mask=MASK))

        assert set_mask(request).mask == MASK

    def test_set_images_data(self) -> None:
        """Тест: все изображения уходят в images_data."""
        single = GenerationRequest(prompt="x", model="m", files=RequestFiles(image=IMAGE))
        several = GenerationRequest(
            prompt="x",
            model="m",
            files=RequestFiles(image=(IMAGE, SECOND)),
        )

        assert set_images_data(single).images_data == (IMAGE,)
        assert set_images_data(several).images_data == (IMAGE, SECOND)

    def test_quality_to_model(self) -> None:
        """Тест: quality подменяет модель, неизвестный quality её не трогает."""
        hook = quality_to_model({"low": "fast-model", "high": "slow-model"})

        low = hook(GenerationRequest(prompt="x", model="base", quality="low"))
        auto = hook(GenerationRequest(prompt="x", model="base", quality="auto"))

        assert low.model == "fast-model"
        assert auto.model == "base"
