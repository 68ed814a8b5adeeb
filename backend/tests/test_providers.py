"""
Tests for the provider adapter layer: shared input preparation, response
normalization and per-provider dispatch with stubbed clients.
"""

import base64
from types import SimpleNamespace

import httpx
import pytest

from app.models.node_definition import NodeDefinition, NodePort
from app.models.node_registry import get_node
from app.services.errors import ProviderExecutionError, UnknownProviderError
from app.services.providers import ProviderRegistry, registered_providers
from app.services.providers.base import MAX_SEED, call_with_retries, coerce_numeric, normalize_seed
from app.services.providers.fal import FalAdapter
from app.services.providers.gemini import GeminiAdapter
from app.services.providers.internal import InternalAdapter
from app.services.providers.openai import ENHANCER_SYSTEM_PROMPTS, OpenAIAdapter
from app.services.providers.remapping import remap_fields
from app.services.providers.replicate import ReplicateAdapter

from conftest import FakeStorage


def _fal_adapter(response, storage=None):
    calls = []

    async def subscribe(model, arguments):
        calls.append((model, dict(arguments)))
        return response

    return FalAdapter(storage=storage or FakeStorage(), subscribe=subscribe), calls


# ---------------------------------------------------------------------------
# Input preparation
# ---------------------------------------------------------------------------


class TestCoercion:

    def test_numeric_strings_become_numbers(self):
        definition = get_node("flux-pro")

        out = coerce_numeric(definition, {"num_images": "1", "guidance_scale": "3.5", "offset": "-2"})

        assert out == {"num_images": 1, "guidance_scale": 3.5, "offset": -2}
        assert isinstance(out["num_images"], int)
        assert isinstance(out["guidance_scale"], float)

    def test_text_parameters_and_ports_stay_strings(self):
        definition = get_node("flux-pro")

        out = coerce_numeric(definition, {"prompt": "1984", "negative_prompt": "42"})

        assert out == {"prompt": "1984", "negative_prompt": "42"}

    def test_non_numeric_strings_are_untouched(self):
        out = coerce_numeric(get_node("kling-v3"), {"aspect_ratio": "16:9", "size": "1024x1024", "x": "1e5", "y": "1."})

        assert out == {"aspect_ratio": "16:9", "size": "1024x1024", "x": "1e5", "y": "1."}


class TestSeedNormalization:

    def test_minus_one_never_reaches_the_provider(self):
        seeds = [normalize_seed({"seed": -1})["seed"] for _ in range(100)]

        assert all(0 <= s <= MAX_SEED - 1 for s in seeds)
        assert -1 not in seeds
        assert len(set(seeds)) > 90

    def test_explicit_seed_is_kept(self):
        assert normalize_seed({"seed": 1234}) == {"seed": 1234}

    @pytest.mark.asyncio
    async def test_string_minus_one_is_coerced_then_randomized(self):
        adapter, calls = _fal_adapter({"images": []})

        await adapter.execute(get_node("flux-dev"), {"prompt": "x", "seed": "-1"})

        sent = calls[0][1]["seed"]
        assert isinstance(sent, int) and sent >= 0


class TestRemapping:

    def test_fal_image_and_mask_are_renamed(self):
        out = remap_fields("fal", "fal-ai/flux/dev/image-to-image", {"image": "u1", "mask": "u2", "prompt": "p"})

        assert out == {"image_url": "u1", "mask_url": "u2", "prompt": "p"}

    def test_kling_v3_image_to_video_uses_start_image_url(self):
        out = remap_fields("fal", "fal-ai/kling-video/v3/standard/image-to-video", {"image": "u1"})

        assert out == {"start_image_url": "u1"}

    def test_older_kling_image_to_video_uses_image_url(self):
        out = remap_fields("fal", "fal-ai/kling-video/v1.6/pro/image-to-video", {"image": "u1"})

        assert out == {"image_url": "u1"}

    def test_existing_target_field_is_not_overwritten(self):
        out = remap_fields("fal", "fal-ai/esrgan", {"image": "from-port", "image_url": "explicit"})

        assert out["image_url"] == "explicit"

    def test_other_providers_are_untouched(self):
        assert remap_fields("openai", "gpt-4o", {"image": "u1"}) == {"image": "u1"}


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


def test_every_catalogue_provider_has_an_adapter():
    assert set(registered_providers()) >= {"internal", "fal", "openai", "gemini", "replicate"}


def test_unknown_provider_is_rejected():
    registry = ProviderRegistry(storage=FakeStorage())

    with pytest.raises(UnknownProviderError):
        registry.get("midjourney")


# ---------------------------------------------------------------------------
# Internal
# ---------------------------------------------------------------------------


class TestInternalAdapter:

    @pytest.fixture
    def adapter(self):
        return InternalAdapter(storage=FakeStorage())

    @pytest.mark.asyncio
    async def test_text_input(self, adapter):
        assert await adapter.execute(get_node("text-input"), {"value": "hello"}) == {"text": "hello"}
        assert await adapter.execute(get_node("text-input"), {}) == {"text": ""}

    @pytest.mark.asyncio
    async def test_text_input_keeps_numeric_looking_text(self, adapter):
        assert await adapter.execute(get_node("text-input"), {"value": "2024"}) == {"text": "2024"}

    @pytest.mark.asyncio
    async def test_number_input(self, adapter):
        assert await adapter.execute(get_node("number-input"), {"value": "7"}) == {"number": 7}

    @pytest.mark.asyncio
    async def test_seed_input_rolls_random_seed(self, adapter):
        random_out = await adapter.execute(get_node("seed-input"), {"value": -1})
        fixed_out = await adapter.execute(get_node("seed-input"), {"value": 42})

        assert 0 <= random_out["seed"] < MAX_SEED
        assert fixed_out == {"seed": 42}

    @pytest.mark.asyncio
    async def test_import_exposes_url_on_every_media_port(self, adapter):
        out = await adapter.execute(get_node("import"), {"url": "https://x/a.png"})

        assert out == {"image": "https://x/a.png", "video": "https://x/a.png", "audio": "https://x/a.png"}

    @pytest.mark.asyncio
    async def test_preview_picks_first_media_value(self, adapter):
        out = await adapter.execute(get_node("preview"), {"video": "https://x/v.mp4"})

        assert out == {"media": "https://x/v.mp4"}

    @pytest.mark.asyncio
    async def test_text_iterator(self, adapter):
        out = await adapter.execute(get_node("text-iterator"), {"items": "a\nb"})

        assert out == {"text": "a\nb"}


# ---------------------------------------------------------------------------
# fal
# ---------------------------------------------------------------------------


class TestFalAdapter:

    @pytest.mark.asyncio
    async def test_images_are_unwrapped_and_mirrored(self):
        storage = FakeStorage()
        images = [{"url": "https://fal.media/a.png"}, {"url": "https://fal.media/b.png"}]
        adapter, calls = _fal_adapter({"data": {"images": images}, "requestId": "r1"}, storage)

        out = await adapter.execute(get_node("flux-pro"), {"prompt": "a fox", "num_images": "2", "seed": 7})

        assert calls == [("fal-ai/flux-pro/v1.1", {"prompt": "a fox", "num_images": 2, "seed": 7})]
        assert out == {"image": "https://cdn.test/outputs/images/a.png", "images": images}
        assert storage.mirrored == [("https://fal.media/a.png", "outputs/images")]

    @pytest.mark.asyncio
    async def test_video_output_is_mirrored(self):
        adapter, calls = _fal_adapter({"video": {"url": "https://fal.media/v.mp4"}})

        out = await adapter.execute(get_node("kling-v3-i2v"), {"prompt": "move", "image": "https://x/in.png"})

        assert calls[0][1]["start_image_url"] == "https://x/in.png"
        assert "image" not in calls[0][1]
        assert out == {"video": "https://cdn.test/outputs/videos/v.mp4"}

    @pytest.mark.asyncio
    async def test_mirror_failure_falls_back_to_provider_url(self):
        adapter, _ = _fal_adapter({"image": {"url": "https://fal.media/cut.png"}}, FakeStorage(fail_mirror=True))

        out = await adapter.execute(get_node("background-remover"), {"image": "https://x/in.png"})

        assert out == {"image": "https://fal.media/cut.png"}

    @pytest.mark.asyncio
    async def test_unknown_shape_passes_through(self):
        adapter, _ = _fal_adapter({"data": {"text": "caption"}})

        assert await adapter.execute(get_node("flux-schnell"), {"prompt": "p"}) == {"text": "caption"}

    @pytest.mark.asyncio
    async def test_client_errors_become_provider_errors(self):
        async def subscribe(model, arguments):
            raise RuntimeError("quota exceeded")

        adapter = FalAdapter(storage=FakeStorage(), subscribe=subscribe)

        with pytest.raises(ProviderExecutionError, match="quota exceeded"):
            await adapter.execute(get_node("flux-pro"), {"prompt": "p"})


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


class _FakeCompletions:
    def __init__(self, content):
        self.content = content
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class _FakeImages:
    def __init__(self, url):
        self.url = url
        self.calls = []

    async def generate(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(data=[SimpleNamespace(url=self.url)] if self.url else [])


def _fake_openai(content="better prompt", image_url="https://oai/img.png"):
    completions = _FakeCompletions(content)
    images = _FakeImages(image_url)
    client = SimpleNamespace(chat=SimpleNamespace(completions=completions), images=images)
    return client, completions, images


class TestOpenAIAdapter:

    @pytest.mark.asyncio
    async def test_prompt_enhancer_uses_style_system_prompt(self):
        client, completions, _ = _fake_openai()
        adapter = OpenAIAdapter(storage=FakeStorage(), client=client)

        out = await adapter.execute(get_node("prompt-enhancer"), {"text": "a cat", "style": "cinematic"})

        assert out == {"text": "better prompt"}
        call = completions.calls[0]
        assert call["model"] == "gpt-4o-mini"
        assert call["messages"][0] == {"role": "system", "content": ENHANCER_SYSTEM_PROMPTS["cinematic"]}
        assert call["messages"][1] == {"role": "user", "content": "a cat"}

    @pytest.mark.asyncio
    async def test_unknown_style_falls_back_to_detailed(self):
        client, completions, _ = _fake_openai()
        adapter = OpenAIAdapter(storage=FakeStorage(), client=client)

        await adapter.execute(get_node("prompt-enhancer"), {"text": "a cat", "style": "baroque"})

        assert completions.calls[0]["messages"][0]["content"] == ENHANCER_SYSTEM_PROMPTS["detailed"]

    @pytest.mark.asyncio
    async def test_image_describer_sends_image_url(self):
        client, completions, _ = _fake_openai(content="a red fox")
        adapter = OpenAIAdapter(storage=FakeStorage(), client=client)

        out = await adapter.execute(get_node("image-describer"), {"image": "https://x/fox.png"})

        content = completions.calls[0]["messages"][0]["content"]
        assert content[0] == {"type": "image_url", "image_url": {"url": "https://x/fox.png"}}
        assert out == {"text": "a red fox"}

    @pytest.mark.asyncio
    async def test_dalle_result_is_mirrored(self):
        client, _, images = _fake_openai()
        storage = FakeStorage()
        adapter = OpenAIAdapter(storage=storage, client=client)

        out = await adapter.execute(get_node("dalle-3"), {"prompt": "a fox", "size": "1792x1024"})

        assert images.calls[0]["size"] == "1792x1024"
        assert images.calls[0]["n"] == 1
        assert out == {"image": "https://cdn.test/outputs/images/img.png"}

    @pytest.mark.asyncio
    async def test_dalle_without_url_fails(self):
        client, _, _ = _fake_openai(image_url=None)
        adapter = OpenAIAdapter(storage=FakeStorage(), client=client)

        with pytest.raises(ProviderExecutionError, match="no image URL"):
            await adapter.execute(get_node("dalle-3"), {"prompt": "a fox"})


# ---------------------------------------------------------------------------
# Gemini
# ---------------------------------------------------------------------------


class _FakeGeminiModels:
    def __init__(self, images):
        self.images = images
        self.calls = []

    async def generate_images(self, **kwargs):
        self.calls.append(kwargs)
        return SimpleNamespace(generated_images=self.images)


def _fake_gemini(images):
    models = _FakeGeminiModels(images)
    return SimpleNamespace(aio=SimpleNamespace(models=models)), models


class TestGeminiAdapter:

    @pytest.mark.asyncio
    async def test_first_image_is_uploaded(self):
        image = SimpleNamespace(image_bytes=b"PNGDATA", mime_type="image/png")
        client, models = _fake_gemini([SimpleNamespace(image=image)])
        storage = FakeStorage()
        adapter = GeminiAdapter(storage=storage, client=client)

        out = await adapter.execute(get_node("imagen-4"), {"prompt": "a fox", "sampleCount": "2", "aspectRatio": "16:9"})

        call = models.calls[0]
        assert call["model"] == "imagen-4.0-generate-001"
        assert call["config"].number_of_images == 2
        assert call["config"].aspect_ratio == "16:9"
        assert storage.uploaded == [(b"PNGDATA", "outputs/images", "image/png")]
        assert out == {"image": "https://cdn.test/outputs/images/upload-1"}

    @pytest.mark.asyncio
    async def test_no_images_is_an_error(self):
        client, _ = _fake_gemini([])
        adapter = GeminiAdapter(storage=FakeStorage(), client=client)

        with pytest.raises(ProviderExecutionError, match="no images"):
            await adapter.execute(get_node("imagen-4-flash"), {"prompt": "a fox"})

    @pytest.mark.asyncio
    async def test_upload_failure_returns_data_url(self):
        class BrokenStorage(FakeStorage):
            async def upload_bytes(self, data, *, folder="uploads", content_type="application/octet-stream"):
                raise RuntimeError("bucket unavailable")

        image = SimpleNamespace(image_bytes=b"abc", mime_type="image/jpeg")
        client, _ = _fake_gemini([SimpleNamespace(image=image)])
        adapter = GeminiAdapter(storage=BrokenStorage(), client=client)

        out = await adapter.execute(get_node("imagen-4"), {"prompt": "a fox"})

        assert out == {"image": "data:image/jpeg;base64," + base64.b64encode(b"abc").decode()}


# ---------------------------------------------------------------------------
# Replicate
# ---------------------------------------------------------------------------


_REPLICATE_DEF = NodeDefinition(
    id="sdxl",
    label="SDXL",
    category="image-gen",
    inputs=[NodePort(id="prompt", label="Prompt", type="text")],
    outputs=[NodePort(id="image", label="Image", type="image")],
    credit_cost=2,
    provider="replicate",
    provider_model="stability-ai/sdxl",
)


def _replicate_adapter(handler, storage=None):
    def factory():
        return httpx.AsyncClient(base_url="https://api.replicate.com/v1", transport=httpx.MockTransport(handler))

    return ReplicateAdapter(storage=storage or FakeStorage(), http_client_factory=factory)


class TestReplicateAdapter:

    @pytest.mark.asyncio
    async def test_polls_until_succeeded(self, monkeypatch):
        monkeypatch.setenv("REPLICATE_POLL_INTERVAL", "0.001")
        requests = []

        def handler(request: httpx.Request):
            requests.append((request.method, request.url.path))
            if request.method == "POST":
                return httpx.Response(201, json={"id": "p1", "status": "processing"})
            return httpx.Response(200, json={"id": "p1", "status": "succeeded", "output": ["https://replicate.delivery/out.png"]})

        out = await _replicate_adapter(handler).execute(_REPLICATE_DEF, {"prompt": "a fox"})

        assert requests == [("POST", "/v1/models/stability-ai/sdxl/predictions"), ("GET", "/v1/predictions/p1")]
        assert out == {"image": "https://cdn.test/outputs/images/out.png"}

    @pytest.mark.asyncio
    async def test_failed_prediction_raises(self):
        def handler(request: httpx.Request):
            return httpx.Response(201, json={"id": "p1", "status": "failed", "error": "NSFW content detected"})

        with pytest.raises(ProviderExecutionError, match="NSFW"):
            await _replicate_adapter(handler).execute(_REPLICATE_DEF, {"prompt": "a fox"})

    @pytest.mark.asyncio
    async def test_server_errors_are_retried_when_enabled(self, monkeypatch):
        monkeypatch.setenv("PROVIDER_RETRY_ATTEMPTS", "2")
        monkeypatch.setattr("app.services.providers.base.asyncio.sleep", _no_sleep)
        attempts = []

        def handler(request: httpx.Request):
            attempts.append(request.method)
            if len(attempts) == 1:
                return httpx.Response(503, json={"detail": "busy"})
            return httpx.Response(201, json={"id": "p1", "status": "succeeded", "output": "https://r/out.png"})

        out = await _replicate_adapter(handler).execute(_REPLICATE_DEF, {"prompt": "a fox"})

        assert attempts == ["POST", "POST"]
        assert out == {"image": "https://cdn.test/outputs/images/out.png"}


async def _no_sleep(_delay):
    return None


@pytest.mark.asyncio
async def test_non_transient_errors_are_not_retried():
    calls = []

    async def call():
        calls.append(1)
        raise ProviderExecutionError("bad request", provider="fal", transient=False)

    with pytest.raises(ProviderExecutionError):
        await call_with_retries(call, provider="fal", attempts=3)

    assert len(calls) == 1
