import asyncio
import io
from types import SimpleNamespace

import PIL.Image
import pytest

from livedraw.config import Settings
from livedraw.storage.image_store import ImageStore


def make_png(color=(255, 255, 255), size=(64, 64)) -> bytes:
    buffer = io.BytesIO()
    PIL.Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def open_image(data: bytes) -> PIL.Image.Image:
    image = PIL.Image.open(io.BytesIO(data))
    image.load()
    return image


class FakeInferenceClient:
    """Returns a solid-colour PNG per call; records what it was sent."""

    def __init__(self, colors=None, error=None):
        self.calls = []
        self.colors = list(colors or [])
        self.error = error
        self.closed = False

    async def regenerate(self, image_jpeg, prompt, num_iterations):
        self.calls.append({"image": image_jpeg, "prompt": prompt, "num_iterations": num_iterations})
        if self.error is not None:
            raise self.error
        index = len(self.calls) - 1
        color = self.colors[index] if index < len(self.colors) else (index * 20 % 256, 0, 0)
        return make_png(color)

    async def aclose(self):
        self.closed = True


class GatedInferenceClient:
    """Each call blocks until the test releases it, so completion order is controllable."""

    def __init__(self):
        self.calls = []
        self._gates = []

    async def regenerate(self, image_jpeg, prompt, num_iterations):
        gate = asyncio.Event()
        index = len(self.calls)
        self.calls.append(prompt)
        self._gates.append(gate)
        await gate.wait()
        return make_png((index * 40 % 256, 100, 100))

    def release(self, index):
        self._gates[index].set()


def gemini_response(image_bytes=None, text=None):
    parts = []
    if text is not None:
        parts.append(SimpleNamespace(text=text, inline_data=None))
    if image_bytes is not None:
        parts.append(SimpleNamespace(text=None, inline_data=SimpleNamespace(data=image_bytes, mime_type="image/png")))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


class FakeGeminiModel:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def generate_content_async(self, content_parts, generation_config=None):
        self.calls.append({"parts": content_parts, "generation_config": generation_config})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def settings(tmp_path):
    return Settings(
        output_dir=str(tmp_path / "uploads"),
        preset_dir=str(tmp_path / "presets"),
        image_size=64,
        draw_throttle_seconds=0.05,
        prompt_debounce_seconds=0.05,
    )


@pytest.fixture
def store(settings):
    return ImageStore(settings.output_dir)
