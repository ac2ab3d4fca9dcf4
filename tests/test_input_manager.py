"""Tests for loading input images."""

import asyncio
import base64
import time

import pytest

from conftest import FakeInferenceClient, make_png, open_image
from livedraw.canvas.draw_layer import Stroke
from livedraw.canvas.input_manager import InputImageManager, list_presets
from livedraw.exceptions import ImageLoadError, ValidationError
from livedraw.session import history as hist
from livedraw.session.sequencer import RequestSequencer
from livedraw.session.state import PRESET, UPLOAD, SessionState


@pytest.fixture
def client():
    return FakeInferenceClient()


@pytest.fixture
def manager(settings, store, client):
    state = SessionState.new("s1")
    sequencer = RequestSequencer(state, store, client, image_size=settings.image_size)
    return InputImageManager(
        state, store, sequencer, image_size=settings.image_size, preset_dir=settings.preset_dir
    )


def test_upload_resets_history_and_generates_once(manager, client, store):
    state = manager.state
    state.history = hist.push(hist.push(hist.reset("old-a"), "old-b"), "old-c")
    state.layer.add_stroke(Stroke(points=((1, 1),)))

    applied = asyncio.run(manager.set_image(make_png((10, 200, 10), size=(200, 100))))

    assert applied is True
    assert len(client.calls) == 1
    # the new input plus the first generated output
    assert len(state.history) == 2
    assert state.history.entries[1] == state.input_image
    assert state.input_source == UPLOAD
    assert state.layer.strokes == []
    assert state.iteration == 1
    assert not state.image_loading
    assert manager.loaded.done()
    stored = open_image(store.read(state.input_image))
    assert stored.size == (64, 64)


def test_data_url_upload(manager, client):
    url = "data:image/png;base64," + base64.b64encode(make_png()).decode()
    asyncio.run(manager.set_image(url))
    assert len(client.calls) == 1
    assert manager.state.input_source == UPLOAD


def test_bad_upload_keeps_previous_image(manager, client):
    asyncio.run(manager.set_image(make_png()))
    before = (manager.state.input_image, manager.state.history)

    with pytest.raises(ImageLoadError):
        asyncio.run(manager.set_image(b"not an image"))

    assert (manager.state.input_image, manager.state.history) == before
    assert not manager.state.image_loading
    assert len(client.calls) == 1


def test_results_for_previous_image_are_stale(manager):
    asyncio.run(manager.set_image(make_png()))
    old_token = manager.state.last_accepted_token - 1
    asyncio.run(manager.set_image(make_png((0, 0, 0))))
    assert manager.sequencer.accept(old_token, make_png()) is False


def test_presets(manager, client, settings, tmp_path):
    preset_dir = tmp_path / "presets"
    preset_dir.mkdir()
    (preset_dir / "b_cat.png").write_bytes(make_png((1, 2, 3)))
    (preset_dir / "a_dog.jpg").write_bytes(make_png((4, 5, 6)))
    (preset_dir / "notes.txt").write_text("skip me")

    assert list_presets(settings.preset_dir) == ["a_dog.jpg", "b_cat.png"]

    asyncio.run(manager.select_preset("b_cat.png"))
    assert manager.state.input_source == PRESET
    assert manager.state.preset_name == "b_cat.png"
    assert len(client.calls) == 1


def test_unknown_or_traversal_preset_rejected(manager, client):
    with pytest.raises(ValidationError):
        asyncio.run(manager.select_preset("missing.png"))
    with pytest.raises(ValidationError):
        asyncio.run(manager.select_preset("../secret.png"))
    assert client.calls == []


def test_list_presets_missing_dir(tmp_path):
    assert list_presets(str(tmp_path / "nope")) == []


def _slow_decode(manager, monkeypatch, delays):
    decode = manager._decode

    def slow(source):
        time.sleep(delays.get(source, 0))
        return decode(source)

    monkeypatch.setattr(manager, "_decode", slow)


def test_newer_upload_wins_over_slower_older_one(manager, client, store, monkeypatch):
    red = make_png((255, 0, 0))
    blue = make_png((0, 0, 255))
    _slow_decode(manager, monkeypatch, {red: 0.2})

    async def scenario():
        first = asyncio.create_task(manager.set_image(red))
        await asyncio.sleep(0.01)
        second = asyncio.create_task(manager.set_image(blue))
        return await asyncio.gather(first, second)

    assert asyncio.run(scenario()) == [False, True]

    state = manager.state
    r, g, b = open_image(store.read(state.input_image)).convert("RGB").getpixel((32, 32))
    assert b > 200 and r < 50
    assert len(client.calls) == 1
    assert len(state.history) == 2
    assert not state.image_loading


def test_image_loading_stays_set_until_newest_load_finishes(manager, monkeypatch):
    red = make_png((255, 0, 0))
    blue = make_png((0, 0, 255))
    _slow_decode(manager, monkeypatch, {red: 0.05, blue: 0.3})

    async def scenario():
        first = asyncio.create_task(manager.set_image(red))
        await asyncio.sleep(0.01)
        second = asyncio.create_task(manager.set_image(blue))
        applied_first = await first
        loading_between = manager.state.image_loading
        applied_second = await second
        return applied_first, loading_between, applied_second

    assert asyncio.run(scenario()) == (False, True, True)
    assert not manager.state.image_loading
