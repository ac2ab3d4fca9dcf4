"""HTTP API tests with fake inference and Gemini backends."""

import base64
import logging

import pytest
from fastapi.testclient import TestClient

from conftest import FakeGeminiModel, FakeInferenceClient, gemini_response, make_png
from livedraw.api.main import app, runtime_dependency
from livedraw.editor.runtime import EditorRuntime
from livedraw.tools.enhance_image_tool import Enhancer


@pytest.fixture
def runtime(settings):
    runtime = EditorRuntime(settings)
    runtime.client = FakeInferenceClient()
    runtime.enhancer = Enhancer(model=FakeGeminiModel(gemini_response(make_png((5, 5, 5)))))
    return runtime


@pytest.fixture
def client(runtime):
    app.dependency_overrides[runtime_dependency] = lambda: runtime
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def session_id(client):
    response = client.post("/api/sessions", json={})
    assert response.status_code == 200
    return response.json()["session_id"]


def _upload(client, session_id):
    response = client.post(
        f"/api/sessions/{session_id}/image",
        files={"file": ("photo.png", make_png((120, 30, 30), size=(80, 60)), "image/png")},
    )
    assert response.status_code == 200
    return response.json()


def test_root_and_health(client):
    assert client.get("/api/health").json()["status"] == "healthy"
    assert "endpoints" in client.get("/").json()


def test_new_session_is_empty(client, session_id):
    body = client.get(f"/api/sessions/{session_id}").json()
    assert body["history"] == []
    assert body["current_output_index"] == -1
    assert body["loading"] is False


def test_upload_generates_once(client, session_id, runtime):
    body = _upload(client, session_id)
    assert body["success"] is True
    session = body["session"]
    assert len(session["history"]) == 2
    assert session["current_output_index"] == 0
    assert session["input_source"] == "upload"
    assert len(runtime.client.calls) == 1


def test_data_url_upload(client, session_id):
    url = "data:image/png;base64," + base64.b64encode(make_png()).decode()
    response = client.post(f"/api/sessions/{session_id}/image/data-url", json={"data_url": url})
    assert response.status_code == 200
    assert len(response.json()["session"]["history"]) == 2


def test_bad_upload_is_400(client, session_id):
    response = client.post(
        f"/api/sessions/{session_id}/image",
        files={"file": ("bad.png", b"nope", "image/png")},
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "IMAGE_LOAD_ERROR"


def test_generate_without_image_is_409(client, session_id):
    response = client.post(f"/api/sessions/{session_id}/generate", json={})
    assert response.status_code == 409


def test_generate_undo_redo(client, session_id, runtime):
    _upload(client, session_id)
    body = client.post(
        f"/api/sessions/{session_id}/generate", json={"use_output_image": True, "iterations": 4}
    ).json()
    assert body["success"] is True
    assert len(body["session"]["history"]) == 3
    assert runtime.client.calls[-1]["num_iterations"] == 4

    body = client.post(f"/api/sessions/{session_id}/undo").json()
    assert body["success"] is True
    assert body["session"]["current_output_index"] == 1

    body = client.post(f"/api/sessions/{session_id}/redo").json()
    assert body["session"]["current_output_index"] == 0

    body = client.post(f"/api/sessions/{session_id}/redo").json()
    assert body["success"] is False


def test_enhance(client, session_id):
    _upload(client, session_id)
    body = client.post(f"/api/sessions/{session_id}/enhance", json={"prompt": "more contrast"}).json()
    assert body["success"] is True
    assert body["session"]["current_output"].startswith("enhanced_")

    response = client.post(f"/api/sessions/{session_id}/enhance", json={"prompt": ""})
    assert response.status_code == 400


def test_strokes_brush_prompt_layout(client, session_id):
    response = client.put(f"/api/sessions/{session_id}/brush", json={"color": "#ff0000", "size": 12})
    assert response.json()["session"]["brush"] == {"color": "#ff0000", "size": 12}

    response = client.put(f"/api/sessions/{session_id}/brush", json={"size": 0})
    assert response.status_code == 400

    response = client.post(f"/api/sessions/{session_id}/strokes", json={"points": [[1, 2], [3, 4]]})
    assert response.json()["session"]["stroke_count"] == 1

    response = client.post(f"/api/sessions/{session_id}/strokes", json={"points": [[1, 2, 3]]})
    assert response.status_code == 400

    response = client.post(f"/api/sessions/{session_id}/strokes/undo")
    assert response.json()["success"] is True
    assert response.json()["session"]["stroke_count"] == 0

    response = client.put(f"/api/sessions/{session_id}/prompt", json={"prompt": "a cat"})
    assert response.json()["session"]["prompt"] == "a cat"

    response = client.put(f"/api/sessions/{session_id}/layout", json={"mobile": True})
    assert response.json()["session"]["mobile_layout"] is True


def test_download(client, session_id):
    assert client.get(f"/api/sessions/{session_id}/download").status_code == 404
    _upload(client, session_id)
    response = client.get(f"/api/sessions/{session_id}/download")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.headers["content-disposition"].startswith("attachment")
    assert response.content.startswith(b"\x89PNG")


def test_presets(client, session_id, tmp_path):
    preset_dir = tmp_path / "presets"
    preset_dir.mkdir()
    (preset_dir / "dog.png").write_bytes(make_png())
    assert client.get("/api/presets").json()["presets"] == ["dog.png"]

    body = client.post(f"/api/sessions/{session_id}/preset", json={"name": "dog.png"}).json()
    assert body["session"]["input_source"] == "preset"
    assert body["session"]["preset_name"] == "dog.png"

    response = client.post(f"/api/sessions/{session_id}/preset", json={"name": "cat.png"})
    assert response.status_code == 400


def test_unknown_session_is_404(client):
    assert client.get("/api/sessions/missing").status_code == 404
    assert client.post("/api/sessions/missing/undo").status_code == 404
    assert client.delete("/api/sessions/missing").status_code == 404


def test_delete_session(client, session_id):
    assert client.delete(f"/api/sessions/{session_id}").json()["success"] is True
    assert client.get(f"/api/sessions/{session_id}").status_code == 404


def test_image_route_guards_traversal(client, session_id):
    body = _upload(client, session_id)
    filename = body["session"]["input_image"]
    assert client.get(f"/api/images/{filename}").status_code == 200
    assert client.get("/api/images/..%2Fsecret.png").status_code == 404


class _Collect(logging.Handler):

    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_unexpected_error_is_500_and_logged(runtime):
    runtime.client = FakeInferenceClient(error=RuntimeError("kaboom"))
    handler = _Collect()
    api_logger = logging.getLogger("livedraw.api.main")
    api_logger.addHandler(handler)
    app.dependency_overrides[runtime_dependency] = lambda: runtime
    try:
        with TestClient(app, raise_server_exceptions=False) as test_client:
            session_id = test_client.post("/api/sessions", json={}).json()["session_id"]
            response = test_client.post(
                f"/api/sessions/{session_id}/image",
                files={"file": ("photo.png", make_png(), "image/png")},
            )
    finally:
        app.dependency_overrides.clear()
        api_logger.removeHandler(handler)

    assert response.status_code == 500
    assert "RuntimeError" in response.json()["detail"]
    errors = [r for r in handler.records if r.levelno == logging.ERROR]
    assert errors and errors[0].exc_info is not None
