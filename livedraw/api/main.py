"""FastAPI application for the live drawing editor."""
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse
from pydantic import BaseModel, Field

from ..canvas.input_manager import list_presets
from ..editor.controller import EditorController
from ..editor.runtime import EditorRuntime, get_runtime, shutdown_runtime
from ..exceptions import (
    CaptureError,
    ImageLoadError,
    LiveDrawError,
    SessionNotFoundError,
    ValidationError,
)
from ..utils.env import setup_logging

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# FASTAPI APP
# -------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    yield
    override = app.dependency_overrides.get(runtime_dependency)
    if override is not None:
        await override().shutdown()
    else:
        await shutdown_runtime()


app = FastAPI(
    title="Live Drawing Editor API",
    description="Draw on an image and regenerate it with a diffusion model",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STATUS_CODES = {
    ValidationError: 400,
    ImageLoadError: 400,
    SessionNotFoundError: 404,
    CaptureError: 409,
}


@app.exception_handler(LiveDrawError)
async def _livedraw_error(request: Request, exc: LiveDrawError):
    status_code = 500
    for error_type, code in _STATUS_CODES.items():
        if isinstance(exc, error_type):
            status_code = code
            break
    if status_code == 500:
        logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error_code": exc.error_code},
    )


@app.exception_handler(Exception)
async def _unhandled_error(request: Request, exc: Exception):
    logger.error("Unhandled error on %s: %s", request.url.path, exc, exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": f"internal error: {exc.__class__.__name__}: {exc}"},
    )


# -------------------------------------------------------------------
# SCHEMAS
# -------------------------------------------------------------------
class CreateSessionRequest(BaseModel):
    session_id: Optional[str] = None


class DataUrlRequest(BaseModel):
    data_url: str


class PresetRequest(BaseModel):
    name: str


class StrokeRequest(BaseModel):
    points: List[List[float]] = Field(..., min_length=1)


class PromptRequest(BaseModel):
    prompt: str


class BrushRequest(BaseModel):
    color: Optional[str] = None
    size: Optional[int] = None


class LayoutRequest(BaseModel):
    mobile: bool


class GenerateRequest(BaseModel):
    use_output_image: bool = False
    iterations: Optional[int] = None


class EnhanceRequest(BaseModel):
    prompt: str


class SessionResponse(BaseModel):
    session_id: str
    prompt: str
    input_image: Optional[str]
    input_source: Optional[str]
    preset_name: Optional[str]
    brush: dict
    stroke_count: int
    history: List[str]
    current_output_index: int
    current_output: Optional[str]
    can_undo: bool
    can_redo: bool
    loading: bool
    image_loading: bool
    mobile_layout: bool
    iteration: int


class ActionResponse(BaseModel):
    success: bool
    message: str
    session: SessionResponse


# -------------------------------------------------------------------
# DEPENDENCIES
# -------------------------------------------------------------------
def runtime_dependency() -> EditorRuntime:
    return get_runtime()


def session_dependency(
    session_id: str,
    runtime: EditorRuntime = Depends(runtime_dependency),
) -> EditorController:
    return runtime.sessions.get(session_id)


def _action(controller: EditorController, success: bool, message: str) -> ActionResponse:
    return ActionResponse(
        success=success,
        message=message,
        session=SessionResponse(**controller.snapshot()),
    )


# -------------------------------------------------------------------
# ROUTES
# -------------------------------------------------------------------
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "service": "Live Drawing Editor API",
        "version": "1.0.0",
        "endpoints": {
            "presets": "GET /api/presets",
            "create_session": "POST /api/sessions",
            "session": "GET|DELETE /api/sessions/{session_id}",
            "upload": "POST /api/sessions/{session_id}/image",
            "stroke": "POST /api/sessions/{session_id}/strokes",
            "prompt": "PUT /api/sessions/{session_id}/prompt",
            "generate": "POST /api/sessions/{session_id}/generate",
            "enhance": "POST /api/sessions/{session_id}/enhance",
            "undo": "POST /api/sessions/{session_id}/undo",
            "redo": "POST /api/sessions/{session_id}/redo",
            "download": "GET /api/sessions/{session_id}/download",
            "health": "GET /api/health",
        }
    }


@app.get("/api/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "service": "livedraw-api"}


@app.get("/api/presets")
async def presets(runtime: EditorRuntime = Depends(runtime_dependency)):
    names = list_presets(runtime.settings.preset_dir)
    return {"success": True, "count": len(names), "presets": names}


@app.post("/api/sessions", response_model=SessionResponse)
async def create_session(
    request: CreateSessionRequest,
    runtime: EditorRuntime = Depends(runtime_dependency),
):
    controller = runtime.sessions.create(request.session_id)
    logger.info("Session %s opened", controller.session_id)
    return SessionResponse(**controller.snapshot())


@app.get("/api/sessions/{session_id}", response_model=SessionResponse)
async def get_session(controller: EditorController = Depends(session_dependency)):
    return SessionResponse(**controller.snapshot())


@app.delete("/api/sessions/{session_id}")
async def delete_session(session_id: str, runtime: EditorRuntime = Depends(runtime_dependency)):
    await runtime.sessions.drop(session_id)
    logger.info("Session %s closed", session_id)
    return {"success": True, "message": f"Session {session_id} closed"}


@app.post("/api/sessions/{session_id}/image", response_model=ActionResponse)
async def upload_image(
    file: UploadFile = File(...),
    controller: EditorController = Depends(session_dependency),
):
    """Upload a new input image; resets the history and generates once."""
    content = await file.read()
    applied = await controller.set_image(content)
    return _action(controller, applied, f"Loaded {file.filename or 'upload'}")


@app.post("/api/sessions/{session_id}/image/data-url", response_model=ActionResponse)
async def upload_data_url(
    request: DataUrlRequest,
    controller: EditorController = Depends(session_dependency),
):
    applied = await controller.set_image(request.data_url)
    return _action(controller, applied, "Loaded image")


@app.post("/api/sessions/{session_id}/preset", response_model=ActionResponse)
async def select_preset(
    request: PresetRequest,
    controller: EditorController = Depends(session_dependency),
):
    applied = await controller.select_preset(request.name)
    return _action(controller, applied, f"Loaded preset {request.name}")


@app.post("/api/sessions/{session_id}/strokes", response_model=ActionResponse)
async def add_stroke(
    request: StrokeRequest,
    controller: EditorController = Depends(session_dependency),
):
    for point in request.points:
        if len(point) != 2:
            raise ValidationError("Each point must be [x, y]", field="points")
    controller.add_stroke(request.points)
    return _action(controller, True, "Stroke added")


@app.delete("/api/sessions/{session_id}/strokes", response_model=ActionResponse)
async def clear_strokes(controller: EditorController = Depends(session_dependency)):
    controller.clear_canvas()
    return _action(controller, True, "Canvas cleared")


@app.post("/api/sessions/{session_id}/strokes/undo", response_model=ActionResponse)
async def undo_stroke(controller: EditorController = Depends(session_dependency)):
    removed = controller.undo_stroke()
    return _action(controller, removed, "Stroke removed" if removed else "No stroke to remove")


@app.put("/api/sessions/{session_id}/prompt", response_model=ActionResponse)
async def set_prompt(
    request: PromptRequest,
    controller: EditorController = Depends(session_dependency),
):
    controller.set_prompt(request.prompt)
    return _action(controller, True, "Prompt updated")


@app.put("/api/sessions/{session_id}/brush", response_model=ActionResponse)
async def set_brush(
    request: BrushRequest,
    controller: EditorController = Depends(session_dependency),
):
    controller.set_brush(color=request.color, size=request.size)
    return _action(controller, True, "Brush updated")


@app.put("/api/sessions/{session_id}/layout", response_model=ActionResponse)
async def set_layout(
    request: LayoutRequest,
    controller: EditorController = Depends(session_dependency),
):
    controller.set_mobile_layout(request.mobile)
    return _action(controller, True, "Layout updated")


@app.post("/api/sessions/{session_id}/generate", response_model=ActionResponse)
async def generate(
    request: GenerateRequest,
    controller: EditorController = Depends(session_dependency),
):
    """Regenerate the output now, bypassing throttling."""
    applied = await controller.generate(
        use_output_image=request.use_output_image,
        iterations=request.iterations,
    )
    message = "Output updated" if applied else "No new output (failed or superseded)"
    return _action(controller, applied, message)


@app.post("/api/sessions/{session_id}/enhance", response_model=ActionResponse)
async def enhance(
    request: EnhanceRequest,
    controller: EditorController = Depends(session_dependency),
):
    """Refine the displayed output with the generative image API."""
    applied = await controller.enhance(request.prompt)
    message = "Image enhanced" if applied else "Enhancement failed; previous output kept"
    return _action(controller, applied, message)


@app.post("/api/sessions/{session_id}/undo", response_model=ActionResponse)
async def undo(controller: EditorController = Depends(session_dependency)):
    moved = controller.undo()
    return _action(controller, moved, "Moved to older output" if moved else "Already at oldest output")


@app.post("/api/sessions/{session_id}/redo", response_model=ActionResponse)
async def redo(controller: EditorController = Depends(session_dependency)):
    moved = await controller.redo()
    return _action(controller, moved, "Moved to newer output" if moved else "Already at newest output")


def _output_response(controller: EditorController, attachment: bool) -> FileResponse:
    path = controller.output_path()
    if path is None:
        raise HTTPException(status_code=404, detail="No output image yet")
    filename = controller.state.current_output
    return FileResponse(
        path,
        media_type=controller.store.mime_type(filename),
        filename=filename,
        content_disposition_type="attachment" if attachment else "inline",
    )


@app.get("/api/sessions/{session_id}/output")
async def get_output(controller: EditorController = Depends(session_dependency)):
    return _output_response(controller, attachment=False)


@app.get("/api/sessions/{session_id}/download")
async def download_output(controller: EditorController = Depends(session_dependency)):
    """Download the displayed output image."""
    return _output_response(controller, attachment=True)


@app.get("/api/images/{filename}")
async def get_image(filename: str, runtime: EditorRuntime = Depends(runtime_dependency)):
    """Retrieve a stored image file by filename."""
    store = runtime.store
    if not store.exists(filename):
        raise HTTPException(status_code=404, detail=f"Image not found: {filename}")
    return FileResponse(store.path(filename), media_type=store.mime_type(filename), filename=filename)


# -------------------------------------------------------------------
# RUN SERVER
# -------------------------------------------------------------------
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
