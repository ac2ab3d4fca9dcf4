"""Editor runtime initialization - singleton settings, clients and session memory."""
from typing import Optional

from ..config import Settings, load_settings
from ..session.memory import SessionMemory
from ..session.sequencer import RequestClock
from ..storage.image_store import ImageStore
from ..tools.enhance_image_tool import Enhancer
from ..tools.inference_client import InferenceClient
from .controller import EditorController


class EditorRuntime:
    """Process-wide collaborators shared by every session."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or load_settings()
        self.store = ImageStore(self.settings.output_dir)
        self.client = InferenceClient(self.settings.inference_url, timeout=self.settings.inference_timeout)
        self.enhancer = Enhancer(self.settings.enhance_model)
        # One clock for every session keeps tokens comparable across the process
        self.clock = RequestClock()
        self.sessions = SessionMemory(self.new_controller)

    def new_controller(self, session_id: str) -> EditorController:
        return EditorController(
            session_id,
            self.settings,
            self.store,
            self.client,
            self.enhancer,
            clock=self.clock,
        )

    async def shutdown(self) -> None:
        for session_id in self.sessions.ids():
            await self.sessions.drop(session_id)
        await self.client.aclose()


# Global runtime instance
_runtime: Optional[EditorRuntime] = None


def get_runtime() -> EditorRuntime:
    """Get the global editor runtime, creating it on first use."""
    global _runtime
    if _runtime is None:
        _runtime = EditorRuntime()
    return _runtime


async def shutdown_runtime() -> None:
    """Close the global runtime if one was created."""
    global _runtime
    if _runtime is not None:
        await _runtime.shutdown()
        _runtime = None
