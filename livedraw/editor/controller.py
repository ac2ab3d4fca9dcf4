"""Editor controller: the single owner of one session's state."""
import asyncio
import logging
from typing import Any, Optional, Sequence

from ..canvas.draw_layer import BrushSettings, Stroke
from ..canvas.images import decode_image, encode_png
from ..canvas.input_manager import ImageSource, InputImageManager
from ..config import Settings
from ..exceptions import LiveDrawError, ValidationError
from ..session import history as hist
from ..session.sequencer import RegenerateClient, RequestClock, RequestSequencer
from ..session.state import SessionState
from ..session.throttle import Debouncer, Throttle
from ..storage.image_store import ImageStore
from ..tools.enhance_image_tool import Enhancer

logger = logging.getLogger(__name__)


class EditorController:
    """Wires the draw layer, input manager, sequencer and enhancer around one SessionState."""

    def __init__(
        self,
        session_id: str,
        settings: Settings,
        store: ImageStore,
        client: RegenerateClient,
        enhancer: Enhancer,
        clock: Optional[RequestClock] = None,
    ):
        self.settings = settings
        self.store = store
        self.enhancer = enhancer
        self.state = SessionState.new(session_id, history_limit=settings.history_limit)
        self.sequencer = RequestSequencer(
            self.state,
            store,
            client,
            clock=clock,
            image_size=settings.image_size,
            default_iterations=settings.default_iterations,
            jpeg_quality=settings.jpeg_quality,
        )
        self.inputs = InputImageManager(
            self.state,
            store,
            self.sequencer,
            image_size=settings.image_size,
            preset_dir=settings.preset_dir,
        )
        self.draw_throttle = Throttle(
            settings.draw_throttle_seconds, self._regenerate, name=f"draw[{session_id}]"
        )
        self.prompt_debounce = Debouncer(
            settings.prompt_debounce_seconds, self._regenerate, name=f"prompt[{session_id}]"
        )

    @property
    def session_id(self) -> str:
        return self.state.session_id

    async def _regenerate(self) -> None:
        if self.state.input_image is None:
            logger.debug("Session %s: no input image yet, skipping regeneration", self.session_id)
            return
        await self.sequencer.generate()

    # -- input image ---------------------------------------------------

    async def set_image(self, source: ImageSource) -> bool:
        self.draw_throttle.cancel()
        self.prompt_debounce.cancel()
        return await self.inputs.set_image(source)

    async def select_preset(self, name: str) -> bool:
        self.draw_throttle.cancel()
        self.prompt_debounce.cancel()
        return await self.inputs.select_preset(name)

    # -- drawing and prompt --------------------------------------------

    def add_stroke(self, points: Sequence[Sequence[float]]) -> Stroke:
        """Record a stroke with the current brush and schedule a throttled regeneration."""
        stroke = Stroke.from_points(points, self.state.brush)
        self.state.layer.add_stroke(stroke)
        self.draw_throttle.trigger()
        return stroke

    def undo_stroke(self) -> bool:
        if self.state.layer.undo_stroke() is None:
            return False
        self.draw_throttle.trigger()
        return True

    def clear_canvas(self) -> None:
        self.state.layer.clear()
        self.draw_throttle.trigger()

    def set_prompt(self, prompt: str) -> None:
        """Update the prompt; regeneration fires once typing pauses."""
        if prompt == self.state.prompt:
            return
        self.state.prompt = prompt
        self.prompt_debounce.trigger()

    def set_brush(self, color: Optional[str] = None, size: Optional[int] = None) -> BrushSettings:
        current = self.state.brush
        self.state.brush = BrushSettings(
            color=current.color if color is None else color,
            size=current.size if size is None else size,
        )
        return self.state.brush

    def set_mobile_layout(self, mobile: bool) -> None:
        self.state.mobile_layout = mobile

    # -- generation ----------------------------------------------------

    async def generate(self, use_output_image: bool = False, iterations: Optional[int] = None) -> bool:
        if iterations is not None and iterations < 1:
            raise ValidationError("iterations must be at least 1", field="iterations")
        return await self.sequencer.generate(use_output_image=use_output_image, iterations=iterations)

    def _read_png(self, filename: str) -> bytes:
        return encode_png(decode_image(self.store.read(filename), source=filename))

    async def enhance(self, prompt: str) -> bool:
        """
        Refine the displayed output with Gemini.

        Failures are logged and leave the displayed output as it was.

        Raises:
            ValidationError: If the prompt is empty or nothing is displayed yet

        Returns:
            True if the enhanced image is now displayed
        """
        prompt = (prompt or "").strip()
        if not prompt:
            raise ValidationError("Enhance prompt must not be empty", field="prompt")
        current = self.state.current_output
        if current is None:
            raise ValidationError("There is no output image to enhance", field="history")

        token = self.sequencer.clock.next_token()
        self.state.in_flight += 1
        try:
            png = await asyncio.to_thread(self._read_png, current)
            image_bytes = await self.enhancer.enhance(prompt, png)
            await asyncio.to_thread(decode_image, image_bytes, "enhance response")
        except (LiveDrawError, OSError) as e:
            logger.error("Session %s: enhancement failed: %s", self.session_id, e)
            return False
        finally:
            self.state.in_flight -= 1

        return self.sequencer.accept(token, image_bytes, prefix="enhanced")

    # -- history -------------------------------------------------------

    def undo(self) -> bool:
        before = self.state.history
        self.state.history = hist.undo(before)
        return self.state.history is not before

    async def redo(self) -> bool:
        """Step to a newer output.

        At the newest entry this is a no-op unless ``redo_regenerates`` is set,
        in which case a fresh generation is requested instead.
        """
        before = self.state.history
        if before.can_redo:
            self.state.history = hist.redo(before)
            return True
        if self.settings.redo_regenerates and len(before) > 1:
            return await self.sequencer.generate()
        return False

    # -- output --------------------------------------------------------

    def output_path(self) -> Optional[str]:
        """Filesystem path of the displayed output, or None when there is none."""
        current = self.state.current_output
        if current is None or not self.store.exists(current):
            return None
        return self.store.path(current)

    def snapshot(self) -> dict[str, Any]:
        return self.state.to_dict()

    async def close(self) -> None:
        """Cancel pending throttled/debounced runs and wait for any already running."""
        self.draw_throttle.cancel()
        self.prompt_debounce.cancel()
        await self.draw_throttle.drain()
        await self.prompt_debounce.drain()
