"""Regeneration requests and last-writer-wins acceptance of their results."""
import asyncio
import logging
import time
from typing import Callable, Optional, Protocol

import PIL.Image

from ..canvas.draw_layer import DrawLayer, Stroke, capture_composite
from ..canvas.images import decode_image, encode_jpeg, normalize_image
from ..exceptions import CaptureError, LiveDrawError
from ..storage.image_store import ImageStore
from . import history as hist
from .state import SessionState

logger = logging.getLogger(__name__)


class RegenerateClient(Protocol):
    async def regenerate(self, image_jpeg: bytes, prompt: str, num_iterations: int) -> bytes: ...


class RequestClock:
    """Issues strictly increasing request tokens.

    Tokens are monotonic-clock nanoseconds; if the clock has not moved since
    the previous token the new one is bumped past it.
    """

    def __init__(self, time_source: Callable[[], int] = time.monotonic_ns):
        self._time_source = time_source
        self._last = 0

    def next_token(self) -> int:
        token = max(self._time_source(), self._last + 1)
        self._last = token
        return token


class RequestSequencer:
    """Dispatches regeneration requests for one session and applies only the newest result."""

    def __init__(
        self,
        state: SessionState,
        store: ImageStore,
        client: RegenerateClient,
        clock: Optional[RequestClock] = None,
        image_size: int = 512,
        default_iterations: int = 1,
        jpeg_quality: int = 90,
    ):
        self.state = state
        self.store = store
        self.client = client
        self.clock = clock or RequestClock()
        self.image_size = image_size
        self.default_iterations = default_iterations
        self.jpeg_quality = jpeg_quality

    def _load(self, filename: Optional[str], what: str) -> PIL.Image.Image:
        if not filename:
            raise CaptureError(f"No {what} to capture")
        try:
            return decode_image(self.store.read(filename), source=filename)
        except (OSError, LiveDrawError) as e:
            raise CaptureError(f"Could not read {what} {filename}: {e}") from e

    def _capture(self, filename: Optional[str], strokes: list[Stroke], use_output_image: bool) -> bytes:
        if use_output_image:
            output = self._load(filename, "output image")
            return encode_jpeg(normalize_image(output, self.image_size), quality=self.jpeg_quality)
        base = self._load(filename, "input image")
        return capture_composite(base, DrawLayer(strokes), self.image_size, quality=self.jpeg_quality)

    async def capture(self, use_output_image: bool = False) -> bytes:
        """JPEG payload for the next request: composite of input + strokes, or the displayed output.

        State is read on the event loop; decoding and encoding run in a worker thread.
        """
        if use_output_image:
            filename, strokes = self.state.current_output, []
        else:
            filename, strokes = self.state.input_image, list(self.state.layer.strokes)
        return await asyncio.to_thread(self._capture, filename, strokes, use_output_image)

    def accept(self, token: int, image_bytes: bytes, prefix: str = "output") -> bool:
        """Apply a finished result if no newer one has been applied.

        Returns:
            True if the result was pushed onto the history, False if it was stale
        """
        state = self.state
        if token <= state.last_accepted_token:
            logger.debug(
                "Discarding stale result for session %s (token %d <= %d)",
                state.session_id, token, state.last_accepted_token,
            )
            return False

        filename = self.store.save(image_bytes, prefix=prefix)
        state.last_accepted_token = token
        state.history = hist.push(state.history, filename)
        state.iteration += 1
        logger.info(
            "Session %s: accepted %s (iteration %d, %d in history)",
            state.session_id, filename, state.iteration, len(state.history),
        )
        return True

    async def generate(self, use_output_image: bool = False, iterations: Optional[int] = None) -> bool:
        """
        Capture, send to inference, and apply the result unless it is stale.

        Raises:
            CaptureError: If the payload could not be captured (nothing is sent)

        Returns:
            True if this request's result is now displayed
        """
        token = self.clock.next_token()
        num_iterations = iterations or self.default_iterations
        prompt = self.state.prompt

        self.state.in_flight += 1
        try:
            payload = await self.capture(use_output_image)
            try:
                image_bytes = await self.client.regenerate(payload, prompt, num_iterations)
                await asyncio.to_thread(decode_image, image_bytes, "inference response")
            except LiveDrawError as e:
                logger.error("Session %s: regeneration failed: %s", self.state.session_id, e)
                return False
        finally:
            self.state.in_flight -= 1

        return self.accept(token, image_bytes)
