"""Input image loading: uploads, data URLs and presets."""
import asyncio
import logging
import os
from typing import Optional, Union

import PIL.Image

from ..config import SUPPORTED_IMAGE_EXTENSIONS
from ..exceptions import ValidationError
from ..session import history as hist
from ..session.sequencer import RequestSequencer
from ..session.state import PRESET, UPLOAD, SessionState
from ..storage.image_store import ImageStore
from .images import decode_data_url, decode_image, encode_png, normalize_image

logger = logging.getLogger(__name__)

ImageSource = Union[bytes, str]


def list_presets(preset_dir: str) -> list[str]:
    """Names of the preset images available in ``preset_dir``."""
    if not os.path.isdir(preset_dir):
        return []
    return sorted(
        name for name in os.listdir(preset_dir)
        if name.lower().endswith(SUPPORTED_IMAGE_EXTENSIONS)
        and os.path.isfile(os.path.join(preset_dir, name))
    )


def read_preset(preset_dir: str, name: str) -> bytes:
    if name not in list_presets(preset_dir):
        raise ValidationError(f"Unknown preset: {name}", field="name")
    with open(os.path.join(preset_dir, name), "rb") as f:
        return f.read()


class InputImageManager:
    """Replaces a session's input image and kicks off the first generation for it."""

    def __init__(
        self,
        state: SessionState,
        store: ImageStore,
        sequencer: RequestSequencer,
        image_size: int = 512,
        preset_dir: str = "presets",
    ):
        self.state = state
        self.store = store
        self.sequencer = sequencer
        self.image_size = image_size
        self.preset_dir = preset_dir
        self.loaded: Optional[asyncio.Future] = None
        self._latest_load = 0

    def _decode(self, source: ImageSource) -> PIL.Image.Image:
        if isinstance(source, str):
            data = decode_data_url(source)
        else:
            data = source
        return normalize_image(decode_image(data), self.image_size)

    async def _load_into(self, source: ImageSource, future: asyncio.Future) -> None:
        try:
            image = await asyncio.to_thread(self._decode, source)
        except Exception as e:
            future.set_exception(e)
        else:
            future.set_result(image)

    async def set_image(
        self,
        source: ImageSource,
        origin: str = UPLOAD,
        preset_name: Optional[str] = None,
    ) -> bool:
        """
        Load a new input image, reset the history to it, then generate once.

        When a newer ``set_image`` starts before this one finishes decoding,
        this load is dropped and the newer image wins.

        Args:
            source: Raw image bytes or a ``data:`` URL
            origin: UPLOAD or PRESET
            preset_name: Preset the image came from, if any

        Raises:
            ImageLoadError: If the image cannot be decoded; the previous image stays

        Returns:
            Whether the first generation's result was applied
        """
        state = self.state
        loop = asyncio.get_running_loop()
        token = self.sequencer.clock.next_token()
        self._latest_load = token
        future = loop.create_future()
        self.loaded = future
        state.image_loading = True
        loader = loop.create_task(self._load_into(source, future))
        try:
            image = await future
        finally:
            await loader
            if self._latest_load == token:
                state.image_loading = False

        if self._superseded(token, origin):
            return False

        filename = await asyncio.to_thread(self._save_input, image)
        if self._superseded(token, origin):
            return False

        state.input_image = filename
        state.input_source = origin
        state.preset_name = preset_name if origin == PRESET else None
        state.history = hist.reset(filename, limit=state.history.limit)
        state.layer.clear()
        state.iteration = 0
        # Results of requests sent for the previous image are stale from here on
        state.last_accepted_token = self.sequencer.clock.next_token()
        logger.info("Session %s: new %s image %s", state.session_id, origin, filename)

        return await self.sequencer.generate()

    def _superseded(self, token: int, origin: str) -> bool:
        if self._latest_load == token:
            return False
        logger.info("Session %s: %s image superseded by a newer one, dropped", self.state.session_id, origin)
        return True

    def _save_input(self, image: PIL.Image.Image) -> str:
        return self.store.save(encode_png(image), prefix="input")

    async def select_preset(self, name: str) -> bool:
        """Load a preset image by name (see :func:`list_presets`)."""
        data = await asyncio.to_thread(read_preset, self.preset_dir, name)
        return await self.set_image(data, origin=PRESET, preset_name=name)
