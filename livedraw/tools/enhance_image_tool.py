"""Image enhancement through Gemini's image model."""
import base64
import logging
from typing import Any, Optional

import google.generativeai as genai

from ..exceptions import ConfigurationError, EnhancementError
from ..utils.env import get_api_key

logger = logging.getLogger(__name__)


def extract_image_bytes(response: Any) -> Optional[bytes]:
    """Return the first inline image of the first candidate, or None if there is none."""
    if hasattr(response, 'candidates') and response.candidates:
        candidate = response.candidates[0]
        if hasattr(candidate, 'content') and candidate.content:
            for part in candidate.content.parts:
                if hasattr(part, 'inline_data') and part.inline_data:
                    image_data = part.inline_data.data
                    if isinstance(image_data, str):
                        return base64.b64decode(image_data)
                    return image_data or None
    return None


def extract_text(response: Any) -> str:
    """Concatenate any text parts, used to explain a response without an image."""
    text = ""
    if hasattr(response, 'candidates') and response.candidates:
        candidate = response.candidates[0]
        if hasattr(candidate, 'content') and candidate.content:
            for part in candidate.content.parts:
                if hasattr(part, 'text') and part.text:
                    text += part.text
    return text


class Enhancer:
    """One-shot refinement of an image with a free-text instruction."""

    def __init__(self, model_name: str = "gemini-2.5-flash-image-preview", model: Any = None):
        self.model_name = model_name
        self._model = model

    def _get_model(self):
        if self._model is None:
            api_key = get_api_key()
            if not api_key:
                raise ConfigurationError(
                    "GOOGLE_API_KEY or GEMINI_API_KEY environment variable must be set",
                    config_key="GOOGLE_API_KEY",
                )
            genai.configure(api_key=api_key)
            self._model = genai.GenerativeModel(self.model_name)
        return self._model

    async def enhance(self, prompt: str, png_bytes: bytes) -> bytes:
        """
        Send ``prompt`` and the PNG to Gemini and return the image it produces.

        Raises:
            EnhancementError: If the call fails or the response carries no image
        """
        model = self._get_model()
        content_parts = [prompt, {"mime_type": "image/png", "data": png_bytes}]

        try:
            try:
                response = await model.generate_content_async(
                    content_parts,
                    generation_config={"response_modalities": ["TEXT", "IMAGE"]}
                )
            except (TypeError, ValueError, KeyError):
                # Older SDKs reject response_modalities
                response = await model.generate_content_async(content_parts)
        except Exception as e:
            raise EnhancementError(f"Enhancement request failed: {e}") from e

        image_bytes = extract_image_bytes(response)
        if not image_bytes:
            text = extract_text(response)
            if text:
                logger.warning("Enhancement returned text instead of an image: %s", text[:200])
            raise EnhancementError("Failed to extract enhanced image from API response.")
        return image_bytes
