"""Image decoding, normalisation and encoding helpers."""
import base64
import binascii
import io
import re
from typing import Optional

import PIL.Image

from ..exceptions import ImageLoadError

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


def decode_data_url(data_url: str) -> bytes:
    """Return the raw bytes carried by a ``data:`` URL (as produced by FileReader)."""
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise ImageLoadError("Not a data URL", source="data_url")
    mime = match.group("mime") or ""
    if mime and not mime.startswith("image/"):
        raise ImageLoadError(f"Data URL is not an image: {mime}", source="data_url")
    if not match.group("b64"):
        raise ImageLoadError("Only base64 data URLs are supported", source="data_url")
    try:
        return base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageLoadError(f"Invalid base64 payload: {e}", source="data_url") from e


def decode_image(data: bytes, source: Optional[str] = None) -> PIL.Image.Image:
    """Decode image bytes into a fully loaded RGB image."""
    if not data:
        raise ImageLoadError("Empty image data", source=source)
    try:
        image = PIL.Image.open(io.BytesIO(data))
        image.load()
    except (OSError, PIL.Image.DecompressionBombError) as e:
        raise ImageLoadError(f"Could not decode image: {e}", source=source) from e
    return image.convert("RGB")


def normalize_image(image: PIL.Image.Image, size: int) -> PIL.Image.Image:
    """Resize to a ``size`` x ``size`` RGB square so canvas pixels map 1:1 onto image pixels."""
    if image.mode != "RGB":
        image = image.convert("RGB")
    if image.size == (size, size):
        return image.copy()
    return image.resize((size, size), PIL.Image.Resampling.LANCZOS)


def encode_jpeg(image: PIL.Image.Image, quality: int = 90) -> bytes:
    buffer = io.BytesIO()
    image.convert("RGB").save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


def encode_png(image: PIL.Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def guess_extension(data: bytes) -> str:
    """File extension for encoded image bytes, based on the magic number."""
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return ".png"
    if data.startswith(b"\xff\xd8"):
        return ".jpg"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return ".webp"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return ".gif"
    return ".png"
