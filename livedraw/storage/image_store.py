"""Image references backed by files in an output directory."""
import logging
import os
import uuid
from datetime import datetime

from ..exceptions import ValidationError
from ..canvas.images import guess_extension

logger = logging.getLogger(__name__)

MIME_TYPES = {
    '.png': 'image/png',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.webp': 'image/webp',
    '.gif': 'image/gif',
}


class ImageStore:
    """Saves image bytes under unique filenames; the filename is the reference."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def save(self, data: bytes, prefix: str = "output") -> str:
        """Write ``data`` and return its filename."""
        ts = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{prefix}_{ts}_{uuid.uuid4().hex[:8]}{guess_extension(data)}"
        with open(os.path.join(self.directory, filename), "wb") as f:
            f.write(data)
        logger.debug("Saved %s (%d bytes)", filename, len(data))
        return filename

    def path(self, filename: str) -> str:
        """Absolute path for ``filename``, refusing anything outside the directory."""
        root = os.path.abspath(self.directory)
        path = os.path.abspath(os.path.join(root, filename))
        # Security: prevent directory traversal
        if os.path.dirname(path) != root:
            raise ValidationError(f"Invalid filename: {filename}", field="filename")
        return path

    def exists(self, filename: str) -> bool:
        try:
            return os.path.exists(self.path(filename))
        except ValidationError:
            return False

    def read(self, filename: str) -> bytes:
        with open(self.path(filename), "rb") as f:
            return f.read()

    @staticmethod
    def mime_type(filename: str) -> str:
        ext = os.path.splitext(filename)[1].lower()
        return MIME_TYPES.get(ext, 'image/png')
