"""Configuration and constants for the livedraw service."""
from dotenv import load_dotenv

# Load environment variables FIRST
load_dotenv()

import os
from dataclasses import dataclass
from typing import Optional

from .exceptions import ConfigurationError


# Brush limits
MAX_BRUSH_SIZE = 128
DEFAULT_BRUSH_COLOR = "#000000"
DEFAULT_BRUSH_SIZE = 8

# Formats PIL can decode that we accept for uploads and presets
SUPPORTED_IMAGE_EXTENSIONS: tuple[str, ...] = (
    '.png', '.jpg', '.jpeg', '.webp', '.bmp', '.gif',
)

# Environment
API_KEY_NAMES = ("GOOGLE_API_KEY", "GEMINI_API_KEY")

# Logging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


@dataclass(frozen=True)
class Settings:
    """Runtime settings, read from the environment (and ``.env``)."""
    inference_url: str = "http://localhost:7860/predict"
    inference_timeout: float = 60.0
    enhance_model: str = "gemini-2.5-flash-image-preview"
    image_size: int = 512  # Every input is normalised to image_size x image_size
    history_limit: int = 10
    default_iterations: int = 1
    draw_throttle_seconds: float = 0.5
    prompt_debounce_seconds: float = 0.8
    redo_regenerates: bool = False
    output_dir: str = "uploads"
    preset_dir: str = "presets"
    jpeg_quality: int = 90


def _env_int(key: str, default: int, minimum: int = 1) -> int:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}", config_key=key)
    if value < minimum:
        raise ConfigurationError(f"{key} must be >= {minimum}, got {value}", config_key=key)
    return value


def _env_float(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}", config_key=key)
    if value < 0:
        raise ConfigurationError(f"{key} must not be negative", config_key=key)
    return value


def _env_bool(key: str, default: bool) -> bool:
    raw = os.getenv(key)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings(env_prefix: Optional[str] = None) -> Settings:
    """Build :class:`Settings` from environment variables.

    Args:
        env_prefix: Optional prefix prepended to every variable name
            (``LIVEDRAW_`` -> ``LIVEDRAW_IMAGE_SIZE``)

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed
    """
    p = env_prefix or ""
    defaults = Settings()
    jpeg_quality = _env_int(p + "JPEG_QUALITY", defaults.jpeg_quality)
    if jpeg_quality > 95:
        raise ConfigurationError("JPEG_QUALITY must be <= 95", config_key=p + "JPEG_QUALITY")

    return Settings(
        inference_url=os.getenv(p + "INFERENCE_URL", defaults.inference_url),
        inference_timeout=_env_float(p + "INFERENCE_TIMEOUT_SECONDS", defaults.inference_timeout),
        enhance_model=os.getenv(p + "ENHANCE_MODEL", defaults.enhance_model),
        image_size=_env_int(p + "IMAGE_SIZE", defaults.image_size, minimum=64),
        history_limit=_env_int(p + "HISTORY_LIMIT", defaults.history_limit),
        default_iterations=_env_int(p + "DEFAULT_ITERATIONS", defaults.default_iterations),
        draw_throttle_seconds=_env_float(p + "DRAW_THROTTLE_SECONDS", defaults.draw_throttle_seconds),
        prompt_debounce_seconds=_env_float(p + "PROMPT_DEBOUNCE_SECONDS", defaults.prompt_debounce_seconds),
        redo_regenerates=_env_bool(p + "REDO_REGENERATES", defaults.redo_regenerates),
        output_dir=os.getenv(p + "OUTPUT_DIR", defaults.output_dir),
        preset_dir=os.getenv(p + "PRESET_DIR", defaults.preset_dir),
        jpeg_quality=jpeg_quality,
    )
