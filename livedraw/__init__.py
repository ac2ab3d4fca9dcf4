"""livedraw - draw on an image and regenerate it with a diffusion model."""

__version__ = "1.0.0"

from .config import Settings, load_settings
from .editor import EditorController
from .exceptions import (
    LiveDrawError,
    ConfigurationError,
    ValidationError,
    ImageLoadError,
    CaptureError,
    InferenceError,
    EnhancementError,
    SessionNotFoundError,
)
from .utils.env import setup_logging

__all__ = [
    '__version__',
    'Settings',
    'load_settings',
    'EditorController',
    'setup_logging',
    # Exceptions
    'LiveDrawError',
    'ConfigurationError',
    'ValidationError',
    'ImageLoadError',
    'CaptureError',
    'InferenceError',
    'EnhancementError',
    'SessionNotFoundError',
]
