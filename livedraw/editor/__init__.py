"""Per-session editor controller and process runtime."""
from .controller import EditorController

__all__ = ["EditorController"]
