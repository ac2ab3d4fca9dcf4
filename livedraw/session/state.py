"""Per-session editor state."""
from dataclasses import dataclass, field
from typing import Any, Optional

from ..canvas.draw_layer import BrushSettings, DrawLayer
from .history import DEFAULT_HISTORY_LIMIT, OutputHistory

UPLOAD = "upload"
PRESET = "preset"


@dataclass
class SessionState:
    """Everything one editing page owns. Mutated only on the event loop."""

    session_id: str
    prompt: str = ""
    input_image: Optional[str] = None
    input_source: Optional[str] = None  # UPLOAD or PRESET
    preset_name: Optional[str] = None
    brush: BrushSettings = field(default_factory=BrushSettings)
    layer: DrawLayer = field(default_factory=DrawLayer)
    history: OutputHistory = field(default_factory=OutputHistory)
    in_flight: int = 0
    image_loading: bool = False
    mobile_layout: bool = False
    iteration: int = 0
    last_accepted_token: int = 0

    @classmethod
    def new(cls, session_id: str, history_limit: int = DEFAULT_HISTORY_LIMIT) -> "SessionState":
        return cls(session_id=session_id, history=OutputHistory(limit=history_limit))

    @property
    def loading(self) -> bool:
        return self.in_flight > 0

    @property
    def current_output(self) -> Optional[str]:
        return self.history.current

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "prompt": self.prompt,
            "input_image": self.input_image,
            "input_source": self.input_source,
            "preset_name": self.preset_name,
            "brush": {"color": self.brush.color, "size": self.brush.size},
            "stroke_count": len(self.layer.strokes),
            "history": list(self.history.entries),
            "current_output_index": self.history.cursor,
            "current_output": self.history.current,
            "can_undo": self.history.can_undo,
            "can_redo": self.history.can_redo,
            "loading": self.loading,
            "image_loading": self.image_loading,
            "mobile_layout": self.mobile_layout,
            "iteration": self.iteration,
        }
