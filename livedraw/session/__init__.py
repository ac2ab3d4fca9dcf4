"""Session state, output history and request sequencing."""
from .history import OutputHistory
from .state import SessionState

__all__ = ["OutputHistory", "SessionState"]
