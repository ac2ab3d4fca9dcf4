"""In-memory registry of live editor sessions."""
import uuid
from typing import TYPE_CHECKING, Callable, Optional

from ..exceptions import SessionNotFoundError

if TYPE_CHECKING:
    from ..editor.controller import EditorController


class SessionMemory:
    """In-memory storage of editor controllers, keyed by session id."""

    def __init__(self, factory: Callable[[str], "EditorController"]):
        self._factory = factory
        self._sessions: dict[str, "EditorController"] = {}

    def create(self, session_id: Optional[str] = None) -> "EditorController":
        """Create a session (or return the existing one with that id)."""
        session_id = session_id or str(uuid.uuid4())
        if session_id not in self._sessions:
            self._sessions[session_id] = self._factory(session_id)
        return self._sessions[session_id]

    def get(self, session_id: str) -> "EditorController":
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    async def drop(self, session_id: str) -> None:
        """Close and forget a session; its state is gone after this."""
        controller = self._sessions.pop(session_id, None)
        if controller is None:
            raise SessionNotFoundError(session_id)
        await controller.close()

    def ids(self) -> list[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
