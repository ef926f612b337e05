from typing import Dict, Optional
import threading
import uuid

from .editor_session import EditorSession
from .image_service import ImageService
from .transform_service import TransformService


class SessionService:
    """
    In-memory registry of editing sessions. Sessions share nothing
    except the stateless services.
    """

    def __init__(self):
        self.image_service = ImageService()
        self.transform_service = TransformService()
        self._sessions: Dict[str, EditorSession] = {}
        self._lock = threading.Lock()

    def get_or_create(self, session_id: Optional[str] = None) -> EditorSession:
        """Get existing session or create new one."""
        if not session_id:
            session_id = str(uuid.uuid4())

        with self._lock:
            if session_id not in self._sessions:
                self._sessions[session_id] = EditorSession(
                    session_id,
                    image_service=self.image_service,
                    transform_service=self.transform_service,
                )
            return self._sessions[session_id]

    def get(self, session_id: Optional[str]) -> Optional[EditorSession]:
        with self._lock:
            return self._sessions.get(session_id) if session_id else None

    def drop(self, session_id: Optional[str]) -> bool:
        """Clear a session and free memory."""
        with self._lock:
            session = self._sessions.pop(session_id, None) if session_id else None
        if session is None:
            return False
        session.clear()
        return True

    def __len__(self) -> int:
        return len(self._sessions)
