# hmi_agent/services/session.py

import logging
import secrets
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from hmi_agent.errors import SessionError
from hmi_agent.schemas import ProgressEvent, ScreenIdentification, WorkflowDiagram
from hmi_agent.services.content import DocumentContext

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"session_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


@dataclass
class SessionContext:
    """State carried from the workflow stage to the screen stage of one upload."""

    session_id: str
    document_path: str = ""
    context: Optional[DocumentContext] = None
    identification: Optional[ScreenIdentification] = None
    workflow: Optional[WorkflowDiagram] = None
    status: str = "created"
    events: List[ProgressEvent] = field(default_factory=list)
    written_files: List[str] = field(default_factory=list)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    cancel_event: threading.Event = field(default_factory=threading.Event, repr=False)
    created_at: float = field(default_factory=time.monotonic, repr=False)
    finished_at: Optional[float] = field(default=None, repr=False)

    def progress(self, step: str, message: str) -> None:
        self.events.append(
            ProgressEvent(step=step, message=message, timestamp=datetime.now().isoformat())
        )
        logger.info("[%s] %s: %s", self.session_id, step, message)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()


class SessionStore:
    """
    In-memory sessions keyed by id. A finished session stays readable for
    ttl_seconds and an abandoned one for idle_seconds. Both are swept lazily
    on create and get; a session holding its lock is never swept.
    """

    def __init__(self, ttl_seconds: float = 600.0, idle_seconds: float = 3600.0) -> None:
        self._sessions: Dict[str, SessionContext] = {}
        self._lock = threading.Lock()
        self.ttl_seconds = ttl_seconds
        self.idle_seconds = idle_seconds

    def create(self, document_path: str = "") -> SessionContext:
        self.sweep()
        session = SessionContext(session_id=new_session_id(), document_path=document_path)
        with self._lock:
            self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> SessionContext:
        self.sweep()
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionError(f"Session not found: {session_id}", session_id=session_id)
        return session

    def finish(self, session_id: str) -> None:
        """Start the expiry clock of a session whose screens are done."""
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None:
            session.finished_at = time.monotonic()

    def _expired(self, session: SessionContext, now: float) -> bool:
        if session.lock.locked():
            return False
        if session.finished_at is not None:
            return now - session.finished_at >= self.ttl_seconds
        return now - session.created_at >= self.idle_seconds

    def sweep(self) -> int:
        now = time.monotonic()
        with self._lock:
            expired = [sid for sid, session in self._sessions.items() if self._expired(session, now)]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info("Expired %d sessions", len(expired))
        return len(expired)

    def discard(self, session_id: str) -> Optional[SessionContext]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def cancel(self, session_id: str) -> SessionContext:
        """Flag a session as cancelled and forget it; a running stage notices between screens."""
        session = self.get(session_id)
        session.cancel_event.set()
        self.discard(session_id)
        return session

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
