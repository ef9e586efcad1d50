"""Process-wide map of active quiz sessions and session id generation."""
import logging
import time
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .session import QuizSession

logger = logging.getLogger("quizbot")

_last_id = 0


def new_session_id() -> str:
    """Microsecond creation timestamp, bumped so ids stay strictly increasing within the process."""
    global _last_id
    _last_id = max(time.time_ns() // 1000, _last_id + 1)
    return str(_last_id)


class SessionRegistry:
    """
    session id -> QuizSession. Insert on start, delete on completion or failure.
    Mutated only from the event loop thread.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, "QuizSession"] = {}
        self.started_at = time.monotonic()

    def register(self, session: "QuizSession") -> None:
        if session.session_id in self._sessions:
            raise ValueError(f"Session {session.session_id} already registered")
        self._sessions[session.session_id] = session
        logger.debug("Registered session %s (%d active)", session.session_id, len(self._sessions))

    def unregister(self, session_id: str) -> Optional["QuizSession"]:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.debug("Unregistered session %s (%d active)", session_id, len(self._sessions))
        return session

    def get(self, session_id: str) -> Optional["QuizSession"]:
        return self._sessions.get(session_id)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def snapshot_size(self) -> int:
        return len(self._sessions)

    def session_ids(self) -> list[str]:
        return list(self._sessions)

    def uptime(self) -> float:
        return time.monotonic() - self.started_at
