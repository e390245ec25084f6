"""
SSE session registry.

Each event stream connection owns a session with its own outbound queue;
posted messages are routed by session id to the stream that opened it.
"""

import asyncio
import uuid
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class SseSession:
    """Outbound message queue for one event stream."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._queue: "asyncio.Queue[Optional[Dict[str, Any]]]" = asyncio.Queue()
        self.closed = False

    async def send(self, message: Dict[str, Any]) -> None:
        if self.closed:
            logger.warning("Dropping message for closed session", session_id=self.session_id)
            return
        await self._queue.put(message)

    async def next_message(self) -> Optional[Dict[str, Any]]:
        """Wait for the next outbound message; None means the session was closed."""
        return await self._queue.get()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._queue.put_nowait(None)


class SessionRegistry:
    """Maps session ids to live sessions."""

    def __init__(self) -> None:
        self._sessions: Dict[str, SseSession] = {}

    def create(self) -> SseSession:
        session = SseSession(uuid.uuid4().hex)
        self._sessions[session.session_id] = session
        logger.info("Session opened", session_id=session.session_id, active=len(self._sessions))
        return session

    def get(self, session_id: str) -> Optional[SseSession]:
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> None:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            session.close()
            logger.info("Session closed", session_id=session_id, active=len(self._sessions))

    def close_all(self) -> None:
        for session_id in list(self._sessions):
            self.remove(session_id)

    @property
    def session_ids(self) -> List[str]:
        return list(self._sessions)

    def __len__(self) -> int:
        return len(self._sessions)
