from __future__ import annotations

import asyncio
import logging
import random
from typing import Any, Callable, Dict, List, Optional

from .errors import InvalidTransition, SessionNotFound
from .models import Quiz, SessionState
from .session import Clock, Publish, Session


logger = logging.getLogger(__name__)

JOIN_CODE_MIN = 100000
JOIN_CODE_MAX = 999999
MAX_CODE_ATTEMPTS = 1000


class SessionRegistry:
    """Process-wide index of live sessions by id and by join code.

    A join code belongs to a session only while that session has not
    ended; afterwards it is released for reuse, while the session itself
    stays reachable by id until it is evicted.
    """

    def __init__(
        self,
        clock: Clock,
        publish: Publish,
        retention_seconds: Optional[float] = None,
        rng: Optional[random.Random] = None,
        on_evict: Optional[Callable[[Session], Any]] = None,
        **session_options: Any,
    ):
        self._clock = clock
        self._publish = publish
        self._retention_seconds = retention_seconds
        self._rng = rng or random.SystemRandom()
        self._on_evict = on_evict
        self._session_options = session_options
        self._sessions: Dict[str, Session] = {}
        self._by_code: Dict[str, Session] = {}
        self._evictions: Dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def _allocate_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = str(self._rng.randint(JOIN_CODE_MIN, JOIN_CODE_MAX))
            if code not in self._by_code:
                return code
        logger.warning("no free join code after %d draws (%d live sessions)", MAX_CODE_ATTEMPTS, len(self._by_code))
        raise RuntimeError("No join code available")

    def create(self, quiz: Quiz) -> Session:
        code = self._allocate_code()
        s = Session(
            quiz=quiz,
            join_code=code,
            clock=self._clock,
            publish=self._publish,
            on_ended=self._session_ended,
            **self._session_options,
        )
        self._sessions[s.id] = s
        self._by_code[code] = s
        logger.info("session=%s created for quiz=%s code=%s", s.id, quiz.id, code)
        return s

    def get(self, session_id: str) -> Session:
        try:
            return self._sessions[session_id]
        except KeyError:
            raise SessionNotFound() from None

    def resolve(self, join_code: str) -> Session:
        s = self._by_code.get((join_code or "").strip())
        if s is None or s.state is SessionState.ENDED:
            raise SessionNotFound()
        return s

    def live_sessions(self) -> List[Session]:
        return list(self._by_code.values())

    def evict(self, session_id: str) -> Session:
        s = self.get(session_id)
        if s.state is not SessionState.ENDED:
            raise InvalidTransition("Only ended sessions can be evicted")

        del self._sessions[session_id]
        if self._by_code.get(s.join_code) is s:
            del self._by_code[s.join_code]
        handle = self._evictions.pop(session_id, None)
        if handle is not None:
            handle.cancel()
        logger.info("session=%s evicted", session_id)
        if self._on_evict is not None:
            self._on_evict(s)
        return s

    def _session_ended(self, s: Session) -> None:
        if self._by_code.get(s.join_code) is s:
            del self._by_code[s.join_code]

        if self._retention_seconds is None:
            return
        loop = asyncio.get_running_loop()
        self._evictions[s.id] = loop.call_later(self._retention_seconds, self._evict_expired, s.id)

    def _evict_expired(self, session_id: str) -> None:
        self._evictions.pop(session_id, None)
        if session_id in self._sessions:
            self.evict(session_id)
