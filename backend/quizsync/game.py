from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set, Tuple

from .db import Settings, settings as default_settings
from .events import EventStore, event_store
from .models import Answer, Participant, Quiz, RankingEntry, RoundResult
from .quizzes import QuizStore, quiz_store
from .registry import SessionRegistry
from .session import Clock, Session
from .utils import MonotonicClock


logger = logging.getLogger(__name__)


class GameController:
    """Command surface used by the host and participant clients.

    Each command routes to one session through the registry; every failure
    surfaces as a ``QuizError`` subclass and is never retried here.
    """

    def __init__(
        self,
        quizzes: Optional[QuizStore] = None,
        events: Optional[EventStore] = None,
        clock: Optional[Clock] = None,
        config: Optional[Settings] = None,
        registry: Optional[SessionRegistry] = None,
    ):
        config = config or default_settings
        self.quizzes = quizzes or quiz_store
        self.events = events or event_store
        self._cleanups: Set[asyncio.Task] = set()
        self.registry = registry or SessionRegistry(
            clock=clock or MonotonicClock(),
            publish=self.events.publish,
            retention_seconds=config.SESSION_RETENTION_SECONDS,
            on_evict=self._drop_events,
            default_time_limit_ms=config.QUESTION_TIME_LIMIT_MS,
            points_base=config.POINTS_BASE,
            points_floor=config.POINTS_FLOOR,
        )

    def _drop_events(self, s: Session) -> None:
        task = asyncio.get_running_loop().create_task(self.events.drop(s.id))
        self._cleanups.add(task)
        task.add_done_callback(self._cleanup_done)

    def _cleanup_done(self, task: asyncio.Task) -> None:
        self._cleanups.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("event log cleanup failed", exc_info=exc)

    async def upsert_quiz(self, quiz: Quiz) -> Quiz:
        return await self.quizzes.upsert(quiz)

    async def create_session(self, quiz_id: str) -> Session:
        quiz = await self.quizzes.get(quiz_id)
        return self.registry.create(quiz)

    def get_session(self, session_id: str) -> Session:
        return self.registry.get(session_id)

    async def join_session(self, join_code: str, display_name: str) -> Tuple[Session, Participant]:
        s = self.registry.resolve(join_code)
        p = await s.join(display_name)
        return s, p

    async def start_session(self, session_id: str) -> Session:
        s = self.registry.get(session_id)
        await s.start()
        return s

    async def submit_answer(self, session_id: str, participant_id: str, question_id: str, option_index: int) -> Answer:
        s = self.registry.get(session_id)
        return await s.submit_answer(participant_id, question_id, option_index)

    async def reveal_round(self, session_id: str) -> RoundResult:
        s = self.registry.get(session_id)
        return await s.reveal()

    async def next_round(self, session_id: str) -> Session:
        s = self.registry.get(session_id)
        await s.next_round()
        return s

    async def end_session(self, session_id: str) -> List[RankingEntry]:
        s = self.registry.get(session_id)
        return await s.end()

    def get_leaderboard(self, session_id: str) -> List[RankingEntry]:
        return self.registry.get(session_id).leaderboard()

    def get_results(self, session_id: str) -> List[RoundResult]:
        return self.registry.get(session_id).history


controller = GameController()
