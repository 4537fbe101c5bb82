from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, List, Optional, Protocol

from . import messages
from .errors import InvalidTransition, RoundClosed, SessionAlreadyStarted, SessionEnded
from .models import Answer, Participant, Quiz, RankingEntry, RoundResult, SessionSnapshot, SessionState
from .roster import Roster
from .rounds import Round
from .scoring import POINTS_BASE, POINTS_FLOOR


logger = logging.getLogger(__name__)

DEFAULT_TIME_LIMIT_MS = 20000

Publish = Callable[[str, dict[str, Any]], Awaitable[Any]]


class Clock(Protocol):
    def now_ms(self) -> int: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Session:
    """One run of a quiz, from the waiting lobby to the final ranking.

    All mutating commands (and the round deadline timer) run under a lock
    owned by the session, so they apply one at a time in arrival order.
    Read accessors return copies and never block.

    Every accepted command publishes its events through ``publish`` while
    still holding the lock, which keeps the event stream of a session in
    the same order as the transitions that produced it.
    """

    def __init__(
        self,
        quiz: Quiz,
        join_code: str,
        clock: Clock,
        publish: Publish,
        default_time_limit_ms: int = DEFAULT_TIME_LIMIT_MS,
        points_base: int = POINTS_BASE,
        points_floor: int = POINTS_FLOOR,
        on_ended: Optional[Callable[["Session"], None]] = None,
    ):
        self.id = uuid.uuid4().hex
        self.join_code = join_code
        self.quiz_id = quiz.id
        self.state = SessionState.WAITING
        self.current_round_index = -1
        self.created_at = _utcnow()
        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None

        self._questions = list(quiz.questions)
        self._clock = clock
        self._publish = publish
        self._default_time_limit_ms = default_time_limit_ms
        self._points_base = points_base
        self._points_floor = points_floor
        self._on_ended = on_ended

        self._lock = asyncio.Lock()
        self._roster = Roster(self.id)
        self._round: Optional[Round] = None
        self._timer: Optional[asyncio.Task] = None
        self._history: List[RoundResult] = []

    @property
    def total_rounds(self) -> int:
        return len(self._questions)

    @property
    def roster(self) -> Roster:
        return self._roster

    @property
    def current_round(self) -> Optional[Round]:
        return self._round

    @property
    def round_open(self) -> bool:
        return self._round is not None and self._round.is_open

    @property
    def history(self) -> List[RoundResult]:
        return list(self._history)

    # -- commands -------------------------------------------------------

    async def join(self, display_name: str) -> Participant:
        async with self._lock:
            self._ensure_not_ended()
            if self.state is not SessionState.WAITING:
                raise SessionAlreadyStarted()
            p = self._roster.join(display_name, self._clock.now_ms())
            await self._publish(self.id, messages.participant_joined(p, len(self._roster)))
            logger.info("session=%s participant=%s joined", self.id, p.id)
            return p.model_copy()

    async def start(self) -> None:
        async with self._lock:
            self._ensure_not_ended()
            if self.state is not SessionState.WAITING:
                raise InvalidTransition("Session has already started")
            if not len(self._roster):
                raise InvalidTransition("Cannot start: nobody has joined yet")
            if not self._questions:
                raise InvalidTransition("Cannot start: quiz has no questions")

            self.started_at = _utcnow()
            self.state = SessionState.ACTIVE
            logger.info("session=%s started with %d participants", self.id, len(self._roster))
            await self._open_round(0, from_state=SessionState.WAITING)

    async def submit_answer(self, participant_id: str, question_id: str, option_index: int) -> Answer:
        async with self._lock:
            self._ensure_not_ended()
            rnd = self._round
            if self.state is not SessionState.ACTIVE or rnd is None or not rnd.is_open:
                raise RoundClosed()

            now = self._clock.now_ms()
            if rnd.is_expired(now):
                # the deadline passed before the timer got the lock
                await self._close_round(now)
                raise RoundClosed()
            if question_id != rnd.question_id:
                raise RoundClosed("Answer is for a question that is no longer open")

            answer = rnd.submit_answer(participant_id, option_index, now)
            self._roster.apply_points(participant_id, answer.points)
            logger.debug(
                "session=%s q=%d participant=%s option=%s points=%d",
                self.id, rnd.question_index, participant_id, option_index, answer.points,
            )
            await self._publish(self.id, messages.answer_tally_updated(rnd))
            return answer

    async def reveal(self) -> RoundResult:
        async with self._lock:
            self._ensure_not_ended()
            if self.state is not SessionState.ACTIVE or not self.round_open:
                raise InvalidTransition("No open round to reveal")
            await self._close_round(self._clock.now_ms())
            return self._history[-1]

    async def next_round(self) -> None:
        async with self._lock:
            self._ensure_not_ended()
            if self.state is not SessionState.ACTIVE:
                raise InvalidTransition("Session is not running")
            if self.round_open:
                raise InvalidTransition("Current round is still open")

            next_index = self.current_round_index + 1
            if next_index < self.total_rounds:
                await self._open_round(next_index, from_state=SessionState.ACTIVE)
            else:
                await self._finish()

    async def end(self) -> List[RankingEntry]:
        async with self._lock:
            self._ensure_not_ended()
            return await self._finish()

    # -- reads ----------------------------------------------------------

    def leaderboard(self) -> List[RankingEntry]:
        return self._roster.ranking()

    def tally(self) -> List[int]:
        if self._round is None:
            return []
        return self._round.tally()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            join_code=self.join_code,
            quiz_id=self.quiz_id,
            state=self.state,
            current_round_index=self.current_round_index,
            total_rounds=self.total_rounds,
            round_open=self.round_open,
            participants=self._roster.participants(),
            created_at=self.created_at,
            started_at=self.started_at,
            ended_at=self.ended_at,
        )

    # -- internals (lock held) --------------------------------------------

    def _ensure_not_ended(self) -> None:
        if self.state is SessionState.ENDED:
            raise SessionEnded()

    async def _open_round(self, index: int, from_state: SessionState) -> None:
        question = self._questions[index]
        rnd = Round(
            question=question,
            question_index=index,
            time_limit_ms=question.time_limit_ms or self._default_time_limit_ms,
            opened_at=self._clock.now_ms(),
            roster=self._roster,
            points_base=self._points_base,
            points_floor=self._points_floor,
        )
        self._round = rnd
        self.current_round_index = index
        self._timer = asyncio.get_running_loop().create_task(self._expire_after(rnd))
        logger.info("session=%s round=%d opened limit=%dms", self.id, index, rnd.time_limit_ms)

        await self._publish(
            self.id,
            messages.session_state_changed(self.id, from_state, self.state, index, round_open=True),
        )
        await self._publish(self.id, messages.round_opened(rnd, self.total_rounds))

    async def _close_round(self, now_ms: int) -> None:
        rnd = self._round
        if rnd is None or not rnd.close(now_ms):
            return
        self._cancel_timer()
        # closed answers are final; fold them into the review history
        self._history.append(rnd.result())
        logger.info("session=%s round=%d closed answered=%d", self.id, rnd.question_index, rnd.answered_count())

        await self._publish(self.id, messages.round_closed(rnd))
        await self._publish(
            self.id,
            messages.session_state_changed(
                self.id, self.state, self.state, rnd.question_index, round_open=False
            ),
        )

    async def _finish(self) -> List[RankingEntry]:
        if self.round_open:
            await self._close_round(self._clock.now_ms())
        self._cancel_timer()

        from_state = self.state
        self.state = SessionState.ENDED
        self.ended_at = _utcnow()
        ranking = self._roster.ranking()
        round_index = self.current_round_index if self.current_round_index >= 0 else None
        logger.info("session=%s ended after %d rounds", self.id, len(self._history))

        await self._publish(
            self.id,
            messages.session_state_changed(self.id, from_state, self.state, round_index, round_open=False),
        )
        await self._publish(self.id, messages.session_ended(ranking))
        if self._on_ended is not None:
            self._on_ended(self)
        return ranking

    def _cancel_timer(self) -> None:
        timer, self._timer = self._timer, None
        if timer is not None and timer is not asyncio.current_task():
            timer.cancel()

    async def _expire_after(self, rnd: Round) -> None:
        await asyncio.sleep(rnd.time_limit_ms / 1000)
        async with self._lock:
            # a reveal, next or end may have won the race for the lock
            if self.state is not SessionState.ACTIVE or self._round is not rnd or not rnd.is_open:
                return
            logger.info("session=%s round=%d timed out", self.id, rnd.question_index)
            await self._close_round(max(self._clock.now_ms(), rnd.opened_at + rnd.time_limit_ms))
