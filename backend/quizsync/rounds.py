from __future__ import annotations

from typing import Dict, List, Optional

from .errors import DuplicateAnswer, InvalidOption, RoundClosed, UnknownParticipant
from .models import Answer, Question, RoundResult
from .roster import Roster
from .scoring import POINTS_BASE, POINTS_FLOOR, points


class Round:
    """Lifecycle of one question: open, collecting answers, closed."""

    def __init__(
        self,
        question: Question,
        question_index: int,
        time_limit_ms: int,
        opened_at: int,
        roster: Roster,
        points_base: int = POINTS_BASE,
        points_floor: int = POINTS_FLOOR,
    ):
        self.question = question
        self.question_index = question_index
        self.option_count = len(question.options)
        self.time_limit_ms = time_limit_ms
        self.opened_at = opened_at
        self.closed_at: Optional[int] = None
        self._roster = roster
        self._answers: Dict[str, Answer] = {}
        self._points_base = points_base
        self._points_floor = points_floor

    @property
    def question_id(self) -> str:
        return self.question.id

    @property
    def correct_option_index(self) -> int:
        return self.question.correct_option_index

    @property
    def is_open(self) -> bool:
        return self.closed_at is None

    @property
    def answers(self) -> Dict[str, Answer]:
        return dict(self._answers)

    def elapsed_ms(self, now_ms: int) -> int:
        return now_ms - self.opened_at

    def is_expired(self, now_ms: int) -> bool:
        return self.elapsed_ms(now_ms) >= self.time_limit_ms

    def submit_answer(self, participant_id: str, selected_option: int, now_ms: int) -> Answer:
        """Record the first answer of a participant and return it with its points.

        The caller applies ``answer.points`` to the roster before yielding
        control, so acceptance and the score update form a single step.
        """
        if not self.is_open:
            raise RoundClosed()
        if participant_id in self._answers:
            raise DuplicateAnswer()
        if participant_id not in self._roster:
            raise UnknownParticipant()
        # bool is an int subclass; True must not pass for option 1
        if isinstance(selected_option, bool) or not isinstance(selected_option, int):
            raise InvalidOption()
        if not 0 <= selected_option < self.option_count:
            raise InvalidOption()

        elapsed = min(self.time_limit_ms, max(0, self.elapsed_ms(now_ms)))
        correct = selected_option == self.correct_option_index
        answer = Answer(
            participant_id=participant_id,
            selected_option=selected_option,
            submitted_at_ms=elapsed,
            points=points(correct, elapsed, self.time_limit_ms, self._points_base, self._points_floor),
            correct=correct,
        )
        self._answers[participant_id] = answer
        return answer

    def close(self, now_ms: int) -> bool:
        """Close the round; returns False if it was already closed."""
        if not self.is_open:
            return False

        self.closed_at = now_ms
        for p in self._roster:
            if p.id not in self._answers:
                self._answers[p.id] = Answer(
                    participant_id=p.id,
                    selected_option=None,
                    submitted_at_ms=self.time_limit_ms,
                )
        return True

    def tally(self) -> List[int]:
        counts = [0] * self.option_count
        for a in self._answers.values():
            if a.selected_option is not None:
                counts[a.selected_option] += 1
        return counts

    def answered_count(self) -> int:
        return sum(1 for a in self._answers.values() if a.selected_option is not None)

    def result(self) -> RoundResult:
        if self.closed_at is None:
            raise RuntimeError("result() requires a closed round")
        return RoundResult(
            question_index=self.question_index,
            question_id=self.question_id,
            correct_option_index=self.correct_option_index,
            counts=self.tally(),
            answers=list(self._answers.values()),
            opened_at=self.opened_at,
            closed_at=self.closed_at,
        )
