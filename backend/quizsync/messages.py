"""Event payloads published to a session's listeners.

Payloads are plain dicts with a ``type`` key so the event log can store
them as documents and polling clients can rebuild their view from them.
"""

from __future__ import annotations

from typing import Any, List, Optional

from .models import Participant, RankingEntry, SessionState
from .rounds import Round
from .utils import now_ts


def session_state_changed(
    session_id: str,
    from_state: SessionState,
    to_state: SessionState,
    round_index: Optional[int],
    round_open: bool,
) -> dict[str, Any]:
    return {
        "type": "session_state_changed",
        "session_id": session_id,
        "from_state": from_state.value,
        "to_state": to_state.value,
        "state": to_state.value,
        "round_index": round_index,
        "round_open": round_open,
        "timestamp": now_ts(),
    }


def participant_joined(participant: Participant, participant_count: int) -> dict[str, Any]:
    return {
        "type": "participant_joined",
        "participant": participant.model_dump(),
        "participant_count": participant_count,
    }


def round_opened(rnd: Round, total_questions: int) -> dict[str, Any]:
    # never includes the correct option
    return {
        "type": "round_opened",
        "question_index": rnd.question_index,
        "question_id": rnd.question_id,
        "text": rnd.question.text,
        "options": list(rnd.question.options),
        "time_limit_ms": rnd.time_limit_ms,
        "total_questions": total_questions,
    }


def answer_tally_updated(rnd: Round) -> dict[str, Any]:
    return {
        "type": "answer_tally_updated",
        "question_index": rnd.question_index,
        "counts": rnd.tally(),
        "answered_count": rnd.answered_count(),
    }


def round_closed(rnd: Round) -> dict[str, Any]:
    return {
        "type": "round_closed",
        "question_index": rnd.question_index,
        "question_id": rnd.question_id,
        "correct_option_index": rnd.correct_option_index,
        "counts": rnd.tally(),
    }


def session_ended(final_ranking: List[RankingEntry]) -> dict[str, Any]:
    return {
        "type": "session_ended",
        "final_ranking": [entry.model_dump() for entry in final_ranking],
    }
