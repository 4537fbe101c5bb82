from __future__ import annotations

import uuid
from typing import Dict, Iterator, List

from .errors import InvalidName, UnknownParticipant
from .models import Participant, RankingEntry


MAX_NAME_LENGTH = 20


class Roster:
    """Participants of one session and their running scores.

    The roster does not know about session state; the owning session checks
    that joins only happen while waiting and serializes every mutation.
    """

    def __init__(self, session_id: str):
        self.session_id = session_id
        self._participants: Dict[str, Participant] = {}
        self._next_seq = 0

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._participants

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._participants.values()))

    def get(self, participant_id: str) -> Participant:
        try:
            return self._participants[participant_id]
        except KeyError:
            raise UnknownParticipant() from None

    def join(self, display_name: str, now_ms: int) -> Participant:
        name = (display_name or "").strip()
        if not name or len(name) > MAX_NAME_LENGTH:
            raise InvalidName()

        self._next_seq += 1
        p = Participant(
            id=uuid.uuid4().hex,
            session_id=self.session_id,
            display_name=name,
            joined_at=now_ms,
            join_seq=self._next_seq,
        )
        self._participants[p.id] = p
        return p

    def apply_points(self, participant_id: str, points: int) -> int:
        if points < 0:
            raise RuntimeError(f"negative award {points} for {participant_id}")
        p = self.get(participant_id)
        p.score += points
        return p.score

    def participants(self) -> List[Participant]:
        return [p.model_copy() for p in self._participants.values()]

    def ranking(self) -> List[RankingEntry]:
        # score desc, then earlier joiners first; join_seq makes it total
        ordered = sorted(
            self._participants.values(),
            key=lambda p: (-p.score, p.joined_at, p.join_seq),
        )
        return [
            RankingEntry(rank=i, participant_id=p.id, display_name=p.display_name, score=p.score)
            for i, p in enumerate(ordered, start=1)
        ]
