from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import datetime


class Question(BaseModel):
    id: str
    text: str
    options: List[str]
    correct_option_index: int
    time_limit_ms: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_options(self):
        if len(self.options) < 2:
            raise ValueError("A question needs at least two options")
        if not 0 <= self.correct_option_index < len(self.options):
            raise ValueError("correct_option_index is out of range")
        return self


class Quiz(BaseModel):
    id: str
    title: str = ""
    questions: List[Question] = Field(default_factory=list)


# States: waiting -> active -> ended, or waiting -> ended
class SessionState(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    ENDED = "ended"


class Participant(BaseModel):
    id: str
    session_id: str
    display_name: str
    score: int = 0
    joined_at: int  # clock ms
    join_seq: int


class Answer(BaseModel):
    model_config = ConfigDict(frozen=True)

    participant_id: str
    selected_option: Optional[int]  # None when the participant never answered
    submitted_at_ms: int  # offset from the round opening
    points: int = 0
    correct: bool = False


class RoundResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_index: int
    question_id: str
    correct_option_index: int
    counts: List[int]
    answers: List[Answer]
    opened_at: int
    closed_at: int


class RankingEntry(BaseModel):
    rank: int
    participant_id: str
    display_name: str
    score: int


class SessionSnapshot(BaseModel):
    id: str
    join_code: str
    quiz_id: str
    state: SessionState
    current_round_index: int
    total_rounds: int
    round_open: bool
    participants: List[Participant]
    created_at: datetime
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None
