from pydantic import BaseModel, Field
from typing import List
from .models import Participant, RankingEntry, RoundResult, SessionSnapshot


class CreateSessionIn(BaseModel):
    quiz_id: str


class JoinIn(BaseModel):
    join_code: str
    display_name: str


class JoinOut(BaseModel):
    session_id: str
    participant: Participant


class HostCommandIn(BaseModel):
    session_id: str


class AnswerIn(BaseModel):
    session_id: str
    participant_id: str
    question_id: str
    option_index: int


class AnswerOut(BaseModel):
    accepted: bool = True
    points: int
    correct: bool


class LeaderboardOut(BaseModel):
    session_id: str
    ranking: List[RankingEntry]


class ResultsOut(BaseModel):
    session_id: str
    rounds: List[RoundResult] = Field(default_factory=list)


PublicSessionOut = SessionSnapshot
