from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import game
from .db import settings
from .errors import QuizError
from .models import Quiz
from .schemas import (
    AnswerIn,
    AnswerOut,
    CreateSessionIn,
    HostCommandIn,
    JoinIn,
    JoinOut,
    LeaderboardOut,
    PublicSessionOut,
    ResultsOut,
)
from .utils import configure_logging

configure_logging(settings.LOG_LEVEL)

app = FastAPI(title="QuizSync API")

origins = [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]
origin_regex = settings.CORS_ORIGIN_REGEX or None

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_origin_regex=origin_regex,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": {"code": exc.code, "message": exc.message}},
    )


@app.post("/api/quizzes", response_model=Quiz)
async def upsert_quiz(payload: Quiz):
    return await game.controller.upsert_quiz(payload)


@app.post("/api/session", response_model=PublicSessionOut)
async def create_session(payload: CreateSessionIn):
    s = await game.controller.create_session(payload.quiz_id)
    return s.snapshot()


@app.get("/api/session/{session_id}", response_model=PublicSessionOut)
async def get_session(session_id: str):
    return game.controller.get_session(session_id).snapshot()


@app.get("/api/session/{session_id}/events")
async def list_events(session_id: str, after: int | None = None, limit: int = 200):
    events = await game.controller.events.list(session_id, after=after, limit=limit)
    latest_seq = events[-1]["seq"] if events else after
    return {"events": events, "latest_seq": latest_seq}


@app.get("/api/session/{session_id}/leaderboard", response_model=LeaderboardOut)
async def leaderboard(session_id: str):
    return LeaderboardOut(session_id=session_id, ranking=game.controller.get_leaderboard(session_id))


@app.get("/api/session/{session_id}/results", response_model=ResultsOut)
async def results(session_id: str):
    return ResultsOut(session_id=session_id, rounds=game.controller.get_results(session_id))


@app.post("/api/join", response_model=JoinOut)
async def join(payload: JoinIn):
    s, p = await game.controller.join_session(payload.join_code, payload.display_name)
    return JoinOut(session_id=s.id, participant=p)


@app.post("/api/host/start", response_model=PublicSessionOut)
async def start(payload: HostCommandIn):
    s = await game.controller.start_session(payload.session_id)
    return s.snapshot()


@app.post("/api/host/reveal")
async def reveal(payload: HostCommandIn):
    result = await game.controller.reveal_round(payload.session_id)
    return {"round": result.model_dump()}


@app.post("/api/host/next", response_model=PublicSessionOut)
async def next_round(payload: HostCommandIn):
    s = await game.controller.next_round(payload.session_id)
    return s.snapshot()


@app.post("/api/host/end", response_model=LeaderboardOut)
async def end(payload: HostCommandIn):
    ranking = await game.controller.end_session(payload.session_id)
    return LeaderboardOut(session_id=payload.session_id, ranking=ranking)


@app.post("/api/answer", response_model=AnswerOut)
async def answer(payload: AnswerIn):
    a = await game.controller.submit_answer(
        payload.session_id, payload.participant_id, payload.question_id, payload.option_index
    )
    return AnswerOut(points=a.points, correct=a.correct)
