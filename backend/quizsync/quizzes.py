from __future__ import annotations

from typing import Any

from .db import db as default_db
from .errors import QuizNotFound
from .models import Quiz


class QuizStore:
    """Read side of quiz storage; quizzes are immutable while a session runs."""

    def __init__(self, database: Any = None):
        database = database if database is not None else default_db
        self.collection = database.quizzes

    async def upsert(self, quiz: Quiz) -> Quiz:
        await self.collection.update_one({"id": quiz.id}, {"$set": quiz.model_dump()}, upsert=True)
        return quiz

    async def get(self, quiz_id: str) -> Quiz:
        doc = await self.collection.find_one({"id": quiz_id})
        if not doc:
            raise QuizNotFound()
        return Quiz(**doc)


quiz_store = QuizStore()
