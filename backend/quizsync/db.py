from __future__ import annotations

import asyncio
import copy
import operator
from functools import lru_cache
from typing import Any, Callable, Dict, List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict
from pymongo import ReturnDocument


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:8080"
    CORS_ORIGIN_REGEX: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    QUESTION_TIME_LIMIT_MS: int = 20000
    POINTS_BASE: int = 1000
    POINTS_FLOOR: int = 100
    # how long an ended session stays readable before it is evicted
    SESSION_RETENTION_SECONDS: float = 600.0


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()


_QUERY_OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "$gt": operator.gt,
}


def _matches(doc: Dict[str, Any], query: Optional[Dict[str, Any]]) -> bool:
    for key, expected in (query or {}).items():
        actual = doc.get(key)
        if not isinstance(expected, dict):
            if actual != expected:
                return False
            continue
        for op, operand in expected.items():
            compare = _QUERY_OPERATORS.get(op)
            if compare is None:
                raise ValueError(f"Unsupported query operator: {op}")
            if actual is None or not compare(actual, operand):
                return False
    return True


def _apply_update(doc: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
    for op, fields in update.items():
        if op == "$set":
            doc.update(copy.deepcopy(fields))
        elif op == "$inc":
            for key, step in fields.items():
                doc[key] = doc.get(key, 0) + step
        else:
            raise ValueError(f"Unsupported update operator: {op}")
    return doc


class InMemoryCursor:
    """Lazily evaluated ``find`` result supporting ``sort``/``limit`` and ``async for``."""

    def __init__(self, collection: "InMemoryCollection", query: Dict[str, Any]):
        self._collection = collection
        self._query = query
        self._sort: Optional[tuple[str, int]] = None
        self._limit: Optional[int] = None
        self._pending: Optional[List[Dict[str, Any]]] = None

    def sort(self, key: str, direction: int):
        self._sort = (key, direction)
        return self

    def limit(self, limit: int):
        self._limit = limit
        return self

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self._pending is None:
            docs = await self._collection._snapshot(self._query)
            if self._sort is not None:
                key, direction = self._sort
                docs.sort(key=lambda d: d.get(key), reverse=direction < 0)
            self._pending = docs if self._limit is None else docs[: self._limit]
        if not self._pending:
            raise StopAsyncIteration
        return self._pending.pop(0)


class InMemoryCollection:
    """Async subset of a Mongo collection, enough for the quiz store and event log."""

    def __init__(self):
        self._docs: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    def _index_of(self, query: Dict[str, Any]) -> Optional[int]:
        for idx, doc in enumerate(self._docs):
            if _matches(doc, query):
                return idx
        return None

    async def _snapshot(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        async with self._lock:
            return [copy.deepcopy(d) for d in self._docs if _matches(d, query)]

    def find(self, query: Dict[str, Any]) -> InMemoryCursor:
        return InMemoryCursor(self, query)

    async def find_one(self, query: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        async with self._lock:
            idx = self._index_of(query)
            return None if idx is None else copy.deepcopy(self._docs[idx])

    async def insert_one(self, document: Dict[str, Any]):
        async with self._lock:
            self._docs.append(copy.deepcopy(document))

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any], upsert: bool = False):
        await self.find_one_and_update(query, update, upsert=upsert)

    async def delete_many(self, query: Dict[str, Any]):
        async with self._lock:
            self._docs = [d for d in self._docs if not _matches(d, query)]

    async def find_one_and_update(
        self,
        query: Dict[str, Any],
        update: Dict[str, Any],
        *,
        upsert: bool = False,
        return_document: bool = ReturnDocument.BEFORE,
    ) -> Optional[Dict[str, Any]]:
        async with self._lock:
            idx = self._index_of(query)
            if idx is None:
                if not upsert:
                    return None
                # upserts seed the new document from the equality part of the query
                seed = {k: v for k, v in query.items() if not isinstance(v, dict)}
                before = None
                self._docs.append(_apply_update(copy.deepcopy(seed), update))
                idx = len(self._docs) - 1
            else:
                before = copy.deepcopy(self._docs[idx])
                self._docs[idx] = _apply_update(copy.deepcopy(self._docs[idx]), update)

            if return_document == ReturnDocument.AFTER:
                return copy.deepcopy(self._docs[idx])
            return before


class InMemoryDatabase:
    def __init__(self):
        self.quizzes = InMemoryCollection()
        self.session_event_counters = InMemoryCollection()
        self.session_events = InMemoryCollection()


db: Any = InMemoryDatabase()
