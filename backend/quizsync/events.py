from __future__ import annotations

import logging
from typing import Any, List, Optional

from pymongo import ReturnDocument

from .db import db as default_db
from .utils import now_ts


logger = logging.getLogger(__name__)


class EventStore:
    """Ordered per-session event log that clients poll over HTTP.

    ``publish`` assigns each event the next sequence number of its session,
    so every subscriber reading with ``after=<last seen seq>`` observes the
    events of a session in publish order. Sequences of different sessions
    are independent.
    """

    def __init__(self, database: Any = None):
        database = database if database is not None else default_db
        self.counters_collection = database.session_event_counters
        self.events_collection = database.session_events

    async def publish(self, session_id: str, payload: dict[str, Any]) -> int:
        """Store a new event for a session and return its sequence number."""

        counter_doc = await self.counters_collection.find_one_and_update(
            {"_id": session_id},
            {"$inc": {"seq": 1}},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
        if not counter_doc or "seq" not in counter_doc:
            # Mongo-compatible providers may complete the upsert without
            # returning the document; read it back instead.
            counter_doc = await self.counters_collection.find_one({"_id": session_id})
        if not counter_doc:
            raise RuntimeError(f"event counter missing for session {session_id}")

        seq = int(counter_doc["seq"])
        await self.events_collection.insert_one(
            {
                "session_id": session_id,
                "seq": seq,
                "timestamp": now_ts(),
                "payload": payload,
            }
        )
        logger.debug("event session=%s seq=%d type=%s", session_id, seq, payload.get("type"))
        return seq

    async def list(self, session_id: str, after: Optional[int] = None, limit: int = 200) -> List[dict[str, Any]]:
        """Return events for a session that occur after the given sequence."""

        query: dict[str, Any] = {"session_id": session_id}
        if after is not None:
            query["seq"] = {"$gt": after}

        cursor = self.events_collection.find(query).sort("seq", 1).limit(limit)
        return [
            {"seq": doc["seq"], "timestamp": doc.get("timestamp"), "payload": doc.get("payload", {})}
            async for doc in cursor
        ]

    async def drop(self, session_id: str) -> None:
        """Forget the log of an evicted session."""

        await self.events_collection.delete_many({"session_id": session_id})
        await self.counters_collection.delete_many({"_id": session_id})


event_store = EventStore()
