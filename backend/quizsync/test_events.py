from unittest import IsolatedAsyncioTestCase

from .db import InMemoryDatabase
from .events import EventStore


class EventStoreTests(IsolatedAsyncioTestCase):
    def setUp(self) -> None:
        self.store = EventStore(InMemoryDatabase())

    async def test_sequences_are_per_session_and_ordered(self):
        seqs_a = [await self.store.publish("a", {"type": "t", "n": n}) for n in range(3)]
        seqs_b = [await self.store.publish("b", {"type": "t", "n": n}) for n in range(2)]

        self.assertEqual(seqs_a, [1, 2, 3])
        self.assertEqual(seqs_b, [1, 2])

        events = await self.store.list("a")
        self.assertEqual([e["seq"] for e in events], [1, 2, 3])
        self.assertEqual([e["payload"]["n"] for e in events], [0, 1, 2])

    async def test_list_after_and_limit(self):
        for n in range(5):
            await self.store.publish("s", {"type": "t", "n": n})

        after = await self.store.list("s", after=2)
        limited = await self.store.list("s", after=0, limit=2)

        self.assertEqual([e["seq"] for e in after], [3, 4, 5])
        self.assertEqual([e["seq"] for e in limited], [1, 2])

    async def test_payloads_are_stored_by_value(self):
        payload = {"type": "t", "counts": [1, 0]}
        await self.store.publish("s", payload)
        payload["counts"][0] = 9

        (event,) = await self.store.list("s")
        self.assertEqual(event["payload"]["counts"], [1, 0])

    async def test_drop_forgets_a_session(self):
        await self.store.publish("s", {"type": "t"})
        await self.store.publish("other", {"type": "t"})

        await self.store.drop("s")

        self.assertEqual(await self.store.list("s"), [])
        self.assertEqual(len(await self.store.list("other")), 1)
        self.assertEqual(await self.store.publish("s", {"type": "t"}), 1)
