from __future__ import annotations

import asyncio
import random
from unittest import IsolatedAsyncioTestCase

from .errors import InvalidTransition, SessionNotFound
from .models import Question, Quiz, SessionState
from .registry import JOIN_CODE_MAX, JOIN_CODE_MIN, SessionRegistry


class _FakeClock:
    def now_ms(self) -> int:
        return 0


class _ScriptedRandom:
    """Returns queued values from ``randint`` so collisions can be forced."""

    def __init__(self, *values: int):
        self.values = list(values)
        self.calls: list[tuple[int, int]] = []

    def randint(self, a: int, b: int) -> int:
        self.calls.append((a, b))
        return self.values.pop(0)


async def _ignore(session_id, payload):
    return 0


def _quiz() -> Quiz:
    return Quiz(
        id="quiz-1",
        questions=[Question(id="q0", text="?", options=["a", "b", "c", "d"], correct_option_index=0)],
    )


class SessionRegistryTests(IsolatedAsyncioTestCase):
    def make_registry(self, rng=None, **kwargs) -> SessionRegistry:
        return SessionRegistry(clock=_FakeClock(), publish=_ignore, rng=rng, **kwargs)

    async def test_codes_are_six_digits_from_the_full_range(self):
        rng = _ScriptedRandom(100000)
        registry = self.make_registry(rng)

        s = registry.create(_quiz())

        self.assertEqual(s.join_code, "100000")
        self.assertEqual(rng.calls, [(JOIN_CODE_MIN, JOIN_CODE_MAX)])
        self.assertEqual(s.state, SessionState.WAITING)

    async def test_collision_with_live_session_is_retried(self):
        registry = self.make_registry(_ScriptedRandom(123456, 123456, 654321))

        first = registry.create(_quiz())
        second = registry.create(_quiz())

        self.assertEqual(first.join_code, "123456")
        self.assertEqual(second.join_code, "654321")
        self.assertIs(registry.resolve("123456"), first)
        self.assertIs(registry.resolve("654321"), second)

    async def test_codes_are_recycled_once_a_session_ends(self):
        registry = self.make_registry(_ScriptedRandom(123456, 123456))
        first = registry.create(_quiz())
        await first.end()

        second = registry.create(_quiz())

        self.assertEqual(second.join_code, "123456")
        self.assertIs(registry.resolve("123456"), second)
        self.assertIs(registry.get(first.id), first)

    async def test_exhausted_code_space_raises(self):
        registry = self.make_registry(_ScriptedRandom(*([111111] * 1001)))
        registry.create(_quiz())

        with self.assertRaises(RuntimeError):
            registry.create(_quiz())

    async def test_resolve_unknown_or_ended_code(self):
        registry = self.make_registry(random.Random(7))
        s = registry.create(_quiz())

        with self.assertRaises(SessionNotFound):
            registry.resolve("000000")
        await s.end()
        with self.assertRaises(SessionNotFound):
            registry.resolve(s.join_code)

    async def test_get_unknown_session(self):
        registry = self.make_registry()
        with self.assertRaises(SessionNotFound):
            registry.get("missing")

    async def test_evict_requires_ended_session(self):
        evicted = []
        registry = self.make_registry(random.Random(1), on_evict=evicted.append)
        s = registry.create(_quiz())

        with self.assertRaises(InvalidTransition):
            registry.evict(s.id)
        self.assertIs(registry.get(s.id), s)

        await s.end()
        registry.evict(s.id)

        with self.assertRaises(SessionNotFound):
            registry.get(s.id)
        self.assertEqual(evicted, [s])
        self.assertEqual(len(registry), 0)

    async def test_ended_sessions_are_evicted_after_retention(self):
        registry = self.make_registry(random.Random(2), retention_seconds=0.01)
        s = registry.create(_quiz())
        await s.end()
        self.assertIs(registry.get(s.id), s)

        await asyncio.sleep(0.1)

        with self.assertRaises(SessionNotFound):
            registry.get(s.id)

    async def test_live_sessions_excludes_ended(self):
        registry = self.make_registry(_ScriptedRandom(111111, 222222))
        keep = registry.create(_quiz())
        done = registry.create(_quiz())
        await done.end()

        self.assertEqual(registry.live_sessions(), [keep])
