from unittest import TestCase

from .errors import InvalidName, UnknownParticipant
from .roster import Roster


class RosterJoinTests(TestCase):
    def setUp(self) -> None:
        self.roster = Roster("session-1")

    def test_join_trims_name_and_starts_at_zero(self):
        p = self.roster.join("  Ada  ", now_ms=10)

        self.assertEqual(p.display_name, "Ada")
        self.assertEqual(p.score, 0)
        self.assertEqual(p.session_id, "session-1")
        self.assertIn(p.id, self.roster)
        self.assertEqual(len(self.roster), 1)

    def test_rejects_empty_and_overlong_names(self):
        for bad in ("", "   ", "x" * 21):
            with self.subTest(name=bad):
                with self.assertRaises(InvalidName):
                    self.roster.join(bad, now_ms=0)
        self.assertEqual(len(self.roster), 0)

    def test_twenty_characters_is_allowed(self):
        p = self.roster.join("y" * 20, now_ms=0)
        self.assertEqual(len(p.display_name), 20)

    def test_duplicate_names_get_distinct_participants(self):
        a = self.roster.join("Sam", now_ms=0)
        b = self.roster.join("Sam", now_ms=0)
        self.assertNotEqual(a.id, b.id)


class RosterScoreTests(TestCase):
    def setUp(self) -> None:
        self.roster = Roster("session-1")
        self.first = self.roster.join("First", now_ms=100)
        self.second = self.roster.join("Second", now_ms=100)
        self.third = self.roster.join("Third", now_ms=200)

    def test_apply_points_is_additive(self):
        self.roster.apply_points(self.first.id, 300)
        total = self.roster.apply_points(self.first.id, 450)
        self.assertEqual(total, 750)
        self.assertEqual(self.roster.get(self.first.id).score, 750)

    def test_apply_points_to_stranger_fails(self):
        with self.assertRaises(UnknownParticipant):
            self.roster.apply_points("nobody", 10)

    def test_ranking_orders_by_score_then_join_order(self):
        self.roster.apply_points(self.third.id, 500)

        ranking = self.roster.ranking()

        self.assertEqual(
            [e.participant_id for e in ranking],
            [self.third.id, self.first.id, self.second.id],
        )
        self.assertEqual([e.rank for e in ranking], [1, 2, 3])

    def test_ranking_is_stable_across_reads(self):
        self.roster.apply_points(self.second.id, 100)
        self.roster.apply_points(self.first.id, 100)

        first_read = self.roster.ranking()
        second_read = self.roster.ranking()

        self.assertEqual(first_read, second_read)
        self.assertEqual(first_read[0].participant_id, self.first.id)

    def test_participants_are_copies(self):
        snapshot = self.roster.participants()
        snapshot[0].score = 999
        self.assertEqual(self.roster.get(self.first.id).score, 0)
