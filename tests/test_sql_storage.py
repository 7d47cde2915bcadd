import os
import tempfile
import unittest

from domain.models import Game, GameStatus, Participant, ParticipantStatus
from infrastructure.db.database_sqlite import SqliteDatabase
from infrastructure.db.game_repository_sql import SqlGameRepository
from infrastructure.db.participant_repository_sql import SqlParticipantRepository


class SqliteStorageTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = os.path.join(self._tmp.name, "storage.db")
        self.db = SqliteDatabase(self.path)
        self.games = SqlGameRepository(self.db)
        self.participants = SqlParticipantRepository(self.db)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _game(self, game_id="g1", code="abcd1234"):
        return Game(game_id, code, "h", GameStatus.ACTIVE, "desc", "2026-01-01T00:00:00+00:00")

    def test_atomic_block_rolls_back_every_write(self):
        with self.assertRaises(RuntimeError):
            with self.db.atomic():
                self.games.add_game(self._game())
                self.participants.add_participant(
                    Participant("g1", "h", ParticipantStatus.APPROVED, 0.0, 0.0, 0.0, 0.0)
                )
                raise RuntimeError("abort")

        self.assertIsNone(self.games.get_game("g1"))
        self.assertIsNone(self.participants.get_participant("g1", "h"))

    def test_nested_atomic_joins_outer_transaction(self):
        with self.assertRaises(RuntimeError):
            with self.db.atomic():
                self.games.add_game(self._game())
                with self.db.atomic():
                    self.games.set_status("g1", GameStatus.CLOSED)
                raise RuntimeError("abort")

        self.assertIsNone(self.games.get_game("g1"))

    def test_schema_setup_is_idempotent(self):
        self.games.add_game(self._game())
        again = SqliteDatabase(self.path)

        self.assertIsNotNone(SqlGameRepository(again).get_game("g1"))

    def test_unset_requested_amounts_fall_back_to_confirmed(self):
        self.games.add_game(self._game())
        self.participants.add_participant(
            Participant("g1", "a", ParticipantStatus.APPROVED, 12.0, 3.0)
        )

        p = self.participants.get_participant("g1", "a")

        self.assertEqual((p.requested_cash_in, p.requested_cash_out), (12.0, 3.0))
        self.assertIsInstance(p.confirmed_cash_in, float)

    def test_ended_at_is_kept_once_set(self):
        self.games.add_game(self._game())
        self.games.set_status("g1", GameStatus.ENDED, ended_at="2026-01-02T00:00:00+00:00")
        self.games.set_status("g1", GameStatus.ENDED)

        game = self.games.get_game("g1")
        self.assertEqual(game.status, GameStatus.ENDED)
        self.assertEqual(game.ended_at, "2026-01-02T00:00:00+00:00")

    def test_status_change_only_applies_from_expected_status(self):
        self.games.add_game(self._game())

        self.assertTrue(self.games.set_status("g1", GameStatus.CLOSED, expected=GameStatus.ACTIVE))
        self.assertFalse(self.games.set_status("g1", GameStatus.ENDED, expected=GameStatus.ACTIVE))
        self.assertEqual(self.games.get_game("g1").status, GameStatus.CLOSED)

    def test_second_insert_of_same_participant_is_ignored(self):
        self.games.add_game(self._game())
        first = Participant("g1", "a", ParticipantStatus.APPROVED, 12.0, 3.0)
        second = Participant("g1", "a", ParticipantStatus.PENDING, 0.0, 0.0)

        self.assertTrue(self.participants.add_participant(first))
        self.assertFalse(self.participants.add_participant(second))
        self.assertEqual(self.participants.get_participant("g1", "a").status, ParticipantStatus.APPROVED)

    def test_games_for_participant_skip_ended_and_unadmitted(self):
        self.games.add_game(self._game("g1", "aaaa0001"))
        self.games.add_game(self._game("g2", "aaaa0002"))
        self.games.add_game(self._game("g3", "aaaa0003"))
        self.participants.add_participant(Participant("g1", "a", ParticipantStatus.APPROVED, 0.0, 0.0))
        self.participants.add_participant(Participant("g2", "a", ParticipantStatus.PENDING))
        self.participants.add_participant(Participant("g3", "a", ParticipantStatus.APPROVED, 0.0, 0.0))
        self.games.set_status("g3", GameStatus.ENDED)

        self.assertEqual([g.id for g in self.games.list_games_for_participant("a")], ["g1"])
        self.assertEqual(self.games.get_game_by_code("aaaa0002").id, "g2")


if __name__ == "__main__":
    unittest.main()
