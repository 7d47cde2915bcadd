import unittest

from application import guests, history, ledger, session
from application.profiles import update_profile

from sqlite_stores import ALICE, BOB, CAROL, HOST, SqliteStoresTestCase


class HistoryTests(SqliteStoresTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.game = session.create_game(self.stores, HOST)
        for pid in (ALICE, BOB):
            ledger.request_join(self.stores, self.game.id, pid)
            ledger.approve(self.stores, self.game.id, pid, HOST)

    def play_session(self, amounts):
        for pid, (cash_in, cash_out) in amounts.items():
            ledger.set_confirmed_amounts(self.stores, self.game.id, pid, cash_in, cash_out, HOST)
        session.close(self.stores, self.game.id, HOST)

    def test_session_history_groups_snapshots_per_close(self):
        update_profile(self.stores.profiles, self.stores.resolver, ALICE, display_name="Alice")
        guests.add_guest(self.stores, self.game.id, HOST, "Sam", 10, 0)
        self.play_session({ALICE: (20, 0), BOB: (0, 30)})
        session.reopen(self.stores, self.game.id, HOST)
        self.play_session({ALICE: (0, 40), BOB: (40, 0)})

        records = history.session_history(self.stores, self.game.id)

        self.assertEqual(len(records), 2)
        first, second = records
        self.assertLess(first.snapshotted_at, second.snapshotted_at)
        self.assertIn("Sam (guest)", [p.name for p in first.players])
        self.assertNotIn("Sam (guest)", [p.name for p in second.players])
        self.assertIn("Alice", [p.name for p in first.players])
        transfers = [(p.name, t.target, t.value) for p in first.payout.players for t in p.paid_to]
        self.assertEqual(sum(value for _, _, value in transfers), 30.0)

    def test_game_standings_sum_sessions_and_flag_kicked_players(self):
        self.play_session({ALICE: (20, 0), BOB: (0, 20)})
        session.reopen(self.stores, self.game.id, HOST)
        self.play_session({ALICE: (0, 5), BOB: (5, 0)})
        session.reopen(self.stores, self.game.id, HOST)
        ledger.kick(self.stores, self.game.id, BOB, HOST)
        ledger.request_join(self.stores, self.game.id, CAROL)

        standings = history.game_standings(self.stores, self.game.id, limit=None)

        nets = {s.participant_id: (s.game_net, s.was_kicked) for s in standings}
        self.assertEqual(nets[BOB], (15.0, True))
        self.assertEqual(nets[ALICE], (-15.0, False))
        self.assertEqual(nets[HOST], (0.0, False))
        self.assertEqual(standings[0].participant_id, BOB)
        self.assertNotIn(CAROL, nets)
        self.assertEqual(len(history.game_standings(self.stores, self.game.id)), 3)
        self.assertEqual(len(history.game_standings(self.stores, self.game.id, limit=1)), 1)

    def test_participant_timeline_runs_a_cumulative_total(self):
        self.play_session({ALICE: (20, 0), BOB: (0, 20)})
        session.reopen(self.stores, self.game.id, HOST)
        self.play_session({ALICE: (0, 50), BOB: (50, 0)})

        points = history.participant_timeline(self.stores, self.game.id, ALICE)

        self.assertEqual([p.session_net for p in points], [-20.0, 50.0])
        self.assertEqual([p.cumulative_net for p in points], [-20.0, 30.0])

    def test_leaderboard_lists_public_profiles_by_lifetime_profit(self):
        ledger.set_confirmed_amounts(self.stores, self.game.id, ALICE, 30, 0, HOST)
        ledger.set_confirmed_amounts(self.stores, self.game.id, BOB, 0, 30, HOST)
        session.end(self.stores, self.game.id, HOST)
        update_profile(self.stores.profiles, self.stores.resolver, HOST, profile_public=False)

        board = history.leaderboard(self.stores)

        self.assertEqual([p.id for p in board], [BOB, ALICE])
        self.assertEqual(board[0].net_profit, 30.0)
        deltas = history.profit_history(self.stores, ALICE)
        self.assertEqual([(d.game_id, d.profit_delta) for d in deltas], [(self.game.id, -30.0)])


if __name__ == "__main__":
    unittest.main()
