import random
import unittest

from domain.errors import InsufficientParticipants
from domain.models import Guest, Participant, ParticipantStatus, PlayerEntry
from domain.settlement import (
    EPSILON,
    build_settlement_entries,
    calc_payouts,
    guest_label,
    is_zero,
    participant_label,
    settle_ledger,
    sum_net,
    transfer_count,
)


def _transfers(payout):
    return sorted((p.name, t.target, round(t.value, 9)) for p in payout.players for t in p.paid_to)


def _by_name(payout):
    return {p.name: p for p in payout.players}


class CalcPayoutsTests(unittest.TestCase):
    def test_two_players_one_transfer(self):
        payout = calc_payouts([PlayerEntry("A", 100, 0), PlayerEntry("B", 0, 100)])

        self.assertEqual(payout.slippage, 0)
        self.assertEqual(_transfers(payout), [("A", "B", 100.0)])
        players = _by_name(payout)
        self.assertEqual(players["B"].paid_by[0].target, "A")
        self.assertEqual(players["A"].paid_by, [])

    def test_two_losers_pay_one_winner(self):
        payout = calc_payouts(
            [PlayerEntry("A", 50, 0), PlayerEntry("B", 50, 0), PlayerEntry("C", 0, 100)]
        )

        self.assertEqual(payout.slippage, 0)
        self.assertEqual(_transfers(payout), [("A", "C", 50.0), ("B", "C", 50.0)])

    def test_slippage_is_split_evenly(self):
        payout = calc_payouts([PlayerEntry("A", 100, 0), PlayerEntry("B", 0, 90)])

        self.assertAlmostEqual(payout.slippage, 10.0)
        players = _by_name(payout)
        self.assertAlmostEqual(players["A"].net, -95.0)
        self.assertAlmostEqual(players["B"].net, 95.0)
        self.assertLess(abs(sum_net(payout)), EPSILON)
        self.assertEqual(_transfers(payout), [("A", "B", 95.0)])

    def test_all_zero_ledger_has_no_transfers(self):
        payout = calc_payouts([PlayerEntry("A", 0, 0), PlayerEntry("B", 0, 0)])

        self.assertEqual(transfer_count(payout), 0)
        for p in payout.players:
            self.assertEqual(p.net, 0.0)

    def test_negative_zero_net_is_normalised(self):
        payout = calc_payouts([PlayerEntry("A", 0.1 + 0.2, 0.3), PlayerEntry("B", 0, 0)])

        for p in payout.players:
            self.assertTrue(is_zero(p.net))
            self.assertEqual(str(p.net), "0.0")
        self.assertEqual(transfer_count(payout), 0)

    def test_empty_input_is_an_empty_payout(self):
        payout = calc_payouts([])

        self.assertEqual(payout.players, [])
        self.assertEqual(payout.slippage, 0.0)

    def test_handle_sigil_is_dropped_from_display_name(self):
        payout = calc_payouts([PlayerEntry("@alice", 10, 0), PlayerEntry("$bob", 0, 10)])

        names = {p.name: p.display_name for p in payout.players}
        self.assertEqual(names, {"@alice": "alice", "$bob": "bob"})

    def test_random_ledgers_sum_to_zero_with_at_most_n_minus_one_transfers(self):
        rng = random.Random(1234)
        for _ in range(200):
            n = rng.randint(2, 9)
            players = [
                PlayerEntry(f"P{i}", round(rng.uniform(0, 300), 2), round(rng.uniform(0, 300), 2))
                for i in range(n)
            ]
            payout = calc_payouts(players)

            self.assertLess(abs(sum_net(payout)), 1e-6)
            self.assertLessEqual(transfer_count(payout), n - 1)
            for p in payout.players:
                for t in p.paid_to:
                    self.assertGreater(t.value, EPSILON)

    def test_same_ledger_settles_identically(self):
        players = [
            PlayerEntry("A", 40, 10),
            PlayerEntry("B", 20, 75),
            PlayerEntry("C", 60, 0),
            PlayerEntry("D", 0, 35),
        ]

        self.assertEqual(_transfers(calc_payouts(players)), _transfers(calc_payouts(players)))


class SettleLedgerTests(unittest.TestCase):
    def test_fewer_than_two_entries_is_insufficient(self):
        with self.assertRaises(InsufficientParticipants) as cm:
            settle_ledger([PlayerEntry("A", 10, 0)])
        self.assertIn("insufficient data", str(cm.exception))
        self.assertEqual(cm.exception.eligible, 1)

    def test_two_entries_settle(self):
        payout = settle_ledger([PlayerEntry("A", 10, 0), PlayerEntry("B", 0, 10)])
        self.assertEqual(transfer_count(payout), 1)


class SettlementEntriesTests(unittest.TestCase):
    def test_labels_prefer_handle_then_name_then_short_id(self):
        self.assertEqual(participant_label("abcdef123456", "Al", "al-pay"), "@al-pay")
        self.assertEqual(participant_label("abcdef123456", "Al"), "Al")
        self.assertEqual(participant_label("abcdef123456"), "Player_abcdef12")

    def test_duplicate_labels_get_suffixes_and_guests_map_to_none(self):
        participants = [
            Participant("g", "p1", ParticipantStatus.APPROVED, 10.0, 0.0),
            Participant("g", "p2", ParticipantStatus.APPROVED, 0.0, 10.0),
        ]
        guests = [Guest("x", "g", "Sam", 5.0, 0.0)]

        entries, identities = build_settlement_entries(
            participants, guests, {"p1": "Sam", "p2": "Sam"}
        )

        self.assertEqual([e.name for e in entries], ["Sam", "Sam_1", guest_label("Sam")])
        self.assertEqual(identities, {"Sam": "p1", "Sam_1": "p2", "Sam (guest)": None})


if __name__ == "__main__":
    unittest.main()
