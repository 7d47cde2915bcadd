import unittest

from application.history import SessionRecord, Standing
from domain.errors import InvalidAmount
from domain.models import AmountField, Guest, Participant, ParticipantStatus, PlayerEntry, Profile
from domain.settlement import calc_payouts
from interfaces.discord.formatting import (
    format_history,
    format_leaderboard,
    format_participants,
    format_payout,
    format_standings,
    parse_amount,
    parse_field,
)


class ParsingTests(unittest.TestCase):
    def test_parse_amount_accepts_common_spellings(self):
        self.assertEqual(parse_amount("20"), 20.0)
        self.assertEqual(parse_amount("$20.50"), 20.5)
        self.assertEqual(parse_amount("1,200"), 1200.0)

    def test_parse_amount_rejects_garbage(self):
        for raw in ("", "-5", "abc", "nan"):
            with self.subTest(raw=raw):
                with self.assertRaises(InvalidAmount):
                    parse_amount(raw)

    def test_parse_field(self):
        self.assertEqual(parse_field("in"), AmountField.CASH_IN)
        self.assertEqual(parse_field("OUT"), AmountField.CASH_OUT)
        with self.assertRaises(ValueError):
            parse_field("sideways")


class RenderingTests(unittest.TestCase):
    def test_participants_show_host_requests_and_totals(self):
        host = Participant("g", "h", ParticipantStatus.APPROVED, 10.0, 0.0, 10.0, 0.0, "Host")
        alice = Participant("g", "a", ParticipantStatus.APPROVED, 20.0, 0.0, 25.0, 0.0, "Alice")
        bob = Participant("g", "b", ParticipantStatus.PENDING, display_name="Bob")
        guest = Guest("0123456789", "g", "Sam", 0.0, 30.0)

        text = format_participants([bob, alice, host], "h", [guest])

        lines = text.splitlines()
        self.assertIn("Host (host): in 10.00 / out 0.00", lines)
        self.assertIn("Alice: in 20.00 / out 0.00 [requested in 25.00 / out 0.00]", lines)
        self.assertIn("Bob: pending", lines)
        self.assertIn("Sam (guest 01234567): in 0.00 / out 30.00", lines)
        self.assertEqual(lines[-1], "Total: in 30.00 / out 30.00")

    def test_empty_participants(self):
        self.assertEqual(format_participants([], "h"), "No players yet.")

    def test_payout_lists_transfers(self):
        payout = calc_payouts([PlayerEntry("@alice", 100, 0), PlayerEntry("Bob", 0, 100)])

        text = format_payout(payout)

        self.assertIn("Bob: +100.00", text)
        self.assertIn("alice: -100.00", text)
        self.assertIn("alice pays Bob 100.00", text)
        self.assertNotIn("Slippage", text)

    def test_payout_reports_slippage(self):
        payout = calc_payouts([PlayerEntry("A", 100, 0), PlayerEntry("B", 0, 90)])
        self.assertIn("Slippage +10.00", format_payout(payout))

    def test_history_standings_and_leaderboard(self):
        players = [PlayerEntry("A", 10, 0), PlayerEntry("B", 0, 10)]
        record = SessionRecord("2026-01-01T20:00:01+00:00", players, calc_payouts(players))

        history_text = format_history([record])
        self.assertIn("Session 1 (2026-01-01 20:00)", history_text)
        self.assertIn("A -> B: 10.00", history_text)
        self.assertEqual(format_history([]), "No sessions recorded yet.")

        standings_text = format_standings([Standing("b", "B", 10.0), Standing("a", "A", -10.0, True)])
        self.assertEqual(standings_text, "1. B: +10.00\n2. A (kicked): -10.00")

        board = format_leaderboard([Profile("p1", "Al", net_profit=12.5)])
        self.assertEqual(board, "1. Al: +12.50")
        self.assertEqual(format_leaderboard([Profile("p1")], lambda pid: "@x"), "1. @x: +0.00")


if __name__ == "__main__":
    unittest.main()
