import unittest

from application import ledger, session
from application.sync import LedgerSnapshot, LedgerSync, LedgerView
from domain.models import Participant, ParticipantStatus

from sqlite_stores import ALICE, HOST, SqliteStoresTestCase


def _participant(pid, status=ParticipantStatus.PENDING):
    return Participant(game_id="g", participant_id=pid, status=status)


class LedgerViewTests(unittest.TestCase):
    def test_optimistic_patch_is_overlaid_until_next_snapshot(self):
        view = LedgerView()
        view.apply_snapshot(LedgerSnapshot(1, (_participant("a"),)))

        view.apply_optimistic("a", status=ParticipantStatus.APPROVED)
        self.assertEqual(view.participants()[0].status, ParticipantStatus.APPROVED)
        self.assertTrue(view.has_pending())

        # Server still says pending: the server wins.
        self.assertTrue(view.apply_snapshot(LedgerSnapshot(2, (_participant("a"),))))
        self.assertEqual(view.participants()[0].status, ParticipantStatus.PENDING)
        self.assertFalse(view.has_pending())

    def test_stale_snapshots_are_ignored(self):
        view = LedgerView()
        view.apply_snapshot(LedgerSnapshot(5, (_participant("a", ParticipantStatus.APPROVED),)))

        self.assertFalse(view.apply_snapshot(LedgerSnapshot(4, (_participant("a"),))))
        self.assertFalse(view.apply_snapshot(LedgerSnapshot(5, ())))
        self.assertEqual(view.version, 5)
        self.assertEqual(view.participants()[0].status, ParticipantStatus.APPROVED)

    def test_empty_view_before_first_snapshot(self):
        view = LedgerView()
        self.assertEqual(view.participants(), [])
        self.assertEqual(view.version, -1)

    def test_patch_does_not_mutate_snapshot(self):
        original = _participant("a")
        view = LedgerView()
        view.apply_snapshot(LedgerSnapshot(1, (original,)))

        view.apply_optimistic("a", requested_cash_in=50.0)

        self.assertEqual(view.participants()[0].requested_cash_in, 50.0)
        self.assertIsNone(original.requested_cash_in)


class LedgerSyncTests(SqliteStoresTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.game = session.create_game(self.stores, HOST)

    def test_change_events_refresh_the_view(self):
        sync = LedgerSync(self.stores, self.game.id)
        sync.start()
        self.assertEqual([p.participant_id for p in sync.view.participants()], [HOST])

        ledger.request_join(self.stores, self.game.id, ALICE)

        ids = sorted(p.participant_id for p in sync.view.participants())
        self.assertEqual(ids, sorted([HOST, ALICE]))

    def test_polling_picks_up_changes_after_unsubscribe(self):
        sync = LedgerSync(self.stores, self.game.id)
        sync.start()
        sync.stop()
        self.assertEqual(self.notifier.subscriber_count(self.game.id), 0)

        ledger.request_join(self.stores, self.game.id, ALICE)
        self.assertEqual(len(sync.view.participants()), 1)

        self.assertTrue(sync.refresh())
        self.assertEqual(len(sync.view.participants()), 2)

    def test_refresh_discards_optimistic_patches(self):
        ledger.request_join(self.stores, self.game.id, ALICE)
        sync = LedgerSync(self.stores, self.game.id)
        sync.start()

        sync.view.apply_optimistic(ALICE, status=ParticipantStatus.APPROVED)
        sync.refresh()

        alice = [p for p in sync.view.participants() if p.participant_id == ALICE][0]
        self.assertEqual(alice.status, ParticipantStatus.PENDING)


if __name__ == "__main__":
    unittest.main()
