import unittest

from domain.models import ChangeEvent, ChangeKind
from infrastructure.notifications import InProcessChangeNotifier


class InProcessChangeNotifierTests(unittest.TestCase):
    def setUp(self) -> None:
        self.notifier = InProcessChangeNotifier()

    def test_events_reach_only_subscribers_of_that_game(self):
        seen_a, seen_b = [], []
        self.notifier.subscribe("a", seen_a.append)
        self.notifier.subscribe("b", seen_b.append)

        self.notifier.publish(ChangeEvent("a", ChangeKind.GAME))

        self.assertEqual(len(seen_a), 1)
        self.assertEqual(seen_b, [])

    def test_unsubscribe_stops_delivery(self):
        seen = []
        unsubscribe = self.notifier.subscribe("a", seen.append)

        unsubscribe()
        unsubscribe()
        self.notifier.publish(ChangeEvent("a", ChangeKind.GAME))

        self.assertEqual(seen, [])
        self.assertEqual(self.notifier.subscriber_count("a"), 0)

    def test_failing_subscriber_does_not_block_others(self):
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        self.notifier.subscribe("a", broken)
        self.notifier.subscribe("a", seen.append)

        with self.assertLogs("infrastructure.notifications", level="ERROR"):
            self.notifier.publish(ChangeEvent("a", ChangeKind.PARTICIPANT, "p1"))

        self.assertEqual([e.subject_id for e in seen], ["p1"])


if __name__ == "__main__":
    unittest.main()
