from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from fundapp.engine import state


class NextStatusTest(SimpleTestCase):
    def test_first_collection_starts_progress(self):
        self.assertEqual(state.next_status(state.PENDING, Decimal("1"), Decimal("100")), state.IN_PROGRESS)

    def test_nothing_collected_stays_pending(self):
        self.assertEqual(state.next_status(state.PENDING, Decimal("0"), Decimal("100")), state.PENDING)

    def test_reaching_value_completes(self):
        self.assertEqual(state.next_status(state.PENDING, Decimal("100"), Decimal("100")), state.COMPLETED)
        self.assertEqual(state.next_status(state.IN_PROGRESS, Decimal("150"), Decimal("100")), state.COMPLETED)

    def test_completed_is_sticky(self):
        self.assertEqual(state.next_status(state.COMPLETED, Decimal("10"), Decimal("100")), state.COMPLETED)

    def test_cancelled_never_moves(self):
        self.assertEqual(state.next_status(state.CANCELLED, Decimal("500"), Decimal("100")), state.CANCELLED)

    def test_only_open_targets_can_cancel(self):
        self.assertTrue(state.can_cancel(state.PENDING))
        self.assertTrue(state.can_cancel(state.IN_PROGRESS))
        self.assertFalse(state.can_cancel(state.COMPLETED))
        self.assertFalse(state.can_cancel(state.CANCELLED))


class ProgressTest(SimpleTestCase):
    def test_zero_target_is_zero_percent(self):
        self.assertEqual(state.progress_percentage(Decimal("50"), Decimal("0")), Decimal("0"))

    def test_clamped_to_hundred(self):
        self.assertEqual(state.progress_percentage(Decimal("300"), Decimal("100")), Decimal("100.00"))

    def test_partial(self):
        self.assertEqual(state.progress_percentage(Decimal("2000"), Decimal("10000")), Decimal("20.00"))

    def test_always_within_bounds(self):
        for total, value in [("0", "1"), ("1", "3"), ("99999", "1"), ("5", "0"), ("-5", "10")]:
            pct = state.progress_percentage(Decimal(total), Decimal(value))
            self.assertGreaterEqual(pct, 0)
            self.assertLessEqual(pct, 100)


class OverdueTest(SimpleTestCase):
    def test_open_target_past_end_shows_overdue(self):
        self.assertEqual(
            state.display_status(state.IN_PROGRESS, date(2026, 1, 31), today=date(2026, 2, 1)),
            state.OVERDUE,
        )

    def test_completed_target_is_never_overdue(self):
        self.assertFalse(state.is_overdue(date(2026, 1, 31), state.COMPLETED, today=date(2026, 3, 1)))

    def test_end_date_itself_is_not_overdue(self):
        self.assertFalse(state.is_overdue(date(2026, 1, 31), state.PENDING, today=date(2026, 1, 31)))
