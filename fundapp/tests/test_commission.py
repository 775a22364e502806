from decimal import Decimal

from django.test import SimpleTestCase, override_settings

from commissions.models import CommissionLog
from fundapp.engine.commission import CommissionEngine, commission_amount
from fundapp.exceptions import NotFoundError, ValidationError
from fundapp.tests.fakes import FakeCommissionRepository, chain, coordinator, directory_for

FIVE_LEVELS = chain(
    ("NAT", "CENTRAL_PRESIDENT"),
    ("STATE", "STATE_COORDINATOR"),
    ("ZONE", "ZONE_COORDINATOR"),
    ("DIST", "DISTRICT_COORDINATOR"),
    ("VOL", "VOLUNTEER"),
)


def engine_for(*users):
    return CommissionEngine(directory=directory_for(*users), commissions=FakeCommissionRepository())


class CommissionTierTest(SimpleTestCase):
    def test_five_level_chain(self):
        breakdown = engine_for(*FIVE_LEVELS).calculate_hierarchy_commissions("VOL", 10000)
        shares = breakdown.shares

        self.assertEqual([s.user_id for s in shares], ["VOL", "DIST", "ZONE", "STATE", "NAT"])
        self.assertEqual([s.percentage for s in shares], [Decimal(p) for p in (0, 5, 2, 2, 15)])
        self.assertEqual([s.amount for s in shares], [Decimal(a) for a in (0, 500, 200, 200, 1500)])
        self.assertEqual(
            [s.hierarchy_level for s in shares],
            ["self", "parent", "ancestor", "ancestor", "top"],
        )
        self.assertEqual(breakdown.total_commission, Decimal("2400"))
        self.assertEqual(breakdown.organization_fund, Decimal("7600"))
        self.assertEqual(shares[1].role, "DISTRICT_COORDINATOR")

    def test_top_user_alone(self):
        breakdown = engine_for(coordinator("NAT", role="CENTRAL_PRESIDENT")).calculate_hierarchy_commissions("NAT", 10000)
        self.assertEqual(len(breakdown.shares), 1)
        self.assertEqual(breakdown.shares[0].percentage, Decimal("0"))
        self.assertEqual(breakdown.total_commission, Decimal("0"))

    def test_parent_that_is_top_gets_top_rate(self):
        breakdown = engine_for(
            coordinator("NAT", role="CENTRAL_PRESIDENT"),
            coordinator("STATE", parent="NAT", role="STATE_COORDINATOR"),
        ).calculate_hierarchy_commissions("STATE", 1000)
        self.assertEqual([s.percentage for s in breakdown.shares], [Decimal("0"), Decimal("15")])
        self.assertEqual(breakdown.shares[1].hierarchy_level, "top")
        self.assertEqual(breakdown.shares[1].amount, Decimal("150"))

    def test_three_levels(self):
        breakdown = engine_for(*chain(
            ("NAT", "CENTRAL_PRESIDENT"), ("STATE", "STATE_COORDINATOR"), ("VOL", "VOLUNTEER"),
        )).calculate_hierarchy_commissions("VOL", 1000)
        self.assertEqual([s.percentage for s in breakdown.shares], [Decimal(p) for p in (0, 5, 15)])

    def test_cycle_terminates_without_top_tier(self):
        engine = engine_for(coordinator("A", parent="B"), coordinator("B", parent="A"))
        with self.assertLogs("fundapp.engine", level="WARNING"):
            breakdown = engine.calculate_hierarchy_commissions("A", 1000)
        self.assertEqual([s.user_id for s in breakdown.shares], ["A", "B"])
        self.assertEqual(breakdown.shares[1].percentage, Decimal("5"))
        self.assertTrue(breakdown.truncated)

    def test_depth_truncation_pays_no_top(self):
        users = [coordinator("U0")]
        for i in range(1, 25):
            users.append(coordinator(f"U{i}", parent=f"U{i - 1}"))
        breakdown = engine_for(*users).calculate_hierarchy_commissions("U24", 100)
        self.assertEqual(len(breakdown.shares), 21)
        self.assertNotIn("top", [s.hierarchy_level for s in breakdown.shares])

    def test_rounding_to_whole_units(self):
        self.assertEqual(commission_amount(Decimal("333"), Decimal("5")), Decimal("17.00"))
        self.assertEqual(commission_amount(Decimal("10"), Decimal("15")), Decimal("2.00"))
        self.assertEqual(commission_amount(Decimal("30"), Decimal("5")), Decimal("2.00"))

    @override_settings(FUNDRAISING={"COMMISSION_RATES": {"parent": 10}})
    def test_rates_come_from_settings(self):
        breakdown = engine_for(*FIVE_LEVELS).calculate_hierarchy_commissions("VOL", 10000)
        self.assertEqual(breakdown.shares[1].amount, Decimal("1000"))
        self.assertEqual(breakdown.shares[2].amount, Decimal("200"))

    def test_invalid_amount(self):
        with self.assertRaises(ValidationError):
            engine_for(*FIVE_LEVELS).calculate_hierarchy_commissions("VOL", 0)


class ProcessDonationTest(SimpleTestCase):
    def setUp(self):
        self.engine = engine_for(*FIVE_LEVELS)

    def test_writes_pending_rows_in_order(self):
        rows = self.engine.process_donation("DON-1", "VOL", "10000")
        self.assertEqual(len(rows), 5)
        self.assertEqual([r.position for r in rows], [0, 1, 2, 3, 4])
        self.assertTrue(all(r.status == CommissionLog.PENDING for r in rows))
        self.assertEqual(rows[4].commission_amount, Decimal("1500"))
        self.assertEqual(rows[0].donation_amount, Decimal("10000"))

    def test_second_call_returns_existing_rows(self):
        first = self.engine.process_donation("DON-1", "VOL", 10000)
        second = self.engine.process_donation("DON-1", "VOL", 10000)
        self.assertEqual([r.pk for r in first], [r.pk for r in second])
        self.assertEqual(len(self.engine.commissions.rows), 5)

    def test_query_by_donation(self):
        self.engine.process_donation("DON-2", "ZONE", 1000)
        rows = self.engine.commissions_for_donation("DON-2")
        self.assertEqual([r.user_id for r in rows], ["ZONE", "STATE", "NAT"])

    def test_unknown_donation(self):
        with self.assertRaises(NotFoundError):
            self.engine.commissions_for_donation("NOPE")

    def test_unknown_user(self):
        with self.assertRaises(NotFoundError):
            self.engine.process_donation("DON-3", "GHOST", 100)

    def test_donation_id_required(self):
        with self.assertRaises(ValidationError):
            self.engine.process_donation("", "VOL", 100)
