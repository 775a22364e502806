from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase

from fundapp.engine import state
from fundapp.engine.leaderboard import Leaderboard
from fundapp.engine.targets import TargetStore
from fundapp.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from fundapp.identity import RealUser, SyntheticUser
from fundapp.tests.fakes import FakeTargetRepository, coordinator, directory_for, target

START = date(2026, 1, 1)
END = date(2026, 12, 31)


def build_store():
    directory = directory_for(
        coordinator("ADMIN1", role="ADMIN"),
        coordinator("STATE", parent="ADMIN1", role="STATE_COORDINATOR", state="Bihar"),
        coordinator("ZONE1", parent="STATE", role="ZONE_COORDINATOR", state="Bihar", zone="North"),
        coordinator("ZONE2", parent="STATE", role="ZONE_COORDINATOR", state="Bihar", zone="South"),
        coordinator("VOL", parent="ZONE1", role="VOLUNTEER"),
        coordinator("OTHER", role="STATE_COORDINATOR", state="Goa"),
    )
    return TargetStore(targets=FakeTargetRepository(), directory=directory)


class AssignTest(SimpleTestCase):
    def setUp(self):
        self.store = build_store()
        self.admin = SyntheticUser(tag="demo-admin")

    def test_assign_creates_pending_target(self):
        t = self.store.assign("STATE", self.admin, 200000, START, END, description="FY target")
        self.assertEqual(t.status, state.PENDING)
        self.assertEqual(t.target_value, Decimal("200000.00"))
        self.assertEqual(t.assigned_by_tag, "demo-admin")
        self.assertIsNone(t.assigned_by_id)
        self.assertEqual(t.level, "state_coord")
        self.assertEqual(t.state, "Bihar")
        self.assertEqual(self.store.get_active_target("STATE").pk, t.pk)

    def test_ancestor_may_assign(self):
        t = self.store.assign("VOL", RealUser("STATE", "STATE_COORDINATOR"), "5000", "2026-01-01", "2026-03-31")
        self.assertEqual(t.assigned_by_id, "STATE")
        self.assertEqual(t.end_date, date(2026, 3, 31))

    def test_assigner_id_is_resolved_through_directory(self):
        t = self.store.assign("VOL", "ZONE1", 1000, START, END)
        self.assertEqual(t.assigned_by_id, "ZONE1")

    def test_outsider_cannot_assign(self):
        with self.assertRaises(PermissionDenied):
            self.store.assign("VOL", "OTHER", 1000, START, END)

    def test_non_positive_value_rejected(self):
        for bad in (0, -5, "abc", None):
            with self.assertRaises(ValidationError):
                self.store.assign("STATE", self.admin, bad, START, END)

    def test_value_above_maximum_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.assign("STATE", self.admin, 100_000_001, START, END)

    def test_end_must_follow_start(self):
        with self.assertRaises(ValidationError) as ctx:
            self.store.assign("STATE", self.admin, 100, END, START)
        self.assertEqual(ctx.exception.field, "endDate")
        with self.assertRaises(ValidationError):
            self.store.assign("STATE", self.admin, 100, START, START)

    def test_unknown_assignee(self):
        with self.assertRaises(NotFoundError):
            self.store.assign("GHOST", self.admin, 100, START, END)

    def test_second_active_target_conflicts(self):
        self.store.assign("STATE", self.admin, 100, START, END)
        with self.assertRaises(ConflictError):
            self.store.assign("STATE", self.admin, 200, START, END)

    def test_new_target_allowed_after_cancel(self):
        first = self.store.assign("STATE", self.admin, 100, START, END)
        self.store.cancel(first.pk, reason="re-planned")
        second = self.store.assign("STATE", self.admin, 200, START, END)
        self.assertNotEqual(first.pk, second.pk)


class DivideTest(SimpleTestCase):
    def setUp(self):
        self.store = build_store()
        self.parent = self.store.assign("STATE", SyntheticUser(tag="demo-admin"), 100000, START, END)
        self.repo = self.store.targets

    def test_divide_creates_children(self):
        children = self.store.divide(
            self.parent.pk,
            [
                {"assignedToId": "ZONE1", "amount": 60000},
                {"assignedToId": "ZONE2", "amount": "40000", "description": "South zone"},
            ],
            acting_user="STATE",
        )
        self.assertEqual([c.assigned_to_id for c in children], ["ZONE1", "ZONE2"])
        self.assertEqual(sum(c.target_value for c in children), Decimal("100000"))
        for child in children:
            self.assertEqual(child.parent_target_id, self.parent.pk)
            self.assertEqual(child.assigned_by_id, "STATE")
            self.assertEqual(child.start_date, START)
            self.assertEqual(child.end_date, END)
            self.assertEqual(child.state, "Bihar")
            self.assertEqual(child.level, "zone")
            self.assertEqual(child.status, state.PENDING)
        self.assertEqual(children[1].description, "South zone")
        self.assertTrue(self.repo.stored(self.parent.pk).is_divided)
        self.assertEqual(self.store.subdivisions(self.parent.pk), [c.pk for c in children])

    def test_division_may_override_window(self):
        children = self.store.divide(
            self.parent.pk,
            [{"assignedToId": "ZONE1", "amount": 10, "startDate": "2026-02-01", "endDate": "2026-02-28"}],
        )
        self.assertEqual(children[0].start_date, date(2026, 2, 1))
        self.assertEqual(children[0].end_date, date(2026, 2, 28))

    def test_children_take_the_assignee_region(self):
        children = self.store.divide(
            self.parent.pk,
            [{"assignedToId": "ZONE1", "amount": 60000}, {"assignedToId": "ZONE2", "amount": 40000}],
        )
        self.assertEqual([c.zone for c in children], ["North", "South"])

        board = Leaderboard(targets=self.repo, directory=self.store.directory)
        entries = board.rank("region", region={"zone": "North"})
        self.assertEqual([e["userId"] for e in entries], ["ZONE1"])

    def test_division_may_override_region(self):
        children = self.store.divide(
            self.parent.pk,
            [{"assignedToId": "ZONE1", "amount": 10, "region": {"district": "Patna"}}],
        )
        self.assertEqual(children[0].zone, "North")
        self.assertEqual(children[0].district, "Patna")

    def test_unknown_region_field_names_index(self):
        with self.assertRaises(ValidationError) as ctx:
            self.store.divide(
                self.parent.pk,
                [{"assignedToId": "ZONE1", "amount": 10}, {"assignedToId": "ZONE2", "amount": 10, "region": {"planet": "Mars"}}],
            )
        self.assertEqual(ctx.exception.index, 1)
        self.assertEqual(self.store.subdivisions(self.parent.pk), [])

    def test_sum_above_parent_rejected_without_writes(self):
        before = dict(self.repo.rows)
        with self.assertRaises(ValidationError) as ctx:
            self.store.divide(
                self.parent.pk,
                [
                    {"assignedToId": "ZONE1", "amount": 60000},
                    {"assignedToId": "ZONE2", "amount": 40001},
                ],
            )
        self.assertEqual(ctx.exception.details["totalDivisions"], "100001.00")
        self.assertEqual(set(self.repo.rows), set(before))
        self.assertFalse(self.repo.stored(self.parent.pk).is_divided)

    def test_non_positive_amount_names_index(self):
        with self.assertRaises(ValidationError) as ctx:
            self.store.divide(
                self.parent.pk,
                [{"assignedToId": "ZONE1", "amount": 10}, {"assignedToId": "ZONE2", "amount": 0}],
            )
        self.assertEqual(ctx.exception.index, 1)

    def test_grandchild_is_not_a_direct_report(self):
        with self.assertRaises(PermissionDenied) as ctx:
            self.store.divide(
                self.parent.pk,
                [{"assignedToId": "ZONE1", "amount": 10}, {"assignedToId": "VOL", "amount": 10}],
            )
        self.assertEqual(ctx.exception.index, 1)
        self.assertEqual(len(self.repo.rows), 1)

    def test_duplicate_assignee_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            self.store.divide(
                self.parent.pk,
                [{"assignedToId": "ZONE1", "amount": 10}, {"assignedToId": "ZONE1", "amount": 10}],
            )
        self.assertEqual(ctx.exception.index, 1)

    def test_assignee_with_active_target_conflicts(self):
        existing = self.store.assign("ZONE2", "STATE", 500, START, END)
        with self.assertRaises(ConflictError) as ctx:
            self.store.divide(
                self.parent.pk,
                [{"assignedToId": "ZONE1", "amount": 10}, {"assignedToId": "ZONE2", "amount": 10}],
            )
        self.assertEqual(ctx.exception.index, 1)
        self.assertEqual(ctx.exception.details["existingTargetId"], existing.pk)
        self.assertIsNone(self.store.get_active_target("ZONE1"))

    def test_only_owner_divides(self):
        with self.assertRaises(PermissionDenied):
            self.store.divide(self.parent.pk, [{"assignedToId": "ZONE1", "amount": 10}], acting_user="ZONE1")

    def test_divide_twice_conflicts(self):
        self.store.divide(self.parent.pk, [{"assignedToId": "ZONE1", "amount": 10}])
        with self.assertRaises(ConflictError):
            self.store.divide(self.parent.pk, [{"assignedToId": "ZONE2", "amount": 10}])

    def test_empty_divisions_rejected(self):
        with self.assertRaises(ValidationError):
            self.store.divide(self.parent.pk, [])

    def test_unknown_parent(self):
        with self.assertRaises(NotFoundError):
            self.store.divide(999, [{"assignedToId": "ZONE1", "amount": 10}])

    def test_cancelled_parent_cannot_be_divided(self):
        self.store.cancel(self.parent.pk)
        with self.assertRaises(ConflictError):
            self.store.divide(self.parent.pk, [{"assignedToId": "ZONE1", "amount": 10}])

    def test_lost_swap_rolls_back_children(self):
        self.repo.fail_cas = 1
        with self.assertRaises(ConflictError):
            self.store.divide(self.parent.pk, [{"assignedToId": "ZONE1", "amount": 10}])
        self.assertIsNone(self.store.get_active_target("ZONE1"))


class PersonalCollectionTest(SimpleTestCase):
    def setUp(self):
        self.store = build_store()
        self.repo = self.store.targets
        self.t = self.repo.create(target("VOL", 10000))

    def test_collection_moves_to_in_progress(self):
        updated = self.store.record_personal_collection(self.t.pk, 2000)
        self.assertEqual(updated.personal_collection, Decimal("2000.00"))
        self.assertEqual(updated.status, state.IN_PROGRESS)
        self.assertEqual(updated.progress_percentage, Decimal("20.00"))
        self.assertEqual(self.repo.stored(self.t.pk).version, 1)

    def test_reaching_value_completes(self):
        self.store.record_personal_collection(self.t.pk, 4000)
        updated = self.store.record_personal_collection(self.t.pk, 6000)
        self.assertEqual(updated.status, state.COMPLETED)

    def test_retries_once_after_lost_swap(self):
        self.repo.fail_cas = 1
        updated = self.store.record_personal_collection(self.t.pk, 100)
        self.assertEqual(updated.personal_collection, Decimal("100.00"))
        self.assertEqual(self.repo.cas_calls, 2)

    def test_gives_up_after_two_lost_swaps(self):
        self.repo.fail_cas = 2
        with self.assertRaises(ConflictError):
            self.store.record_personal_collection(self.t.pk, 100)
        self.assertEqual(self.repo.stored(self.t.pk).personal_collection, Decimal("0"))

    def test_cancelled_target_refuses_collection(self):
        self.store.cancel(self.t.pk)
        with self.assertRaises(ConflictError):
            self.store.record_personal_collection(self.t.pk, 100)


class CancelAndSummaryTest(SimpleTestCase):
    def setUp(self):
        self.store = build_store()

    def test_cancel_by_ancestor(self):
        t = self.store.assign("VOL", "STATE", 100, START, END)
        cancelled = self.store.cancel(t.pk, reason="moved", acting_user="ZONE1")
        self.assertEqual(cancelled.status, state.CANCELLED)
        self.assertIn("moved", cancelled.notes)

    def test_cancel_by_outsider_denied(self):
        t = self.store.assign("VOL", "STATE", 100, START, END)
        with self.assertRaises(PermissionDenied):
            self.store.cancel(t.pk, acting_user="ZONE2")

    def test_cancel_twice_conflicts(self):
        t = self.store.assign("VOL", "STATE", 100, START, END)
        self.store.cancel(t.pk)
        with self.assertRaises(ConflictError):
            self.store.cancel(t.pk)

    def test_progress_without_target(self):
        progress = self.store.target_progress("VOL")
        self.assertFalse(progress["hasActiveTarget"])
        self.assertEqual(progress["status"], "NO_TARGET")

    def test_summary_counts(self):
        t = self.store.assign("VOL", "STATE", 100, START, END)
        self.store.record_personal_collection(t.pk, 100)
        self.store.assign("VOL", "STATE", 400, START, END)
        summary = self.store.target_summary("VOL")
        self.assertEqual(summary["totalTargets"], 2)
        self.assertEqual(summary["completedTargets"], 1)
        self.assertEqual(summary["averageProgress"], Decimal("50.00"))
