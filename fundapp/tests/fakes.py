# fundapp/tests/fakes.py
# ----------------------------------------------------------
# Dict-backed repositories with the same methods as the ORM ones.
# Rows are copied in and out so callers never share instances with the
# store, which keeps compare-and-swap honest.
# ----------------------------------------------------------

import copy
from contextlib import contextmanager
from datetime import date
from decimal import Decimal

from django.db import IntegrityError

from fundapp.engine import state
from fundapp.engine.hierarchy import HierarchyDirectory
from fundapp.exceptions import ConcurrencyConflict
from fundapp.models import Coordinator, Target


class FakeCoordinatorRepository:
    def __init__(self, users=()):
        self.rows = {}
        for user in users:
            self.add(user)

    def add(self, user):
        self.rows[user.pk] = user
        return user

    def get(self, user_id):
        return self.rows.get(user_id)

    def parent_id(self, user_id):
        user = self.rows.get(user_id)
        return user.parent_id if user is not None else None

    def child_ids(self, user_id):
        return sorted(pk for pk, u in self.rows.items() if u.parent_id == user_id)

    def get_many(self, user_ids):
        return {pk: self.rows[pk] for pk in user_ids if pk in self.rows}


class FakeTargetRepository:
    def __init__(self):
        self.rows = {}
        self.next_id = 1
        # number of upcoming compare_and_swap calls that should lose
        self.fail_cas = 0
        self.cas_calls = 0

    @contextmanager
    def atomic(self):
        snapshot = {pk: copy.copy(t) for pk, t in self.rows.items()}
        next_id = self.next_id
        try:
            yield
        except Exception:
            self.rows = snapshot
            self.next_id = next_id
            raise

    def _out(self, target):
        return copy.copy(target) if target is not None else None

    def get(self, target_id):
        return self._out(self.rows.get(target_id))

    def _for(self, user_id, target_type, statuses):
        found = [
            t for t in self.rows.values()
            if t.assigned_to_id == user_id and t.target_type == target_type and t.status in statuses
        ]
        return sorted(found, key=lambda t: t.pk)

    def active_for(self, user_id, target_type="DONATION_AMOUNT"):
        found = self._for(user_id, target_type, state.ACTIVE_STATUSES)
        return self._out(found[-1]) if found else None

    def active_for_users(self, user_ids, target_type="DONATION_AMOUNT"):
        result = {}
        for user_id in user_ids:
            target = self.active_for(user_id, target_type)
            if target is not None:
                result[user_id] = target
        return result

    def current_for_users(self, user_ids, target_type="DONATION_AMOUNT"):
        result = {}
        for user_id in user_ids:
            target = self.active_for(user_id, target_type)
            if target is None:
                found = self._for(user_id, target_type, (state.COMPLETED,))
                target = self._out(found[-1]) if found else None
            if target is not None:
                result[user_id] = target
        return result

    def for_user(self, user_id):
        found = [t for t in self.rows.values() if t.assigned_to_id == user_id]
        return [self._out(t) for t in sorted(found, key=lambda t: -t.pk)]

    def subdivisions_of(self, target_id):
        found = [t for t in self.rows.values() if t.parent_target_id == target_id]
        return [self._out(t) for t in sorted(found, key=lambda t: t.pk)]

    def with_status(self, statuses, user_ids=None, region=None):
        found = []
        for t in sorted(self.rows.values(), key=lambda t: t.pk):
            if t.status not in statuses:
                continue
            if user_ids is not None and t.assigned_to_id not in user_ids:
                continue
            if region and any(getattr(t, k) != v for k, v in region.items()):
                continue
            found.append(self._out(t))
        return found

    def create(self, target):
        if target.status in state.ACTIVE_STATUSES and self.active_for(
            target.assigned_to_id, target.target_type
        ):
            raise IntegrityError("uniq_active_target_per_user_type")
        target.pk = self.next_id
        target.id = self.next_id
        target.version = 0
        self.next_id += 1
        self.rows[target.pk] = copy.copy(target)
        return target

    def compare_and_swap(self, target, fields):
        self.cas_calls += 1
        stored = self.rows[target.pk]
        if self.fail_cas > 0:
            self.fail_cas -= 1
            # simulate another writer getting in first
            stored.version += 1
        if stored.version != target.version:
            raise ConcurrencyConflict(target.pk, target.version)
        for name in fields:
            setattr(stored, name, getattr(target, name))
        stored.version += 1
        target.version += 1
        return target

    # test helpers
    def put(self, target):
        """Insert a row as-is (no active-target check)."""
        if target.pk is None:
            target.pk = self.next_id
            target.id = self.next_id
            self.next_id += 1
        self.rows[target.pk] = copy.copy(target)
        return target

    def stored(self, target_id):
        return self.rows[target_id]


class FakeCommissionRepository:
    def __init__(self):
        self.rows = []
        self.next_id = 1

    @contextmanager
    def atomic(self):
        snapshot = list(self.rows)
        try:
            yield
        except Exception:
            self.rows = snapshot
            raise

    def for_donation(self, donation_id):
        return sorted(
            (r for r in self.rows if r.donation_id == donation_id),
            key=lambda r: r.position,
        )

    def create_many(self, rows):
        taken = {(r.donation_id, r.user_id) for r in self.rows}
        for row in rows:
            if (row.donation_id, row.user_id) in taken:
                raise IntegrityError("uniq_commission_per_donation_user")
            taken.add((row.donation_id, row.user_id))
            row.pk = row.id = self.next_id
            self.next_id += 1
            self.rows.append(row)
        return rows


# ----------------------------------------------------------
# Builders
# ----------------------------------------------------------
def coordinator(user_id, parent=None, role="VOLUNTEER", name=None, **region):
    return Coordinator(
        coordinator_id=user_id,
        name=name or user_id.title(),
        role=role,
        parent_id=parent,
        **region,
    )


def directory_for(*users):
    return HierarchyDirectory(users=FakeCoordinatorRepository(users))


def chain(*ids_and_roles):
    """chain(("NAT", "CENTRAL_PRESIDENT"), ("STATE", "STATE_COORDINATOR"), ...) top first."""
    users = []
    parent = None
    for user_id, role in ids_and_roles:
        users.append(coordinator(user_id, parent=parent, role=role))
        parent = user_id
    return users


def target(user_id, value, personal="0", team="0", status=state.PENDING, **extra):
    return Target(
        assigned_to_id=user_id,
        target_type=Target.DONATION_AMOUNT,
        target_value=Decimal(str(value)),
        personal_collection=Decimal(str(personal)),
        team_collection=Decimal(str(team)),
        status=status,
        start_date=extra.pop("start_date", date(2026, 1, 1)),
        end_date=extra.pop("end_date", date(2026, 12, 31)),
        **extra,
    )
