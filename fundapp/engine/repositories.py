# fundapp/engine/repositories.py
# ----------------------------------------------------------
# Storage seams for the engines.
#
# Every engine takes its repositories in the constructor and only talks to
# storage through them. The Django ORM versions below are the defaults; the
# test suite swaps in dict-backed fakes with the same methods.
# ----------------------------------------------------------

from django.db import transaction
from django.utils import timezone

from commissions.models import CommissionLog
from fundapp.engine import state
from fundapp.exceptions import ConcurrencyConflict
from fundapp.models import CollectionTransaction, Coordinator, Target


class CoordinatorRepository:
    def get(self, user_id):
        if user_id is None:
            return None
        return Coordinator.objects.filter(pk=user_id).first()

    def parent_id(self, user_id):
        row = Coordinator.objects.filter(pk=user_id).values_list("parent_id", flat=True).first()
        return row or None

    def child_ids(self, user_id):
        return list(
            Coordinator.objects.filter(parent_id=user_id)
            .order_by("coordinator_id")
            .values_list("coordinator_id", flat=True)
        )

    def get_many(self, user_ids):
        return {c.pk: c for c in Coordinator.objects.filter(pk__in=list(user_ids))}


class TargetRepository:
    def atomic(self):
        return transaction.atomic()

    def get(self, target_id):
        return Target.objects.filter(pk=target_id).first()

    def active_for(self, user_id, target_type="DONATION_AMOUNT"):
        return (
            Target.objects.filter(
                assigned_to_id=user_id,
                target_type=target_type,
                status__in=state.ACTIVE_STATUSES,
            )
            .order_by("-created_at", "-id")
            .first()
        )

    def active_for_users(self, user_ids, target_type="DONATION_AMOUNT"):
        found = {}
        rows = Target.objects.filter(
            assigned_to_id__in=list(user_ids),
            target_type=target_type,
            status__in=state.ACTIVE_STATUSES,
        ).order_by("created_at", "id")
        for target in rows:
            # newest wins if bad data left two active rows
            found[target.assigned_to_id] = target
        return found

    def current_for_users(self, user_ids, target_type="DONATION_AMOUNT"):
        user_ids = list(user_ids)
        found = {}
        rows = Target.objects.filter(
            assigned_to_id__in=user_ids,
            target_type=target_type,
            status=state.COMPLETED,
        ).order_by("created_at", "id")
        for target in rows:
            found[target.assigned_to_id] = target
        # active rows override completed ones
        found.update(self.active_for_users(user_ids, target_type))
        return found

    def for_user(self, user_id):
        return list(Target.objects.filter(assigned_to_id=user_id).order_by("-created_at", "-id"))

    def subdivisions_of(self, target_id):
        return list(Target.objects.filter(parent_target_id=target_id).order_by("created_at", "id"))

    def with_status(self, statuses, user_ids=None, region=None):
        qs = Target.objects.filter(status__in=list(statuses))
        if user_ids is not None:
            qs = qs.filter(assigned_to_id__in=list(user_ids))
        if region:
            qs = qs.filter(**region)
        return list(qs.order_by("id"))

    def create(self, target):
        target.version = 0
        target.save(force_insert=True)
        return target

    def compare_and_swap(self, target, fields):
        """
        Write `fields` only if the stored version still matches the one the
        caller read. Bumps the version on success.
        """
        values = {name: getattr(target, name) for name in fields}
        values["version"] = target.version + 1
        values["updated_at"] = timezone.now()
        updated = Target.objects.filter(pk=target.pk, version=target.version).update(**values)
        if updated == 0:
            raise ConcurrencyConflict(target.pk, target.version)
        target.version += 1
        return target


class TransactionRepository:
    def get(self, transaction_id):
        return CollectionTransaction.objects.filter(pk=transaction_id).first()

    def create(self, txn):
        txn.save(force_insert=True)
        return txn

    def transition(self, txn, from_status, fields):
        """
        Move a transaction out of `from_status`. Returns False when another
        request already moved it.
        """
        values = {name: getattr(txn, name) for name in fields}
        values["updated_at"] = timezone.now()
        updated = CollectionTransaction.objects.filter(
            pk=txn.pk, status=from_status
        ).update(**values)
        return updated == 1


class CommissionRepository:
    def atomic(self):
        return transaction.atomic()

    def for_donation(self, donation_id):
        return list(CommissionLog.objects.filter(donation_id=donation_id).order_by("position"))

    def create_many(self, rows):
        return CommissionLog.objects.bulk_create(rows)
