# fundapp/services.py
"""
Collection intake and verification.

A collection is recorded as `pending` against the collector's active
target. Verification credits the target's personal collection in the same
database transaction and, once that commits, propagates the change up the
hierarchy. Propagation is best-effort: its failures are logged and never
undo the verification.
"""

import logging

from django.db import transaction
from django.utils import timezone

from fundapp import conf
from fundapp.engine.hierarchy import HierarchyDirectory
from fundapp.engine.propagation import PropagationEngine
from fundapp.engine.repositories import TransactionRepository
from fundapp.engine.targets import TargetStore
from fundapp.exceptions import ConflictError, NotFoundError, PermissionDenied, ValidationError
from fundapp.identity import RealUser, SyntheticUser, is_top_admin, resolve_user_ref
from fundapp.models import CollectionTransaction
from fundapp.tasks import propagate_collection_task
from fundapp.utils import parse_amount

logger = logging.getLogger(__name__)

PAYMENT_MODES = {code for code, _ in CollectionTransaction.PAYMENT_MODES}
DONOR_FIELDS = ("donor_name", "donor_phone", "donor_email", "reference_number", "notes")
DONOR_ALIASES = {
    "donorName": "donor_name",
    "donorPhone": "donor_phone",
    "donorEmail": "donor_email",
    "referenceNumber": "reference_number",
}


def _donor_fields(donor_meta):
    if not donor_meta:
        return {}
    if not isinstance(donor_meta, dict):
        raise ValidationError("donorMeta must be an object", field="donorMeta")
    cleaned = {}
    for key, value in donor_meta.items():
        name = DONOR_ALIASES.get(key, key)
        if name in DONOR_FIELDS and value is not None:
            cleaned[name] = str(value)
    return cleaned


# ============================================================
# RECORD
# ============================================================
def record_collection(user_id, amount, payment_mode="cash", donor_meta=None, directory=None):
    directory = directory if directory is not None else HierarchyDirectory()
    amount = parse_amount(amount)
    payment_mode = payment_mode or "cash"
    if payment_mode not in PAYMENT_MODES:
        raise ValidationError(f"Unknown payment mode {payment_mode!r}", field="paymentMode")

    collector = directory.get_user(user_id)
    if collector is None:
        raise NotFoundError(f"User {user_id} not found", field="userId")

    target = TargetStore(directory=directory).get_active_target(collector.pk)
    txn = CollectionTransaction(
        user_id=collector.pk,
        amount=amount,
        payment_mode=payment_mode,
        status=CollectionTransaction.PENDING,
        target_id=target.pk if target else None,
        **_donor_fields(donor_meta),
    )
    TransactionRepository().create(txn)

    logger.info(
        "Collection %s recorded by %s: %s (%s), target %s",
        txn.pk, collector.pk, amount, payment_mode, txn.target_id,
    )
    return txn


# ============================================================
# VERIFY / REJECT
# ============================================================
def _pending_for_review(transactions, transaction_id, verifier, directory):
    txn = transactions.get(transaction_id)
    if txn is None:
        raise NotFoundError(f"Transaction {transaction_id} not found", field="transactionId")

    ref = resolve_user_ref(verifier, directory=directory)
    if ref is None:
        raise PermissionDenied("Verifier is required")
    if not is_top_admin(ref):
        if isinstance(ref, SyntheticUser) or directory.get_parent(txn.user_id) != ref.id:
            raise PermissionDenied("Only the collector's direct superior can review this collection")

    if txn.status != CollectionTransaction.PENDING:
        raise ConflictError(f"Transaction {transaction_id} is already {txn.status}")
    return txn, ref


def _stamp_reviewer(txn, ref):
    txn.verified_at = timezone.now()
    if isinstance(ref, RealUser):
        txn.verified_by_id = ref.id
    else:
        txn.verified_by_tag = ref.tag


def verify_collection(transaction_id, verifier, directory=None):
    directory = directory if directory is not None else HierarchyDirectory()
    transactions = TransactionRepository()

    with transaction.atomic():
        txn, ref = _pending_for_review(transactions, transaction_id, verifier, directory)
        txn.status = CollectionTransaction.VERIFIED
        _stamp_reviewer(txn, ref)
        moved = transactions.transition(
            txn,
            CollectionTransaction.PENDING,
            ["status", "verified_at", "verified_by_id", "verified_by_tag"],
        )
        if not moved:
            raise ConflictError(f"Transaction {transaction_id} was reviewed meanwhile")

        if txn.target_id:
            TargetStore(directory=directory).record_personal_collection(txn.target_id, txn.amount)
            user_id = txn.user_id
            transaction.on_commit(lambda: schedule_propagation(user_id))

    logger.info("Collection %s verified by %s", txn.pk, ref.label)
    return txn


def reject_collection(transaction_id, verifier, reason, directory=None):
    directory = directory if directory is not None else HierarchyDirectory()
    if not reason or not str(reason).strip():
        raise ValidationError("A rejection reason is required", field="reason")
    transactions = TransactionRepository()

    with transaction.atomic():
        txn, ref = _pending_for_review(transactions, transaction_id, verifier, directory)
        txn.status = CollectionTransaction.REJECTED
        txn.rejection_reason = str(reason).strip()
        _stamp_reviewer(txn, ref)
        moved = transactions.transition(
            txn,
            CollectionTransaction.PENDING,
            ["status", "rejection_reason", "verified_at", "verified_by_id", "verified_by_tag"],
        )
        if not moved:
            raise ConflictError(f"Transaction {transaction_id} was reviewed meanwhile")

    logger.info("Collection %s rejected by %s", txn.pk, ref.label)
    return txn


# ============================================================
# PROPAGATION HAND-OFF
# ============================================================
def propagate_collection(user_id):
    report = PropagationEngine().propagate(user_id)
    if not report.ok:
        logger.warning(
            "Propagation from %s stopped at %s (%s); next event will repair it",
            user_id, report.stopped_at, report.stop_reason,
        )
    return report


def schedule_propagation(user_id):
    if conf.propagate_async():
        propagate_collection_task.delay(user_id)
        return None
    return propagate_collection(user_id)
