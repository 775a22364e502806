# commissions/services.py
from __future__ import annotations

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from commissions.models import CommissionLog, money
from fundapp.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (CommissionLog.PENDING, CommissionLog.FAILED)


def _locked(commission_id: int) -> CommissionLog:
    log = CommissionLog.objects.select_for_update().filter(pk=commission_id).first()
    if log is None:
        raise NotFoundError(f"Commission {commission_id} not found", field="commissionId")
    return log


def _in_window(qs, start=None, end=None):
    if start:
        qs = qs.filter(created_at__date__gte=start)
    if end:
        qs = qs.filter(created_at__date__lte=end)
    return qs


# ============================================================
# PAYOUT STATUS
# ============================================================
def mark_paid(
    commission_id: int,
    payment_reference: str = "",
    payment_method: str = "",
    notes: str = "",
) -> CommissionLog:
    """
    PENDING / FAILED -> PAID. Amount and percentage are never touched.
    """
    with transaction.atomic():
        log = _locked(commission_id)
        if log.status not in PAYABLE_STATUSES:
            raise ConflictError(f"Commission {commission_id} is {log.status}")

        log.status = CommissionLog.PAID
        log.paid_at = timezone.now()
        log.payment_reference = payment_reference or ""
        log.payment_method = payment_method or ""
        if notes:
            log.notes = notes
        log.save(update_fields=[
            "status", "paid_at", "payment_reference", "payment_method", "notes", "updated_at",
        ])

    logger.info("Commission %s paid (%s)", commission_id, payment_reference or "no reference")
    return log


def mark_failed(commission_id: int, reason: str) -> CommissionLog:
    if not reason:
        raise ValidationError("A failure reason is required", field="reason")
    with transaction.atomic():
        log = _locked(commission_id)
        if log.status != CommissionLog.PENDING:
            raise ConflictError(f"Commission {commission_id} is {log.status}")
        log.status = CommissionLog.FAILED
        log.notes = reason
        log.save(update_fields=["status", "notes", "updated_at"])

    logger.warning("Commission %s payout failed: %s", commission_id, reason)
    return log


def cancel_for_donation(donation_id: str, reason: str = "") -> int:
    """
    Cancel every unpaid row of a refunded donation. Paid rows stay PAID.
    Returns the number of rows cancelled.
    """
    qs = CommissionLog.objects.filter(donation_id=donation_id)
    if not qs.exists():
        raise NotFoundError(f"No commissions for donation {donation_id}", field="donationId")

    with transaction.atomic():
        count = qs.filter(status__in=PAYABLE_STATUSES).update(
            status=CommissionLog.CANCELLED,
            notes=reason or "Donation cancelled",
            updated_at=timezone.now(),
        )
    logger.info("Cancelled %d commission rows for donation %s", count, donation_id)
    return count


# ============================================================
# SUMMARIES
# ============================================================
def user_commission_summary(user_id: str, start=None, end=None) -> dict:
    qs = _in_window(CommissionLog.objects.filter(user_id=user_id), start, end)
    totals = qs.aggregate(
        total=Sum("commission_amount"),
        paid=Sum("commission_amount", filter=Q(status=CommissionLog.PAID)),
        pending=Sum("commission_amount", filter=Q(status=CommissionLog.PENDING)),
        failed=Sum("commission_amount", filter=Q(status=CommissionLog.FAILED)),
        donations=Count("donation_id", distinct=True),
    )

    by_level = {}
    for row in qs.values("hierarchy_level").annotate(
        amount=Sum("commission_amount"), count=Count("id")
    ):
        by_level[row["hierarchy_level"]] = {
            "amount": money(row["amount"]),
            "count": row["count"],
        }

    return {
        "userId": user_id,
        "totalCommission": money(totals["total"]),
        "paid": money(totals["paid"]),
        "pending": money(totals["pending"]),
        "failed": money(totals["failed"]),
        "donations": totals["donations"],
        "byLevel": by_level,
    }


def organization_commission_summary(start=None, end=None) -> dict:
    """
    Totals across all donations. The organization fund is what stays after
    every non-cancelled commission row.
    """
    qs = _in_window(CommissionLog.objects.all(), start, end)

    donations = {}
    for row in qs.values("donation_id", "donation_amount").distinct():
        donations[row["donation_id"]] = row["donation_amount"]
    total_donations = sum(donations.values(), Decimal("0"))

    live = qs.exclude(status=CommissionLog.CANCELLED)
    totals = live.aggregate(
        total=Sum("commission_amount"),
        paid=Sum("commission_amount", filter=Q(status=CommissionLog.PAID)),
        pending=Sum("commission_amount", filter=Q(status=CommissionLog.PENDING)),
    )
    total_commission = money(totals["total"])

    return {
        "donationCount": len(donations),
        "totalDonations": money(total_donations),
        "totalCommission": total_commission,
        "paid": money(totals["paid"]),
        "pending": money(totals["pending"]),
        "organizationFund": money(total_donations - total_commission),
        "recipients": live.values("user_id").distinct().count(),
    }
