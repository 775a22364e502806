# commissions/models.py
from __future__ import annotations

from decimal import Decimal

from django.db import models


# -----------------------------
# Helpers
# -----------------------------
def money(v) -> Decimal:
    return (Decimal(v or 0)).quantize(Decimal("0.01"))


# -----------------------------
# Commission ledger
# -----------------------------
class CommissionLog(models.Model):
    """
    One row per participant in the credited user's ancestor chain for a
    donation (the credited user included). Amounts and percentages never
    change after creation; only the status / payment fields move.
    """
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (PAID, "Paid"),
        (FAILED, "Failed"),
        (CANCELLED, "Cancelled"),
    ]

    LEVEL_SELF = "self"
    LEVEL_PARENT = "parent"
    LEVEL_ANCESTOR = "ancestor"
    LEVEL_TOP = "top"

    LEVEL_CHOICES = [
        (LEVEL_SELF, "Self"),
        (LEVEL_PARENT, "Parent"),
        (LEVEL_ANCESTOR, "Ancestor"),
        (LEVEL_TOP, "Top"),
    ]

    PAYMENT_METHODS = [
        ("bank_transfer", "Bank Transfer"),
        ("upi", "UPI"),
        ("cash", "Cash"),
        ("cheque", "Cheque"),
        ("other", "Other"),
    ]

    # External donation reference (payment intake owns the donation record)
    donation_id = models.CharField(max_length=100, db_index=True)
    donation_amount = models.DecimalField(max_digits=14, decimal_places=2)

    user = models.ForeignKey(
        "fundapp.Coordinator", on_delete=models.PROTECT, related_name="commission_logs"
    )
    user_name = models.CharField(max_length=200, blank=True, default="")
    user_role = models.CharField(max_length=30)

    # 0 = credited user, 1 = parent, ... outward
    position = models.PositiveSmallIntegerField(default=0)
    hierarchy_level = models.CharField(max_length=20, choices=LEVEL_CHOICES)

    commission_percentage = models.DecimalField(max_digits=5, decimal_places=2)
    commission_amount = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    paid_at = models.DateTimeField(null=True, blank=True)
    payment_reference = models.CharField(max_length=100, blank=True, default="")
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHODS, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["donation_id", "position"]
        constraints = [
            models.UniqueConstraint(
                fields=["donation_id", "user"],
                name="uniq_commission_per_donation_user",
            )
        ]
        indexes = [
            models.Index(fields=["user", "status"], name="commissions_user_id_9e2b54_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.donation_id} -> {self.user_id} {self.commission_percentage}% = {self.commission_amount}"

    def as_dict(self) -> dict:
        return {
            "id": self.pk,
            "donation_id": self.donation_id,
            "user": self.user_id,
            "user_name": self.user_name,
            "user_role": self.user_role,
            "position": self.position,
            "hierarchy_level": self.hierarchy_level,
            "commission_percentage": str(self.commission_percentage),
            "commission_amount": str(self.commission_amount),
            "status": self.status,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
        }
