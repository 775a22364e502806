from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from fundapp.engine import state
from fundapp.roles import LEVEL_CHOICES, ROLE_CHOICES, level_for_role


# ==========================================================
# COORDINATOR (HIERARCHY NODE)
# ==========================================================
class Coordinator(models.Model):
    """
    Local projection of a user account in the coordinator tree.

    `parent` is a weak back-reference to the direct superior. Deleting a
    superior never deletes reports, and nothing stops bad data from forming
    a loop, so every walker over `parent` guards against cycles.
    """
    coordinator_id = models.CharField(max_length=50, primary_key=True)
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="coordinator",
    )
    name = models.CharField(max_length=200)
    role = models.CharField(max_length=30, choices=ROLE_CHOICES, default="VOLUNTEER")
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )
    phone = models.CharField(max_length=20, blank=True, default="")
    email = models.EmailField(blank=True, null=True)

    # Region
    state = models.CharField(max_length=100, blank=True, default="")
    zone = models.CharField(max_length=100, blank=True, default="")
    district = models.CharField(max_length=100, blank=True, default="")
    block = models.CharField(max_length=100, blank=True, default="")

    is_active = models.BooleanField(default=True)
    joined_date = models.DateField(default=timezone.localdate)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return f"{self.coordinator_id} - {self.name} ({self.role})"

    @property
    def level(self):
        return level_for_role(self.role)

    def region(self):
        return {
            "state": self.state,
            "zone": self.zone,
            "district": self.district,
            "block": self.block,
        }


# ==========================================================
# TARGET (FUNDRAISING QUOTA)
# ==========================================================
class Target(models.Model):
    PENDING = state.PENDING
    IN_PROGRESS = state.IN_PROGRESS
    COMPLETED = state.COMPLETED
    OVERDUE = state.OVERDUE
    CANCELLED = state.CANCELLED

    STATUS_CHOICES = state.STATUS_CHOICES
    ACTIVE_STATUSES = state.ACTIVE_STATUSES

    DONATION_AMOUNT = "DONATION_AMOUNT"
    TYPE_CHOICES = [
        (DONATION_AMOUNT, "Donation Amount"),
    ]

    assigned_to = models.ForeignKey(
        Coordinator, on_delete=models.CASCADE, related_name="targets"
    )
    assigned_by = models.ForeignKey(
        Coordinator,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="targets_assigned",
    )
    # Set instead of assigned_by when a synthetic principal assigned it
    assigned_by_tag = models.CharField(max_length=50, blank=True, default="")

    target_type = models.CharField(max_length=30, choices=TYPE_CHOICES, default=DONATION_AMOUNT)
    target_value = models.DecimalField(max_digits=14, decimal_places=2)
    personal_collection = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    team_collection = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    start_date = models.DateField()
    end_date = models.DateField()
    description = models.CharField(max_length=500, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    # -------------------------
    # SUBDIVISION
    # -------------------------
    parent_target = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="subdivisions",
    )
    is_divided = models.BooleanField(default=False)

    level = models.CharField(max_length=20, choices=LEVEL_CHOICES, default="volunteer")
    state = models.CharField(max_length=100, blank=True, default="")
    zone = models.CharField(max_length=100, blank=True, default="")
    district = models.CharField(max_length=100, blank=True, default="")
    block = models.CharField(max_length=100, blank=True, default="")

    # Bumped on every engine write; writes compare-and-swap on it
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["assigned_to", "status"], name="fundapp_tar_assigne_6b1f0e_idx"),
            models.Index(fields=["end_date", "status"], name="fundapp_tar_end_dat_3c2a91_idx"),
            models.Index(fields=["state", "district"], name="fundapp_tar_state_8d4e27_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["assigned_to", "target_type"],
                condition=Q(status__in=["PENDING", "IN_PROGRESS"]),
                name="uniq_active_target_per_user_type",
            ),
        ]

    def __str__(self):
        return f"Target #{self.pk} {self.assigned_to_id} {self.target_value} ({self.status})"

    # -------------------------
    # DERIVED VALUES
    # -------------------------
    @property
    def total_collection(self):
        return (self.personal_collection or Decimal("0")) + (self.team_collection or Decimal("0"))

    @property
    def progress_percentage(self):
        return state.progress_percentage(self.total_collection, self.target_value)

    @property
    def remaining_amount(self):
        return max(Decimal("0"), self.target_value - self.total_collection)

    @property
    def days_remaining(self):
        return (self.end_date - timezone.localdate()).days

    @property
    def is_overdue(self):
        return state.is_overdue(self.end_date, self.status, today=timezone.localdate())

    @property
    def display_status(self):
        return state.display_status(self.status, self.end_date, today=timezone.localdate())

    @property
    def is_active(self):
        return self.status in self.ACTIVE_STATUSES

    def region(self):
        return {
            "state": self.state,
            "zone": self.zone,
            "district": self.district,
            "block": self.block,
        }

    def subdivision_ids(self):
        return list(
            self.subdivisions.order_by("created_at", "id").values_list("id", flat=True)
        )

    def as_dict(self):
        return {
            "id": self.pk,
            "assigned_to": self.assigned_to_id,
            "assigned_by": self.assigned_by_id or self.assigned_by_tag or None,
            "target_type": self.target_type,
            "target_value": str(self.target_value),
            "personal_collection": str(self.personal_collection),
            "team_collection": str(self.team_collection),
            "total_collection": str(self.total_collection),
            "progress_percentage": str(self.progress_percentage),
            "remaining_amount": str(self.remaining_amount),
            "status": self.status,
            "display_status": self.display_status,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "description": self.description,
            "parent_target": self.parent_target_id,
            "is_divided": self.is_divided,
            "level": self.level,
            "region": self.region(),
            "version": self.version,
        }


# ==========================================================
# COLLECTION TRANSACTION
# ==========================================================
class CollectionTransaction(models.Model):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"

    STATUS_CHOICES = [
        (PENDING, "Pending"),
        (VERIFIED, "Verified"),
        (REJECTED, "Rejected"),
    ]

    PAYMENT_MODES = [
        ("cash", "Cash"),
        ("online", "Online"),
        ("cheque", "Cheque"),
        ("upi", "UPI"),
        ("bank_transfer", "Bank Transfer"),
        ("other", "Other"),
    ]

    user = models.ForeignKey(Coordinator, on_delete=models.CASCADE, related_name="collections")
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    payment_mode = models.CharField(max_length=20, choices=PAYMENT_MODES, default="cash")
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=PENDING)
    target = models.ForeignKey(
        Target,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="collections",
    )

    # Donor meta
    donor_name = models.CharField(max_length=200, blank=True, default="")
    donor_phone = models.CharField(max_length=20, blank=True, default="")
    donor_email = models.EmailField(blank=True, null=True)
    reference_number = models.CharField(max_length=100, blank=True, default="")
    notes = models.TextField(blank=True, default="")

    verified_by = models.ForeignKey(
        Coordinator,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="verified_collections",
    )
    verified_by_tag = models.CharField(max_length=50, blank=True, default="")
    verified_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["user", "status"], name="fundapp_col_user_id_5a7c13_idx"),
        ]

    def __str__(self):
        return f"{self.user_id} - {self.amount} ({self.status})"

    def as_dict(self):
        return {
            "id": self.pk,
            "user": self.user_id,
            "amount": str(self.amount),
            "payment_mode": self.payment_mode,
            "status": self.status,
            "target": self.target_id,
            "donor_name": self.donor_name,
            "verified_by": self.verified_by_id or self.verified_by_tag or None,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "rejection_reason": self.rejection_reason,
        }


# ==========================================================
# RECONCILE LOCK (ONE ROW PER RUN DATE)
# ==========================================================
class ReconcileLock(models.Model):
    run_date = models.DateField(unique=True)
    is_running = models.BooleanField(default=False)
    started_at = models.DateTimeField(null=True, blank=True)
    finished_at = models.DateTimeField(null=True, blank=True)
    targets_checked = models.IntegerField(default=0)

    def __str__(self):
        return f"Reconcile {self.run_date} (running={self.is_running})"
