from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


ROLE_CHOICES = [
    ("ADMIN", "Administrator"),
    ("CENTRAL_PRESIDENT", "Central President"),
    ("STATE_PRESIDENT", "State President"),
    ("STATE_COORDINATOR", "State Coordinator"),
    ("ZONE_COORDINATOR", "Zone Coordinator"),
    ("DISTRICT_PRESIDENT", "District President"),
    ("DISTRICT_COORDINATOR", "District Coordinator"),
    ("BLOCK_COORDINATOR", "Block Coordinator"),
    ("NODAL_OFFICER", "Nodal Officer"),
    ("PRERAK", "Prerak"),
    ("PRERNA_SAKHI", "Prerna Sakhi"),
    ("VOLUNTEER", "Volunteer"),
]

LEVEL_CHOICES = [
    ("national", "National"),
    ("state", "State"),
    ("state_coord", "State Coord"),
    ("zone", "Zone"),
    ("district_pres", "District Pres"),
    ("district_coord", "District Coord"),
    ("block", "Block"),
    ("nodal", "Nodal"),
    ("prerak", "Prerak"),
    ("prerna", "Prerna"),
    ("volunteer", "Volunteer"),
]

STATUS_CHOICES = [
    ("PENDING", "Pending"),
    ("IN_PROGRESS", "In Progress"),
    ("COMPLETED", "Completed"),
    ("OVERDUE", "Overdue"),
    ("CANCELLED", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Coordinator",
            fields=[
                ("coordinator_id", models.CharField(max_length=50, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("role", models.CharField(choices=ROLE_CHOICES, default="VOLUNTEER", max_length=30)),
                ("phone", models.CharField(blank=True, default="", max_length=20)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                ("state", models.CharField(blank=True, default="", max_length=100)),
                ("zone", models.CharField(blank=True, default="", max_length=100)),
                ("district", models.CharField(blank=True, default="", max_length=100)),
                ("block", models.CharField(blank=True, default="", max_length=100)),
                ("is_active", models.BooleanField(default=True)),
                ("joined_date", models.DateField(default=django.utils.timezone.localdate)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "parent",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="children",
                        to="fundapp.coordinator",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="coordinator",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="Target",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("assigned_by_tag", models.CharField(blank=True, default="", max_length=50)),
                (
                    "target_type",
                    models.CharField(
                        choices=[("DONATION_AMOUNT", "Donation Amount")],
                        default="DONATION_AMOUNT",
                        max_length=30,
                    ),
                ),
                ("target_value", models.DecimalField(decimal_places=2, max_digits=14)),
                ("personal_collection", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("team_collection", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                ("status", models.CharField(choices=STATUS_CHOICES, default="PENDING", max_length=20)),
                ("start_date", models.DateField()),
                ("end_date", models.DateField()),
                ("description", models.CharField(blank=True, default="", max_length=500)),
                ("notes", models.TextField(blank=True, default="")),
                ("is_divided", models.BooleanField(default=False)),
                ("level", models.CharField(choices=LEVEL_CHOICES, default="volunteer", max_length=20)),
                ("state", models.CharField(blank=True, default="", max_length=100)),
                ("zone", models.CharField(blank=True, default="", max_length=100)),
                ("district", models.CharField(blank=True, default="", max_length=100)),
                ("block", models.CharField(blank=True, default="", max_length=100)),
                ("version", models.PositiveIntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "assigned_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="targets_assigned",
                        to="fundapp.coordinator",
                    ),
                ),
                (
                    "assigned_to",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="targets",
                        to="fundapp.coordinator",
                    ),
                ),
                (
                    "parent_target",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="subdivisions",
                        to="fundapp.target",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["assigned_to", "status"], name="fundapp_tar_assigne_6b1f0e_idx"),
                    models.Index(fields=["end_date", "status"], name="fundapp_tar_end_dat_3c2a91_idx"),
                    models.Index(fields=["state", "district"], name="fundapp_tar_state_8d4e27_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["PENDING", "IN_PROGRESS"])),
                        fields=("assigned_to", "target_type"),
                        name="uniq_active_target_per_user_type",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CollectionTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "payment_mode",
                    models.CharField(
                        choices=[
                            ("cash", "Cash"),
                            ("online", "Online"),
                            ("cheque", "Cheque"),
                            ("upi", "UPI"),
                            ("bank_transfer", "Bank Transfer"),
                            ("other", "Other"),
                        ],
                        default="cash",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("verified", "Verified"), ("rejected", "Rejected")],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("donor_name", models.CharField(blank=True, default="", max_length=200)),
                ("donor_phone", models.CharField(blank=True, default="", max_length=20)),
                ("donor_email", models.EmailField(blank=True, max_length=254, null=True)),
                ("reference_number", models.CharField(blank=True, default="", max_length=100)),
                ("notes", models.TextField(blank=True, default="")),
                ("verified_by_tag", models.CharField(blank=True, default="", max_length=50)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "target",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="collections",
                        to="fundapp.target",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="collections",
                        to="fundapp.coordinator",
                    ),
                ),
                (
                    "verified_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="verified_collections",
                        to="fundapp.coordinator",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="fundapp_col_user_id_5a7c13_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="ReconcileLock",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("run_date", models.DateField(unique=True)),
                ("is_running", models.BooleanField(default=False)),
                ("started_at", models.DateTimeField(blank=True, null=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("targets_checked", models.IntegerField(default=0)),
            ],
        ),
    ]
