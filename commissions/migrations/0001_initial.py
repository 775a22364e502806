from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("fundapp", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="CommissionLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("donation_id", models.CharField(db_index=True, max_length=100)),
                ("donation_amount", models.DecimalField(decimal_places=2, max_digits=14)),
                ("user_name", models.CharField(blank=True, default="", max_length=200)),
                ("user_role", models.CharField(max_length=30)),
                ("position", models.PositiveSmallIntegerField(default=0)),
                (
                    "hierarchy_level",
                    models.CharField(
                        choices=[
                            ("self", "Self"),
                            ("parent", "Parent"),
                            ("ancestor", "Ancestor"),
                            ("top", "Top"),
                        ],
                        max_length=20,
                    ),
                ),
                ("commission_percentage", models.DecimalField(decimal_places=2, max_digits=5)),
                ("commission_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=14)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PAID", "Paid"),
                            ("FAILED", "Failed"),
                            ("CANCELLED", "Cancelled"),
                        ],
                        default="PENDING",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("payment_reference", models.CharField(blank=True, default="", max_length=100)),
                (
                    "payment_method",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("bank_transfer", "Bank Transfer"),
                            ("upi", "UPI"),
                            ("cash", "Cash"),
                            ("cheque", "Cheque"),
                            ("other", "Other"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("notes", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="commission_logs",
                        to="fundapp.coordinator",
                    ),
                ),
            ],
            options={
                "ordering": ["donation_id", "position"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="commissions_user_id_9e2b54_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("donation_id", "user"),
                        name="uniq_commission_per_donation_user",
                    ),
                ],
            },
        ),
    ]
