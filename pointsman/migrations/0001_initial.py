# Generated migration for the points ledger, reward catalog and vouchers

from decimal import Decimal

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LoyaltyProgram",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(default="Loyalty Program", max_length=100, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "points_per_dollar",
                    models.DecimalField(decimal_places=2, default=Decimal("1.00"), max_digits=10, verbose_name="points per dollar"),
                ),
                (
                    "bonus_points_threshold",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("50.00"),
                        help_text="Order amount at or above which the multiplier applies",
                        max_digits=10,
                        verbose_name="bonus threshold",
                    ),
                ),
                (
                    "bonus_points_multiplier",
                    models.DecimalField(decimal_places=2, default=Decimal("1.50"), max_digits=10, verbose_name="bonus multiplier"),
                ),
                ("points_for_signup", models.PositiveIntegerField(default=100, verbose_name="signup points")),
                ("points_for_first_order", models.PositiveIntegerField(default=50, verbose_name="first order points")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "loyalty program",
                "verbose_name_plural": "loyalty programs",
                "db_table": "pointsman_program",
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("is_active", True)),
                        fields=("is_active",),
                        name="pointsman_single_active_program",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "user_id",
                    models.CharField(help_text="External user identifier", max_length=64, unique=True, verbose_name="user"),
                ),
                ("points_balance", models.IntegerField(default=0, verbose_name="points balance")),
                (
                    "total_earned",
                    models.IntegerField(default=0, help_text="Lifetime points credited (never decreases)", verbose_name="total earned"),
                ),
                (
                    "total_redeemed",
                    models.IntegerField(default=0, help_text="Lifetime points debited (never decreases)", verbose_name="total redeemed"),
                ),
                ("last_earned_at", models.DateTimeField(blank=True, null=True, verbose_name="last earned at")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "loyalty account",
                "verbose_name_plural": "loyalty accounts",
                "db_table": "pointsman_account",
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("points_balance__gte", 0)),
                        name="pointsman_account_balance_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("total_earned__gte", 0), ("total_redeemed__gte", 0)),
                        name="pointsman_account_totals_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("points_balance", models.F("total_earned") - models.F("total_redeemed"))
                        ),
                        name="pointsman_account_balance_matches_totals",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RewardDefinition",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                ("points_required", models.PositiveIntegerField(verbose_name="points required")),
                (
                    "reward_type",
                    models.CharField(
                        choices=[
                            ("fixed", "Fixed amount"),
                            ("percentage", "Percentage"),
                            ("delivery_fee", "Delivery fee waiver"),
                        ],
                        default="fixed",
                        max_length=20,
                        verbose_name="reward type",
                    ),
                ),
                (
                    "reward_value",
                    models.DecimalField(
                        decimal_places=2,
                        default=Decimal("0.00"),
                        help_text="Amount off, percentage off, or delivery fee waived",
                        max_digits=10,
                        verbose_name="reward value",
                    ),
                ),
                (
                    "min_order_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10, verbose_name="minimum order"),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                (
                    "max_redemptions",
                    models.PositiveIntegerField(blank=True, help_text="Leave empty for unlimited", null=True, verbose_name="max redemptions"),
                ),
                ("current_redemptions", models.PositiveIntegerField(default=0, verbose_name="redemptions")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "reward",
                "verbose_name_plural": "rewards",
                "db_table": "pointsman_reward",
                "ordering": ["points_required", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("points_required__gt", 0)),
                        name="pointsman_reward_cost_positive",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            ("max_redemptions__isnull", True),
                            ("current_redemptions__lte", models.F("max_redemptions")),
                            _connector="OR",
                        ),
                        name="pointsman_reward_within_cap",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "order_id",
                    models.CharField(
                        blank=True,
                        db_index=True,
                        help_text="External order reference, when the entry comes from an order",
                        max_length=64,
                        verbose_name="order",
                    ),
                ),
                (
                    "entry_type",
                    models.CharField(
                        choices=[
                            ("earned", "Earned"),
                            ("bonus", "Bonus"),
                            ("signup", "Signup bonus"),
                            ("first_order", "First order bonus"),
                            ("redeemed", "Redeemed"),
                            ("adjustment", "Adjustment"),
                        ],
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                (
                    "points_delta",
                    models.IntegerField(help_text="Positive for credits, negative for debits", verbose_name="points"),
                ),
                ("balance_after", models.IntegerField(verbose_name="balance after")),
                ("description", models.CharField(max_length=200, verbose_name="description")),
                (
                    "order_amount",
                    models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name="order amount"),
                ),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="pointsman.loyaltyaccount",
                        verbose_name="account",
                    ),
                ),
            ],
            options={
                "verbose_name": "ledger entry",
                "verbose_name_plural": "ledger entries",
                "db_table": "pointsman_ledger_entry",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["account", "-created_at"], name="pointsman_entry_account_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("entry_type__in", ["signup", "first_order"])),
                        fields=("account", "entry_type"),
                        name="pointsman_unique_one_time_bonus",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("entry_type__in", ["earned", "first_order"]),
                            models.Q(("order_id", ""), _negated=True),
                        ),
                        fields=("order_id", "entry_type"),
                        name="pointsman_unique_order_award",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("points_delta", 0), _negated=True),
                        name="pointsman_entry_non_zero",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Voucher",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=64, verbose_name="user")),
                ("code", models.CharField(max_length=32, unique=True, verbose_name="code")),
                ("title", models.CharField(blank=True, max_length=100, verbose_name="title")),
                ("discount_amount", models.DecimalField(decimal_places=2, max_digits=10, verbose_name="discount")),
                (
                    "discount_type",
                    models.CharField(
                        choices=[
                            ("fixed", "Fixed amount"),
                            ("percentage", "Percentage"),
                            ("delivery_fee", "Delivery fee waiver"),
                        ],
                        default="fixed",
                        max_length=20,
                        verbose_name="discount type",
                    ),
                ),
                (
                    "min_order_amount",
                    models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10, verbose_name="minimum order"),
                ),
                ("points_spent", models.PositiveIntegerField(verbose_name="points spent")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("used", "Used"), ("expired", "Expired")],
                        default="active",
                        max_length=10,
                        verbose_name="status",
                    ),
                ),
                ("expires_at", models.DateTimeField(verbose_name="expires at")),
                ("applied_order_id", models.CharField(blank=True, max_length=64, verbose_name="applied to order")),
                ("used_at", models.DateTimeField(blank=True, null=True, verbose_name="used at")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "reward",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="vouchers",
                        to="pointsman.rewarddefinition",
                        verbose_name="reward",
                    ),
                ),
            ],
            options={
                "verbose_name": "voucher",
                "verbose_name_plural": "vouchers",
                "db_table": "pointsman_voucher",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["user_id", "status", "expires_at"], name="pointsman_voucher_user_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("status", "used"), _negated=True),
                            ("used_at__isnull", False),
                            _connector="OR",
                        ),
                        name="pointsman_voucher_used_has_timestamp",
                    ),
                ],
            },
        ),
    ]
