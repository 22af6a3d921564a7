# Initial schema for the reward catalog

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("ledgerman", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Reward",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="name")),
                ("description", models.TextField(blank=True, verbose_name="description")),
                (
                    "reward_type",
                    models.CharField(
                        choices=[
                            ("voucher", "Voucher"),
                            ("product", "Product"),
                            ("experience", "Experience"),
                            ("cashback", "Cashback"),
                        ],
                        default="voucher",
                        max_length=20,
                        verbose_name="type",
                    ),
                ),
                ("value", models.BigIntegerField(blank=True, null=True, verbose_name="value")),
                ("points_required", models.PositiveIntegerField(verbose_name="points required")),
                (
                    "quantity",
                    models.PositiveIntegerField(
                        blank=True,
                        help_text="Leave empty for unlimited stock",
                        null=True,
                        verbose_name="quantity",
                    ),
                ),
                ("redeemed_count", models.PositiveIntegerField(default=0, verbose_name="redeemed")),
                ("merchant_id", models.CharField(blank=True, db_index=True, max_length=64, verbose_name="merchant")),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("exhausted", "Exhausted"), ("inactive", "Inactive")],
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("valid_until", models.DateTimeField(blank=True, null=True, verbose_name="valid until")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "reward",
                "verbose_name_plural": "rewards",
                "db_table": "ledgerman_reward",
                "ordering": ["points_required", "id"],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            ("quantity__isnull", True),
                            ("redeemed_count__lte", models.F("quantity")),
                            _connector="OR",
                        ),
                        name="ledgerman_reward_within_quantity",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RewardRedemption",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=64, verbose_name="user")),
                ("code", models.CharField(max_length=40, unique=True, verbose_name="code")),
                ("points_spent", models.PositiveIntegerField(verbose_name="points spent")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                (
                    "journal_entry",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reward_redemption",
                        to="ledgerman.journalentry",
                        verbose_name="journal entry",
                    ),
                ),
                (
                    "reward",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="redemptions",
                        to="ledgerman_rewards.reward",
                        verbose_name="reward",
                    ),
                ),
            ],
            options={
                "verbose_name": "reward redemption",
                "verbose_name_plural": "reward redemptions",
                "db_table": "ledgerman_reward_redemption",
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
