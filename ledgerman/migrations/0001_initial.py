# Initial schema for ledger accounts, journal entries and audit logs

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LedgerAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_id", models.CharField(db_index=True, max_length=64, verbose_name="user")),
                (
                    "kind",
                    models.CharField(
                        choices=[("currency", "Currency wallet"), ("points", "Points wallet")],
                        max_length=20,
                        verbose_name="kind",
                    ),
                ),
                (
                    "balance",
                    models.BigIntegerField(
                        default=0,
                        help_text="Available balance in minor units (or points)",
                        verbose_name="balance",
                    ),
                ),
                (
                    "lifetime_inflow",
                    models.BigIntegerField(
                        default=0,
                        help_text="Sum of all credits (never decreases)",
                        verbose_name="lifetime inflow",
                    ),
                ),
                (
                    "tier",
                    models.CharField(
                        choices=[
                            ("bronze", "Bronze"),
                            ("silver", "Silver"),
                            ("gold", "Gold"),
                            ("platinum", "Platinum"),
                            ("diamond", "Diamond"),
                        ],
                        default="bronze",
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                ("tier_points", models.BigIntegerField(default=0, verbose_name="tier points")),
                ("version", models.PositiveIntegerField(default=0, verbose_name="version")),
                ("is_active", models.BooleanField(default=True, verbose_name="active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="updated at")),
            ],
            options={
                "verbose_name": "ledger account",
                "verbose_name_plural": "ledger accounts",
                "db_table": "ledgerman_account",
                "constraints": [
                    models.UniqueConstraint(fields=("user_id", "kind"), name="ledgerman_unique_account_per_kind"),
                    models.CheckConstraint(
                        condition=models.Q(("balance__gte", 0)),
                        name="ledgerman_balance_non_negative",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("tier_points__gte", 0)),
                        name="ledgerman_tier_points_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="JournalEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "delta",
                    models.BigIntegerField(
                        help_text="Positive for credits, negative for debits",
                        verbose_name="delta",
                    ),
                ),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("earn", "Earn"),
                            ("redeem", "Redeem"),
                            ("expire", "Expire"),
                            ("adjust", "Adjustment"),
                            ("bonus", "Bonus"),
                            ("payment", "Payment"),
                            ("refund", "Refund"),
                            ("topup", "Top-up"),
                        ],
                        max_length=20,
                        verbose_name="kind",
                    ),
                ),
                ("balance_after", models.BigIntegerField(verbose_name="balance after")),
                ("source", models.CharField(blank=True, max_length=50, verbose_name="source")),
                (
                    "reference",
                    models.CharField(
                        blank=True,
                        help_text="External id used for idempotency (ex: tx-123)",
                        max_length=200,
                        verbose_name="reference",
                    ),
                ),
                ("description", models.CharField(blank=True, max_length=255, verbose_name="description")),
                ("expires_at", models.DateTimeField(blank=True, null=True, verbose_name="expires at")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                (
                    "account",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="entries",
                        to="ledgerman.ledgeraccount",
                        verbose_name="account",
                    ),
                ),
            ],
            options={
                "verbose_name": "journal entry",
                "verbose_name_plural": "journal entries",
                "db_table": "ledgerman_journal_entry",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["account", "-created_at"], name="ledgerman_entry_account_idx"),
                    models.Index(fields=["kind", "created_at"], name="ledgerman_entry_kind_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("reference", ""), _negated=True),
                        fields=("account", "kind", "reference"),
                        name="ledgerman_unique_entry_reference",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(db_index=True, max_length=64, verbose_name="action")),
                ("actor_id", models.CharField(blank=True, max_length=64, verbose_name="actor")),
                ("target_type", models.CharField(max_length=50, verbose_name="target type")),
                ("target_id", models.CharField(max_length=64, verbose_name="target id")),
                ("description", models.CharField(max_length=255, verbose_name="description")),
                ("metadata", models.JSONField(blank=True, default=dict, verbose_name="metadata")),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True, verbose_name="created at")),
            ],
            options={
                "verbose_name": "audit log",
                "verbose_name_plural": "audit logs",
                "db_table": "ledgerman_audit_log",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["target_type", "target_id"], name="ledgerman_audit_target_idx"),
                ],
            },
        ),
    ]
