"""JournalEntry model - append-only record of every balance mutation."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class EntryKind(models.TextChoices):
    EARN = "earn", _("Earn")
    REDEEM = "redeem", _("Redeem")
    EXPIRE = "expire", _("Expire")
    ADJUST = "adjust", _("Adjustment")
    BONUS = "bonus", _("Bonus")
    PAYMENT = "payment", _("Payment")
    REFUND = "refund", _("Refund")
    TOPUP = "topup", _("Top-up")


class JournalEntry(models.Model):
    """
    Immutable record of one balance delta.

    The sum of ``delta`` over an account's entries equals its balance.
    ``reference`` doubles as an idempotency key: it is unique per
    (account, kind) whenever it is set.
    """

    account = models.ForeignKey(
        "ledgerman.LedgerAccount",
        on_delete=models.PROTECT,
        related_name="entries",
        verbose_name=_("account"),
    )
    delta = models.BigIntegerField(
        _("delta"),
        help_text=_("Positive for credits, negative for debits"),
    )
    kind = models.CharField(_("kind"), max_length=20, choices=EntryKind.choices)
    balance_after = models.BigIntegerField(_("balance after"))

    source = models.CharField(_("source"), max_length=50, blank=True)
    reference = models.CharField(
        _("reference"),
        max_length=200,
        blank=True,
        help_text=_("External id used for idempotency (ex: tx-123)"),
    )
    description = models.CharField(_("description"), max_length=255, blank=True)
    expires_at = models.DateTimeField(_("expires at"), null=True, blank=True)
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)
    created_by = models.CharField(_("created by"), max_length=100, blank=True)

    class Meta:
        db_table = "ledgerman_journal_entry"
        verbose_name = _("journal entry")
        verbose_name_plural = _("journal entries")
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["account", "kind", "reference"],
                condition=~models.Q(reference=""),
                name="ledgerman_unique_entry_reference",
            ),
        ]
        indexes = [
            models.Index(fields=["account", "-created_at"], name="ledgerman_entry_account_idx"),
            models.Index(fields=["kind", "created_at"], name="ledgerman_entry_kind_idx"),
        ]

    def __str__(self):
        sign = "+" if self.delta > 0 else ""
        return f"{sign}{self.delta} [{self.kind}] {self.description}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError("Journal entries are immutable")
        super().save(*args, **kwargs)
