"""LedgerAccount model - balance-bearing wallet (currency or points)."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AccountKind(models.TextChoices):
    CURRENCY = "currency", _("Currency wallet")
    POINTS = "points", _("Points wallet")


class LoyaltyTier(models.TextChoices):
    """Loyalty tiers, lowest first."""

    BRONZE = "bronze", _("Bronze")
    SILVER = "silver", _("Silver")
    GOLD = "gold", _("Gold")
    PLATINUM = "platinum", _("Platinum")
    DIAMOND = "diamond", _("Diamond")


class LedgerAccount(models.Model):
    """
    Balance-bearing account owned by a user.

    Each user owns at most one account per kind (currency, points); both are
    created lazily on first use. ``balance`` only changes through
    ``ledgerman.services.ledger``, which writes a JournalEntry in the same
    transaction and bumps ``version`` as an optimistic lock.

    ``tier`` and ``tier_points`` are meaningful for points accounts only.
    ``tier`` is a cached label; the authoritative value is derived from
    ``tier_points`` by the tier engine.
    """

    user_id = models.CharField(_("user"), max_length=64, db_index=True)
    kind = models.CharField(_("kind"), max_length=20, choices=AccountKind.choices)

    balance = models.BigIntegerField(
        _("balance"),
        default=0,
        help_text=_("Available balance in minor units (or points)"),
    )
    lifetime_inflow = models.BigIntegerField(
        _("lifetime inflow"),
        default=0,
        help_text=_("Sum of all credits (never decreases)"),
    )

    # Loyalty (points accounts)
    tier = models.CharField(
        _("tier"),
        max_length=20,
        choices=LoyaltyTier.choices,
        default=LoyaltyTier.BRONZE,
    )
    tier_points = models.BigIntegerField(_("tier points"), default=0)

    version = models.PositiveIntegerField(_("version"), default=0)
    is_active = models.BooleanField(_("active"), default=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "ledgerman_account"
        verbose_name = _("ledger account")
        verbose_name_plural = _("ledger accounts")
        constraints = [
            models.UniqueConstraint(
                fields=["user_id", "kind"],
                name="ledgerman_unique_account_per_kind",
            ),
            models.CheckConstraint(
                condition=models.Q(balance__gte=0),
                name="ledgerman_balance_non_negative",
            ),
            models.CheckConstraint(
                condition=models.Q(tier_points__gte=0),
                name="ledgerman_tier_points_non_negative",
            ),
        ]

    def __str__(self):
        return f"{self.user_id} [{self.kind}]: {self.balance}"

    @property
    def lifetime_points(self) -> int:
        """Alias of lifetime_inflow for points accounts."""
        return self.lifetime_inflow
