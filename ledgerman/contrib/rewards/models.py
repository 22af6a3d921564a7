"""Reward models - bounded-inventory catalog and redemption records."""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class RewardType(models.TextChoices):
    VOUCHER = "voucher", _("Voucher")
    PRODUCT = "product", _("Product")
    EXPERIENCE = "experience", _("Experience")
    CASHBACK = "cashback", _("Cashback")


class RewardStatus(models.TextChoices):
    """
    Reward lifecycle.

    active -> exhausted (quantity reached) and active -> inactive (manual)
    are the only transitions. Both targets are terminal for redemption.
    """

    ACTIVE = "active", _("Active")
    EXHAUSTED = "exhausted", _("Exhausted")
    INACTIVE = "inactive", _("Inactive")


class Reward(models.Model):
    """
    Redeemable reward with optional bounded inventory.

    ``quantity`` None means unlimited. ``redeemed_count`` never decreases
    and never exceeds ``quantity`` (enforced by a check constraint).
    Expiry through ``valid_until`` is computed, not a stored status.
    """

    name = models.CharField(_("name"), max_length=200)
    description = models.TextField(_("description"), blank=True)
    reward_type = models.CharField(
        _("type"),
        max_length=20,
        choices=RewardType.choices,
        default=RewardType.VOUCHER,
    )
    value = models.BigIntegerField(_("value"), null=True, blank=True)
    points_required = models.PositiveIntegerField(_("points required"))

    quantity = models.PositiveIntegerField(
        _("quantity"),
        null=True,
        blank=True,
        help_text=_("Leave empty for unlimited stock"),
    )
    redeemed_count = models.PositiveIntegerField(_("redeemed"), default=0)

    merchant_id = models.CharField(_("merchant"), max_length=64, blank=True, db_index=True)
    status = models.CharField(
        _("status"),
        max_length=20,
        choices=RewardStatus.choices,
        default=RewardStatus.ACTIVE,
        db_index=True,
    )
    valid_until = models.DateTimeField(_("valid until"), null=True, blank=True)

    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    updated_at = models.DateTimeField(_("updated at"), auto_now=True)

    class Meta:
        db_table = "ledgerman_reward"
        verbose_name = _("reward")
        verbose_name_plural = _("rewards")
        ordering = ["points_required", "id"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__isnull=True)
                | models.Q(redeemed_count__lte=models.F("quantity")),
                name="ledgerman_reward_within_quantity",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.points_required}pts)"

    @property
    def available_quantity(self) -> int | None:
        if self.quantity is None:
            return None
        return max(0, self.quantity - self.redeemed_count)

    @property
    def is_exhausted(self) -> bool:
        return self.quantity is not None and self.redeemed_count >= self.quantity

    def is_expired(self, now=None) -> bool:
        now = now or timezone.now()
        return self.valid_until is not None and self.valid_until < now


class RewardRedemption(models.Model):
    """
    One redemption instance. Links the reward to the points debit.

    ``code`` is the single-use code handed to the customer for
    merchant-side fulfilment.
    """

    reward = models.ForeignKey(
        Reward,
        on_delete=models.PROTECT,
        related_name="redemptions",
        verbose_name=_("reward"),
    )
    user_id = models.CharField(_("user"), max_length=64, db_index=True)
    code = models.CharField(_("code"), max_length=40, unique=True)
    points_spent = models.PositiveIntegerField(_("points spent"))
    journal_entry = models.OneToOneField(
        "ledgerman.JournalEntry",
        on_delete=models.PROTECT,
        related_name="reward_redemption",
        verbose_name=_("journal entry"),
    )
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        db_table = "ledgerman_reward_redemption"
        verbose_name = _("reward redemption")
        verbose_name_plural = _("reward redemptions")
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.code} - {self.reward.name}"
