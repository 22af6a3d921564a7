"""Loyalty service - tier-multiplied point earning and redemption."""

import logging
import uuid
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_FLOOR, Decimal

from django.db.models import Avg, Count, Sum
from django.utils import timezone

from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError
from ledgerman.models import AccountKind, EntryKind, JournalEntry, LedgerAccount
from ledgerman.services import audit, ledger
from ledgerman.signals import tier_changed
from ledgerman.tiers import Tier, tier_engine

logger = logging.getLogger(__name__)


# 1 point = 1 minor currency unit. Fixed; never a setting or an argument.
POINT_VALUE = 1


@dataclass(frozen=True)
class EarnOutcome:
    entry_id: int
    amount_spent: int
    base_points: int
    multiplier: Decimal
    earned_points: int
    new_balance: int
    new_tier_points: int
    tier: str
    previous_tier: str
    expires_at: object

    @property
    def tier_changed(self) -> bool:
        return self.tier != self.previous_tier


@dataclass(frozen=True)
class RedeemOutcome:
    points: int
    value: int
    new_points_balance: int
    new_currency_balance: int
    reference: str


@dataclass(frozen=True)
class MerchantRedeemOutcome:
    entry_id: int
    customer_id: str
    merchant_id: str
    points: int
    discount_value: int
    new_balance: int


@dataclass(frozen=True)
class LoyaltyBalance:
    points_balance: int
    lifetime_points: int
    tier: Tier
    tier_points: int
    next_tier: Tier | None
    points_to_next: int | None


def _floor(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


class LoyaltyService:
    """
    Service for loyalty program operations.

    Uses @classmethod for extensibility (consistent with other contrib services).
    All point mutations go through ledgerman.services.ledger.
    """

    @classmethod
    def get_account(cls, user_id: str) -> LedgerAccount | None:
        """Get points account for user."""
        return ledger.get_account(user_id, AccountKind.POINTS)

    @classmethod
    def get_or_create_account(cls, user_id: str) -> LedgerAccount:
        return ledger.get_or_create_account(user_id, AccountKind.POINTS)

    @classmethod
    def calculate_points(cls, amount_spent: int, tier_points: int) -> tuple[int, Decimal, int]:
        """
        Points earned for a purchase at the given tier-point level.

        Returns:
            Tuple of (base_points, multiplier, earned_points)
        """
        base_points = _floor(Decimal(amount_spent) * ledgerman_settings.BASE_EARN_RATE)
        multiplier = tier_engine.tier_for(tier_points).earn_multiplier
        return base_points, multiplier, _floor(base_points * multiplier)

    @classmethod
    def earn(
        cls,
        user_id: str,
        amount_spent: int,
        reference: str,
        source: str = "payment",
        description: str = "",
        created_by: str = "",
    ) -> EarnOutcome:
        """
        Award points for a purchase.

        The multiplier comes from the tier the account holds before this
        earn. Balance, tier points and tier change in one atomic unit.

        Args:
            user_id: Owner of the points account
            amount_spent: Purchase amount in minor currency units
            reference: Purchase id; a repeat is rejected as DUPLICATE_OPERATION
            source: Originating flow
            description: Reason shown in history
            created_by: Actor id

        Raises:
            LedgermanError: INVALID_AMOUNT, INVALID_REFERENCE, DUPLICATE_OPERATION
        """
        if amount_spent <= 0:
            raise LedgermanError("INVALID_AMOUNT", message="Amount must be positive")
        if not reference:
            raise LedgermanError("INVALID_REFERENCE")

        account = cls.get_or_create_account(user_id)
        expires_at = timezone.now() + timedelta(days=ledgerman_settings.POINTS_EXPIRY_DAYS)

        def _apply():
            locked = ledger.lock_account(account.pk)
            if JournalEntry.objects.filter(
                account=locked, kind=EntryKind.EARN, reference=reference
            ).exists():
                raise LedgermanError(
                    "DUPLICATE_OPERATION",
                    account_id=locked.pk,
                    kind=EntryKind.EARN,
                    reference=reference,
                )
            base_points, multiplier, earned = cls.calculate_points(amount_spent, locked.tier_points)
            if earned <= 0:
                raise LedgermanError(
                    "INVALID_AMOUNT",
                    message="Amount too small to earn points",
                    amount=amount_spent,
                )

            entry = ledger.post(
                locked,
                earned,
                EntryKind.EARN,
                reference=reference,
                source=source,
                description=description or "Points earned from purchase",
                expires_at=expires_at,
                metadata={
                    "amount_spent": amount_spent,
                    "base_points": base_points,
                    "multiplier": str(multiplier),
                },
                created_by=created_by or user_id,
            )

            previous_tier = locked.tier
            new_tier_points = locked.tier_points + earned
            new_tier = tier_engine.tier_for(new_tier_points).tier.code
            ledger.update_account(locked, tier_points=new_tier_points, tier=new_tier)

            if new_tier != previous_tier:
                logger.info("Tier change for %s: %s -> %s", user_id, previous_tier, new_tier)
                audit.send_after_commit(
                    tier_changed,
                    sender=LedgerAccount,
                    account=locked,
                    old_tier=previous_tier,
                    new_tier=new_tier,
                )

            audit.record(
                "LOYALTY_POINTS_EARNED",
                created_by or user_id,
                "loyalty_account",
                locked.pk,
                f"Earned {earned} points from {amount_spent:,} KRW purchase",
                {
                    "amount": amount_spent,
                    "base_points": base_points,
                    "multiplier": str(multiplier),
                    "earned_points": earned,
                    "reference": reference,
                },
            )
            return EarnOutcome(
                entry_id=entry.pk,
                amount_spent=amount_spent,
                base_points=base_points,
                multiplier=multiplier,
                earned_points=earned,
                new_balance=locked.balance,
                new_tier_points=new_tier_points,
                tier=new_tier,
                previous_tier=previous_tier,
                expires_at=expires_at,
            )

        return ledger.run_atomic(_apply)

    @classmethod
    def redeem(cls, user_id: str, points: int, created_by: str = "") -> RedeemOutcome:
        """
        Convert points into wallet currency at POINT_VALUE.

        Both accounts are locked in one transaction: the points debit and
        the currency credit commit together or not at all.

        Raises:
            LedgermanError: INVALID_AMOUNT, INSUFFICIENT_POINTS
        """
        minimum = ledgerman_settings.MIN_REDEMPTION_POINTS
        if points <= 0 or points < minimum:
            raise LedgermanError(
                "INVALID_AMOUNT",
                message=f"Minimum {minimum} points required for redemption",
                points=points,
            )

        points_account = cls.get_or_create_account(user_id)
        wallet = ledger.get_or_create_account(user_id, AccountKind.CURRENCY)
        value = points * POINT_VALUE
        reference = f"loyalty-redeem:{uuid.uuid4().hex}"

        def _apply():
            locked = ledger.lock_accounts(points_account.pk, wallet.pk)
            pts, cur = locked[points_account.pk], locked[wallet.pk]

            ledger.post(
                pts,
                -points,
                EntryKind.REDEEM,
                reference=reference,
                source="wallet",
                description=f"Redeemed {points} points for {value:,} KRW",
                created_by=created_by or user_id,
            )
            ledger.post(
                cur,
                value,
                EntryKind.TOPUP,
                reference=reference,
                source="loyalty",
                description=f"Loyalty points redemption: {points} points",
                created_by=created_by or user_id,
            )
            audit.record(
                "LOYALTY_POINTS_REDEEMED",
                created_by or user_id,
                "loyalty_account",
                pts.pk,
                f"Redeemed {points} points for {value:,} KRW",
                {"points": points, "value": value, "reference": reference},
            )
            return RedeemOutcome(
                points=points,
                value=value,
                new_points_balance=pts.balance,
                new_currency_balance=cur.balance,
                reference=reference,
            )

        return ledger.run_atomic(_apply)

    @classmethod
    def merchant_redeem(
        cls,
        customer_id: str,
        points: int,
        merchant_id: str,
        description: str = "",
        reference: str = "",
        created_by: str = "",
    ) -> MerchantRedeemOutcome:
        """
        Merchant consumes a customer's points as an in-store discount.

        Raises:
            LedgermanError: ACCOUNT_NOT_FOUND, INVALID_AMOUNT, INSUFFICIENT_POINTS,
                DUPLICATE_OPERATION (when ``reference`` repeats)
        """
        if points <= 0:
            raise LedgermanError("INVALID_AMOUNT", message="Points must be positive")

        account = cls.get_account(customer_id)
        if account is None:
            raise LedgermanError("ACCOUNT_NOT_FOUND", user_id=customer_id)

        discount_value = points * POINT_VALUE

        def _apply():
            locked = ledger.lock_account(account.pk)
            entry = ledger.post(
                locked,
                -points,
                EntryKind.REDEEM,
                reference=reference,
                source="merchant",
                description=description or f"Points redeemed at merchant {merchant_id}",
                metadata={"merchant_id": merchant_id},
                created_by=created_by or merchant_id,
            )
            audit.record(
                "MERCHANT_LOYALTY_REDEMPTION",
                created_by or merchant_id,
                "loyalty_account",
                locked.pk,
                f"Merchant {merchant_id} redeemed {points} points for customer",
                {
                    "merchant_id": merchant_id,
                    "customer_id": customer_id,
                    "points": points,
                    "discount_value": discount_value,
                },
            )
            return MerchantRedeemOutcome(
                entry_id=entry.pk,
                customer_id=customer_id,
                merchant_id=merchant_id,
                points=points,
                discount_value=discount_value,
                new_balance=locked.balance,
            )

        return ledger.run_atomic(_apply)

    @classmethod
    def get_balance(cls, user_id: str) -> LoyaltyBalance:
        """Points balance and tier. Users without an account read as empty."""
        account = cls.get_account(user_id)
        tier_points = account.tier_points if account else 0
        status = tier_engine.tier_for(tier_points)
        return LoyaltyBalance(
            points_balance=account.balance if account else 0,
            lifetime_points=account.lifetime_points if account else 0,
            tier=status.tier,
            tier_points=tier_points,
            next_tier=status.next_tier,
            points_to_next=status.points_to_next,
        )

    @classmethod
    def get_history(
        cls,
        user_id: str,
        entry_kind: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ledger.Page:
        """Get points transaction history (most recent first)."""
        return ledger.history(user_id, AccountKind.POINTS, entry_kind, page, limit)

    @classmethod
    def tier_table(cls) -> dict:
        """Tier brackets with earning and redemption rates."""
        return {
            "tiers": [
                {
                    "id": tier.code,
                    "name": tier.name,
                    "min_points": tier.min_tier_points,
                    "max_points": tier_engine.max_points(tier.code),
                    "earn_multiplier": tier.earn_multiplier,
                    "benefits": list(tier.benefits),
                }
                for tier in tier_engine.tiers
            ],
            "earning_rate": {
                "base": ledgerman_settings.BASE_EARN_RATE,
                "description": "1 point per 100 KRW spent",
            },
            "redemption_rate": {
                "rate": POINT_VALUE,
                "description": "1 point = 1 KRW",
            },
        }

    @classmethod
    def program_stats(cls, days: int = 30) -> dict:
        """
        Program-wide statistics for administrators.

        Outstanding points are also the program liability, at POINT_VALUE.
        """
        accounts = LedgerAccount.objects.filter(kind=AccountKind.POINTS)
        overall = accounts.aggregate(
            total_accounts=Count("id"),
            outstanding=Sum("balance"),
            lifetime=Sum("lifetime_inflow"),
            average=Avg("balance"),
        )

        distribution = {row["tier"]: row["count"] for row in accounts.values("tier").annotate(count=Count("id"))}
        tier_distribution = [
            {"tier": tier.code, "name": tier.name, "count": distribution.get(tier.code, 0)}
            for tier in tier_engine.tiers
        ]

        since = timezone.now() - timedelta(days=days)
        transaction_stats = [
            {"kind": row["kind"], "count": row["count"], "total_points": abs(row["total"] or 0)}
            for row in JournalEntry.objects.filter(
                account__kind=AccountKind.POINTS,
                created_at__gte=since,
            )
            .values("kind")
            .annotate(count=Count("id"), total=Sum("delta"))
            .order_by("kind")
        ]

        outstanding = overall["outstanding"] or 0
        return {
            "overview": {
                "total_accounts": overall["total_accounts"],
                "total_points_outstanding": outstanding,
                "total_points_earned": overall["lifetime"] or 0,
                "average_balance": round(overall["average"] or 0),
                "points_liability": outstanding * POINT_VALUE,
            },
            "tier_distribution": tier_distribution,
            "transaction_stats": transaction_stats,
        }
