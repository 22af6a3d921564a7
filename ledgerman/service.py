"""
Ledgerman public API.

CORE (route/handler layer):
    LedgerService.earn_points(user_id, amount, ref, source)  - Earn points
    LedgerService.redeem_points(user_id, points)              - Points to wallet
    LedgerService.redeem_reward(user_id, reward_id)           - Redeem a reward
    LedgerService.get_balance(user_id)                        - Points and tier
    LedgerService.mutate_currency(user_id, delta, kind, ref)  - Wallet mutation

Domain failures come back as results with ok=False and an error_code.
Only STORAGE_FAULT is raised. A conflict that could not be retried
(the caller already holds a transaction, ex: ATOMIC_REQUESTS) is raised
as STORAGE_FAULT too.
"""

import logging
from dataclasses import dataclass

from ledgerman.exceptions import DOMAIN_ERROR_CODES, LedgermanError

logger = logging.getLogger(__name__)


@dataclass
class EarnResult:
    """Points earn result."""

    ok: bool
    earned_points: int = 0
    new_balance: int | None = None
    new_tier: str | None = None
    tier_changed: bool = False
    error_code: str | None = None
    message: str | None = None


@dataclass
class RedeemResult:
    """Points-to-currency redemption result."""

    ok: bool
    new_points_balance: int | None = None
    new_currency_balance: int | None = None
    error_code: str | None = None
    message: str | None = None


@dataclass
class RedemptionResult:
    """Reward redemption result."""

    ok: bool
    redemption_code: str | None = None
    new_points_balance: int | None = None
    instructions: str | None = None
    error_code: str | None = None
    message: str | None = None


@dataclass
class BalanceResult:
    ok: bool
    points_balance: int = 0
    lifetime_points: int = 0
    tier: str | None = None
    tier_points: int = 0
    next_tier: str | None = None
    points_to_next: int | None = None
    error_code: str | None = None
    message: str | None = None


@dataclass
class CurrencyResult:
    ok: bool
    new_balance: int | None = None
    entry_id: int | None = None
    error_code: str | None = None
    message: str | None = None


class LedgerService:
    """
    Ledgerman public API.

    Uses @classmethod for extensibility. Each method delegates to the
    owning service and translates LedgermanError into a typed result.
    """

    # ======================================================================
    # CORE API
    # ======================================================================

    @classmethod
    def earn_points(
        cls,
        user_id: str,
        amount_spent: int,
        reference: str,
        source: str = "payment",
    ) -> EarnResult:
        """
        Award points for a purchase.

        A repeated reference returns ok=False with DUPLICATE_OPERATION and
        credits nothing.
        """
        from ledgerman.contrib.loyalty.service import LoyaltyService

        try:
            outcome = LoyaltyService.earn(user_id, amount_spent, reference, source)
        except LedgermanError as e:
            return cls._failure(EarnResult, e)
        return EarnResult(
            ok=True,
            earned_points=outcome.earned_points,
            new_balance=outcome.new_balance,
            new_tier=outcome.tier,
            tier_changed=outcome.tier_changed,
        )

    @classmethod
    def redeem_points(cls, user_id: str, points: int) -> RedeemResult:
        """Convert points into wallet currency (1 point = 1 unit)."""
        from ledgerman.contrib.loyalty.service import LoyaltyService

        try:
            outcome = LoyaltyService.redeem(user_id, points)
        except LedgermanError as e:
            return cls._failure(RedeemResult, e)
        return RedeemResult(
            ok=True,
            new_points_balance=outcome.new_points_balance,
            new_currency_balance=outcome.new_currency_balance,
        )

    @classmethod
    def redeem_reward(cls, user_id: str, reward_id) -> RedemptionResult:
        """Redeem a catalog reward. Requires ledgerman.contrib.rewards."""
        from ledgerman.contrib.rewards.service import RewardService

        try:
            outcome = RewardService.redeem(user_id, reward_id)
        except LedgermanError as e:
            return cls._failure(RedemptionResult, e)
        return RedemptionResult(
            ok=True,
            redemption_code=outcome.redemption_code,
            new_points_balance=outcome.new_points_balance,
            instructions=outcome.instructions,
        )

    @classmethod
    def get_balance(cls, user_id: str) -> BalanceResult:
        """Points balance and tier. Unknown users read as empty."""
        from ledgerman.contrib.loyalty.service import LoyaltyService

        balance = LoyaltyService.get_balance(user_id)
        return BalanceResult(
            ok=True,
            points_balance=balance.points_balance,
            lifetime_points=balance.lifetime_points,
            tier=balance.tier.code,
            tier_points=balance.tier_points,
            next_tier=balance.next_tier.code if balance.next_tier else None,
            points_to_next=balance.points_to_next,
        )

    @classmethod
    def mutate_currency(
        cls,
        user_id: str,
        delta: int,
        kind: str,
        reference: str = "",
    ) -> CurrencyResult:
        """
        Signed wallet mutation for payment, refund, top-up and delivery flows.

        Args:
            user_id: Wallet owner
            delta: Signed amount in minor units
            kind: payment, refund, topup or adjust
            reference: Optional idempotency key

        Returns:
            CurrencyResult with the post-mutation balance
        """
        from ledgerman.services import wallet

        try:
            result = wallet.mutate_currency(user_id, delta, kind, reference)
        except LedgermanError as e:
            return cls._failure(CurrencyResult, e)
        return CurrencyResult(ok=True, new_balance=result.new_balance, entry_id=result.entry_id)

    # ======================================================================
    # Internal
    # ======================================================================

    @classmethod
    def _failure(cls, result_class, error: LedgermanError):
        """Build a failed result, or re-raise non-domain errors as STORAGE_FAULT."""
        if error.code == "STORAGE_CONFLICT":
            raise LedgermanError("STORAGE_FAULT", **error.data) from error
        if error.code not in DOMAIN_ERROR_CODES:
            raise error
        logger.debug("Ledger operation rejected: %s", error)
        return result_class(ok=False, error_code=error.code, message=error.message)
