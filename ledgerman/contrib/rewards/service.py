"""Reward service - catalog management and point redemption."""

import logging
import secrets
import string
import time
from dataclasses import dataclass

from django.db.models import F, Q
from django.utils import timezone

from ledgerman.contrib.rewards.models import Reward, RewardRedemption, RewardStatus, RewardType
from ledgerman.exceptions import LedgermanError, StorageConflict
from ledgerman.models import AccountKind, EntryKind
from ledgerman.services import audit, ledger
from ledgerman.signals import reward_redeemed

logger = logging.getLogger(__name__)

_CODE_ALPHABET = string.ascii_uppercase + string.digits
_CODE_SUFFIX_LENGTH = 8


@dataclass(frozen=True)
class RewardOffer:
    """A catalog entry as seen by one user."""

    reward: Reward
    available_quantity: int | None
    can_redeem: bool


@dataclass(frozen=True)
class RewardDetail:
    reward: Reward
    is_expired: bool
    is_exhausted: bool
    can_redeem: bool
    user_points_balance: int
    points_needed: int


@dataclass(frozen=True)
class RedemptionOutcome:
    redemption_id: int
    redemption_code: str
    reward_id: int
    points_spent: int
    new_points_balance: int
    instructions: str


def _base36(number: int) -> str:
    digits = string.digits + string.ascii_uppercase
    out = ""
    while number:
        number, rem = divmod(number, 36)
        out = digits[rem] + out
    return out or "0"


def generate_redemption_code() -> str:
    """Opaque single-use code, ex: RWD-LX3K9Q2A-7FQ2K8M1."""
    stamp = _base36(time.time_ns() // 1_000_000)
    suffix = "".join(secrets.choice(_CODE_ALPHABET) for _ in range(_CODE_SUFFIX_LENGTH))
    return f"RWD-{stamp}-{suffix}"


def redemption_instructions(reward_type: str, code: str) -> str:
    """Customer-facing fulfilment instructions per reward type."""
    if reward_type == RewardType.VOUCHER:
        return f"Show this code ({code}) to the merchant when making a purchase. Valid for single use only."
    if reward_type == RewardType.PRODUCT:
        return f"Present this code ({code}) at the merchant location to claim your product. Valid for 30 days."
    if reward_type == RewardType.EXPERIENCE:
        return f"Contact the merchant to schedule your experience. Reference code: {code}. Valid for 90 days."
    if reward_type == RewardType.CASHBACK:
        return f"Your cashback will be applied to your wallet. Reference: {code}"
    return f"Redemption code: {code}. Please contact support for assistance."


class RewardService:
    """
    Service for reward catalog operations.

    Uses @classmethod for extensibility (consistent with other contrib services).
    """

    @classmethod
    def create(
        cls,
        name: str,
        points_required: int,
        reward_type: str = RewardType.VOUCHER,
        description: str = "",
        value: int | None = None,
        quantity: int | None = None,
        merchant_id: str = "",
        valid_until=None,
    ) -> Reward:
        """
        Add a reward to the catalog.

        Raises:
            LedgermanError: INVALID_AMOUNT if points_required or quantity <= 0
        """
        if points_required <= 0:
            raise LedgermanError("INVALID_AMOUNT", message="points_required must be positive")
        if quantity is not None and quantity <= 0:
            raise LedgermanError("INVALID_AMOUNT", message="quantity must be positive or None")

        return Reward.objects.create(
            name=name,
            points_required=points_required,
            reward_type=reward_type,
            description=description,
            value=value,
            quantity=quantity,
            merchant_id=merchant_id,
            valid_until=valid_until,
        )

    @classmethod
    def get(cls, reward_id) -> Reward | None:
        try:
            return Reward.objects.get(pk=reward_id)
        except Reward.DoesNotExist:
            return None

    @classmethod
    def deactivate(cls, reward_id, actor_id: str = "") -> Reward:
        """
        Move an active reward to inactive.

        Exhausted and inactive rewards are left as they are.

        Raises:
            LedgermanError: REWARD_NOT_FOUND
        """

        def _apply():
            try:
                reward = Reward.objects.select_for_update().get(pk=reward_id)
            except Reward.DoesNotExist:
                raise LedgermanError("REWARD_NOT_FOUND", reward_id=reward_id)

            if reward.status != RewardStatus.ACTIVE:
                return reward

            reward.status = RewardStatus.INACTIVE
            reward.save(update_fields=["status", "updated_at"])
            audit.record(
                "REWARD_DEACTIVATED",
                actor_id,
                "loyalty_reward",
                reward.pk,
                f"Deactivated reward: {reward.name}",
            )
            return reward

        return ledger.run_atomic(_apply)

    @classmethod
    def check_availability(cls, reward: Reward, now=None) -> None:
        """
        Raise if the reward cannot be redeemed right now.

        Raises:
            LedgermanError: REWARD_EXHAUSTED, REWARD_UNAVAILABLE, REWARD_EXPIRED
        """
        if reward.status == RewardStatus.EXHAUSTED:
            raise LedgermanError("REWARD_EXHAUSTED", reward_id=reward.pk)
        if reward.status != RewardStatus.ACTIVE:
            raise LedgermanError("REWARD_UNAVAILABLE", reward_id=reward.pk, status=reward.status)
        if reward.is_expired(now):
            raise LedgermanError("REWARD_EXPIRED", reward_id=reward.pk)
        if reward.is_exhausted:
            raise LedgermanError("REWARD_EXHAUSTED", reward_id=reward.pk)

    @classmethod
    def is_available(cls, reward: Reward, now=None) -> bool:
        """Check without raising (returns bool)."""
        try:
            cls.check_availability(reward, now)
            return True
        except LedgermanError:
            return False

    @classmethod
    def list_available(
        cls,
        user_id: str,
        reward_type: str | None = None,
        merchant_id: str | None = None,
        page: int = 1,
        limit: int = 20,
    ) -> ledger.Page:
        """
        Active, unexpired, in-stock rewards, cheapest first.

        Returns:
            Page of RewardOffer
        """
        page = max(1, page)
        limit = max(1, min(limit, 50))
        now = timezone.now()

        qs = Reward.objects.filter(status=RewardStatus.ACTIVE).filter(
            Q(valid_until__isnull=True) | Q(valid_until__gt=now),
            Q(quantity__isnull=True) | Q(quantity__gt=F("redeemed_count")),
        )
        if reward_type:
            qs = qs.filter(reward_type=reward_type)
        if merchant_id:
            qs = qs.filter(merchant_id=merchant_id)

        balance = cls._points_balance(user_id)
        total = qs.count()
        offset = (page - 1) * limit
        offers = [
            RewardOffer(
                reward=reward,
                available_quantity=reward.available_quantity,
                can_redeem=balance >= reward.points_required,
            )
            for reward in qs[offset:offset + limit]
        ]
        return ledger.Page(items=offers, page=page, limit=limit, total=total)

    @classmethod
    def get_detail(cls, reward_id, user_id: str) -> RewardDetail | None:
        """Reward with availability flags for one user. None if not found."""
        reward = cls.get(reward_id)
        if reward is None:
            return None

        balance = cls._points_balance(user_id)
        return RewardDetail(
            reward=reward,
            is_expired=reward.is_expired(),
            is_exhausted=reward.is_exhausted,
            can_redeem=cls.is_available(reward) and balance >= reward.points_required,
            user_points_balance=balance,
            points_needed=max(0, reward.points_required - balance),
        )

    @classmethod
    def redeem(cls, user_id: str, reward_id, created_by: str = "") -> RedemptionOutcome:
        """
        Redeem a reward with points.

        Reward row and points account are locked in that order. The points
        debit, the redeemed_count increment (with the exhausted flip) and the
        redemption record commit as one unit.

        Raises:
            LedgermanError: REWARD_NOT_FOUND, REWARD_UNAVAILABLE, REWARD_EXPIRED,
                REWARD_EXHAUSTED, INSUFFICIENT_POINTS
        """

        def _apply():
            try:
                reward = Reward.objects.select_for_update().get(pk=reward_id)
            except Reward.DoesNotExist:
                raise LedgermanError("REWARD_NOT_FOUND", reward_id=reward_id)

            cls.check_availability(reward)

            account = ledger.lock_account(
                ledger.get_or_create_account(user_id, AccountKind.POINTS).pk
            )
            if account.balance < reward.points_required:
                raise LedgermanError(
                    "INSUFFICIENT_POINTS",
                    message=f"Insufficient points. You need "
                    f"{reward.points_required - account.balance} more points.",
                    available=account.balance,
                    requested=reward.points_required,
                )

            code = generate_redemption_code()
            entry = ledger.post(
                account,
                -reward.points_required,
                EntryKind.REDEEM,
                reference=f"reward:{reward.pk}:{code}",
                source="reward",
                description=f"Redeemed reward: {reward.name}",
                metadata={"reward_id": reward.pk, "redemption_code": code},
                created_by=created_by or user_id,
            )

            new_count = reward.redeemed_count + 1
            new_status = reward.status
            if reward.quantity is not None and new_count >= reward.quantity:
                new_status = RewardStatus.EXHAUSTED

            updated = Reward.objects.filter(
                pk=reward.pk,
                status=RewardStatus.ACTIVE,
                redeemed_count=reward.redeemed_count,
            ).update(redeemed_count=new_count, status=new_status, updated_at=timezone.now())
            if updated != 1:
                raise StorageConflict(reward_id=reward.pk)
            reward.redeemed_count = new_count
            reward.status = new_status

            redemption = RewardRedemption.objects.create(
                reward=reward,
                user_id=user_id,
                code=code,
                points_spent=reward.points_required,
                journal_entry=entry,
            )

            if new_status == RewardStatus.EXHAUSTED:
                logger.info("Reward %s exhausted after %d redemptions", reward.pk, new_count)

            audit.record(
                "LOYALTY_REWARD_REDEEMED",
                created_by or user_id,
                "loyalty_reward",
                reward.pk,
                f"Redeemed reward: {reward.name} for {reward.points_required} points",
                {
                    "reward_id": reward.pk,
                    "reward_name": reward.name,
                    "points_spent": reward.points_required,
                    "redemption_code": code,
                },
            )
            audit.send_after_commit(
                reward_redeemed,
                sender=Reward,
                reward=reward,
                redemption=redemption,
            )
            return RedemptionOutcome(
                redemption_id=redemption.pk,
                redemption_code=code,
                reward_id=reward.pk,
                points_spent=reward.points_required,
                new_points_balance=account.balance,
                instructions=redemption_instructions(reward.reward_type, code),
            )

        return ledger.run_atomic(_apply)

    @classmethod
    def _points_balance(cls, user_id: str) -> int:
        account = ledger.get_account(user_id, AccountKind.POINTS)
        return account.balance if account else 0
