"""Pytest fixtures for Ledgerman tests."""

import pytest

from ledgerman.contrib.loyalty.service import LoyaltyService
from ledgerman.contrib.rewards.models import RewardType
from ledgerman.contrib.rewards.service import RewardService
from ledgerman.models import AccountKind
from ledgerman.services import ledger, wallet


@pytest.fixture
def points_account(db):
    """Empty points account for user-1."""
    return ledger.get_or_create_account("user-1", AccountKind.POINTS)


@pytest.fixture
def currency_account(db):
    """Empty currency wallet for user-1."""
    return wallet.get_or_create_wallet("user-1")


@pytest.fixture
def funded_points(db):
    """user-1 with 1,000 points earned from a 100,000 purchase."""
    LoyaltyService.earn("user-1", 100_000, "seed-purchase")
    return LoyaltyService.get_account("user-1")


@pytest.fixture
def funded_wallet(db):
    """user-1 wallet topped up to 50,000."""
    wallet.charge("user-1", 50_000, "seed-charge")
    return wallet.get_wallet("user-1")


@pytest.fixture
def voucher(db):
    """Unlimited 500-point voucher."""
    return RewardService.create(
        "Coffee voucher",
        points_required=500,
        reward_type=RewardType.VOUCHER,
        value=5_000,
        merchant_id="cafe-1",
    )


@pytest.fixture
def limited_reward(db):
    """Single-unit 200-point product."""
    return RewardService.create(
        "Signed mug",
        points_required=200,
        reward_type=RewardType.PRODUCT,
        quantity=1,
    )


@pytest.fixture
def grant_points(db):
    """Credit points directly, bypassing the earn rate."""

    def _grant(user_id: str, points: int, reference: str = ""):
        account = ledger.get_or_create_account(user_id, AccountKind.POINTS)
        return ledger.mutate(account.pk, points, "bonus", reference=reference)

    return _grant
