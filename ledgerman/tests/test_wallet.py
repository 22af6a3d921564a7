"""Tests for currency wallet flows."""

import pytest

from ledgerman.contrib.loyalty.service import LoyaltyService
from ledgerman.exceptions import LedgermanError
from ledgerman.models import EntryKind
from ledgerman.services import wallet


pytestmark = pytest.mark.django_db


class TestCharge:
    def test_charge(self, db):
        result = wallet.charge("user-1", 10_000, "pg-1")

        account = wallet.get_wallet("user-1")
        assert result.new_balance == 10_000
        assert account.balance == 10_000
        entry = account.entries.get()
        assert entry.kind == EntryKind.TOPUP
        assert entry.source == wallet.CHARGE_SOURCE

    @pytest.mark.parametrize("amount", [0, 999, 3_000_001])
    def test_amount_out_of_range(self, db, amount):
        with pytest.raises(LedgermanError) as exc:
            wallet.charge("user-1", amount)
        assert exc.value.code == "INVALID_AMOUNT"

    def test_daily_limit(self, db):
        wallet.charge("user-1", 300_000)

        with pytest.raises(LedgermanError) as exc:
            wallet.charge("user-1", 250_000)

        assert exc.value.code == "LIMIT_EXCEEDED"
        assert exc.value.data["limit"] == "daily"
        assert wallet.get_wallet("user-1").balance == 300_000

    def test_monthly_limit(self, settings):
        settings.LEDGERMAN = {"DAILY_CHARGE_LIMIT": 100_000, "MONTHLY_CHARGE_LIMIT": 60_000}
        wallet.charge("user-1", 50_000)

        with pytest.raises(LedgermanError) as exc:
            wallet.charge("user-1", 20_000)
        assert exc.value.data["limit"] == "monthly"

    def test_max_balance(self, settings):
        settings.LEDGERMAN = {"MAX_WALLET_BALANCE": 60_000}
        wallet.charge("user-1", 50_000)

        with pytest.raises(LedgermanError) as exc:
            wallet.charge("user-1", 20_000)
        assert exc.value.data["limit"] == "balance"

    def test_duplicate_charge_reference(self, funded_wallet):
        with pytest.raises(LedgermanError) as exc:
            wallet.charge("user-1", 50_000, "seed-charge")

        assert exc.value.code == "DUPLICATE_OPERATION"
        funded_wallet.refresh_from_db()
        assert funded_wallet.balance == 50_000

    def test_loyalty_topups_do_not_count_as_charges(self, settings, grant_points):
        grant_points("user-1", 5_000)
        LoyaltyService.redeem("user-1", 5_000)

        settings.LEDGERMAN = {"DAILY_CHARGE_LIMIT": 1_000}
        result = wallet.charge("user-1", 1_000)
        assert result.new_balance == 6_000


class TestLimits:
    def test_unknown_wallet_reads_as_unused(self, db):
        limits = wallet.get_limits("nobody")

        assert limits.daily == wallet.LimitUsage(limit=500_000, used=0, remaining=500_000)
        assert limits.monthly == wallet.LimitUsage(limit=2_000_000, used=0, remaining=2_000_000)
        assert limits.balance == wallet.LimitUsage(limit=3_000_000, used=0, remaining=3_000_000)
        assert wallet.get_wallet("nobody") is None

    def test_usage_after_charge(self, funded_wallet):
        wallet.pay("user-1", 20_000, "order-1")

        limits = wallet.get_limits("user-1")

        assert limits.daily.used == 50_000
        assert limits.daily.remaining == 450_000
        assert limits.monthly.used == 50_000
        assert limits.balance.used == 30_000
        assert limits.balance.remaining == 2_970_000

    def test_loyalty_topups_excluded(self, grant_points):
        grant_points("user-1", 5_000)
        LoyaltyService.redeem("user-1", 5_000)

        limits = wallet.get_limits("user-1")

        assert limits.daily.used == 0
        assert limits.monthly.used == 0
        assert limits.balance.used == 5_000

    def test_remaining_never_negative(self, settings, funded_wallet):
        settings.LEDGERMAN = {"DAILY_CHARGE_LIMIT": 10_000}

        limits = wallet.get_limits("user-1")

        assert limits.daily.used == 50_000
        assert limits.daily.remaining == 0


class TestPayAndRefund:
    def test_pay(self, funded_wallet):
        result = wallet.pay("user-1", 30_000, "order-1", merchant_id="store-9")

        assert result.new_balance == 20_000
        entry = funded_wallet.entries.get(reference="order-1")
        assert entry.delta == -30_000
        assert entry.metadata == {"merchant_id": "store-9"}

    def test_pay_insufficient(self, funded_wallet):
        with pytest.raises(LedgermanError) as exc:
            wallet.pay("user-1", 60_000, "order-2")

        assert exc.value.code == "INSUFFICIENT_BALANCE"
        funded_wallet.refresh_from_db()
        assert funded_wallet.balance == 50_000

    def test_pay_requires_positive_amount(self, funded_wallet):
        with pytest.raises(LedgermanError) as exc:
            wallet.pay("user-1", -5, "order-3")
        assert exc.value.code == "INVALID_AMOUNT"

    def test_refund_is_idempotent(self, funded_wallet):
        wallet.pay("user-1", 10_000, "order-4")
        wallet.refund("user-1", 10_000, "order-4:cancel")

        with pytest.raises(LedgermanError) as exc:
            wallet.refund("user-1", 10_000, "order-4:cancel")

        assert exc.value.code == "DUPLICATE_OPERATION"
        funded_wallet.refresh_from_db()
        assert funded_wallet.balance == 50_000


class TestMutateCurrency:
    def test_creates_wallet_lazily(self, db):
        assert wallet.get_wallet("user-2") is None
        result = wallet.mutate_currency("user-2", 5_000, EntryKind.REFUND, "r-1")
        assert result.new_balance == 5_000
        assert wallet.get_wallet("user-2").balance == 5_000

    def test_points_kind_rejected(self, db):
        with pytest.raises(LedgermanError) as exc:
            wallet.mutate_currency("user-1", 100, EntryKind.EARN)
        assert exc.value.code == "INVALID_KIND"
