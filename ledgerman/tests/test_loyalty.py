"""Tests for the loyalty program (earn, redeem, merchant redemption, stats)."""

import threading
from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from django.db import connection
from django.utils import timezone

from ledgerman.contrib.loyalty.service import LoyaltyService
from ledgerman.exceptions import LedgermanError
from ledgerman.models import EntryKind, JournalEntry, LedgerAccount
from ledgerman.services import ledger, wallet


pytestmark = pytest.mark.django_db


# ═══════════════════════════════════════════════════════════════════
# Earn
# ═══════════════════════════════════════════════════════════════════


class TestEarn:
    def test_first_purchase(self, db):
        outcome = LoyaltyService.earn("user-1", 10_000, "tx-1", "payment")

        assert outcome.base_points == 100
        assert outcome.multiplier == Decimal("1.0")
        assert outcome.earned_points == 100
        assert outcome.new_balance == 100
        assert outcome.tier == "bronze"
        assert not outcome.tier_changed

        account = LoyaltyService.get_account("user-1")
        assert account.balance == 100
        assert account.tier_points == 100
        assert account.lifetime_points == 100

    def test_repeat_reference_credits_once(self, db):
        LoyaltyService.earn("user-1", 10_000, "tx-1", "payment")

        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.earn("user-1", 10_000, "tx-1", "payment")

        assert exc.value.code == "DUPLICATE_OPERATION"
        account = LoyaltyService.get_account("user-1")
        assert account.balance == 100
        assert account.tier_points == 100

    def test_repeat_reference_with_tiny_amount_is_duplicate(self, db):
        LoyaltyService.earn("user-1", 10_000, "tx-1")

        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.earn("user-1", 50, "tx-1")

        assert exc.value.code == "DUPLICATE_OPERATION"
        assert LoyaltyService.get_account("user-1").balance == 100

    def test_points_are_floored(self, db):
        outcome = LoyaltyService.earn("user-1", 12_399, "tx-2")
        assert outcome.earned_points == 123

    def test_entry_records_expiry(self, db):
        before = timezone.now()
        outcome = LoyaltyService.earn("user-1", 10_000, "tx-3")

        entry = JournalEntry.objects.get(pk=outcome.entry_id)
        assert entry.kind == EntryKind.EARN
        assert entry.source == "payment"
        assert entry.expires_at >= before + timedelta(days=365)
        assert entry.metadata["base_points"] == 100

    def test_expiry_days_setting(self, settings):
        settings.LEDGERMAN = {"POINTS_EXPIRY_DAYS": 30}
        outcome = LoyaltyService.earn("user-1", 10_000, "tx-4")
        assert outcome.expires_at < timezone.now() + timedelta(days=31)

    def test_base_rate_setting(self, settings):
        settings.LEDGERMAN = {"BASE_EARN_RATE": "0.05"}
        outcome = LoyaltyService.earn("user-1", 10_000, "tx-5")
        assert outcome.earned_points == 500

    def test_invalid_amount(self, db):
        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.earn("user-1", 0, "tx-6")
        assert exc.value.code == "INVALID_AMOUNT"

    def test_amount_too_small(self, db):
        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.earn("user-1", 99, "tx-7")
        assert exc.value.code == "INVALID_AMOUNT"
        assert LoyaltyService.get_account("user-1").balance == 0

    def test_reference_required(self, db):
        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.earn("user-1", 10_000, "")
        assert exc.value.code == "INVALID_REFERENCE"


@pytest.mark.django_db(transaction=True)
class TestConcurrentEarn:
    def test_same_reference_credits_once(self):
        """Four concurrent earns for one purchase: one credit, three duplicates."""
        LoyaltyService.get_or_create_account("user-1")
        barrier = threading.Barrier(4)
        outcomes = []

        def attempt():
            try:
                barrier.wait()
                outcomes.append(LoyaltyService.earn("user-1", 10_000, "tx-1"))
            except LedgermanError as e:
                outcomes.append(e)
            finally:
                connection.close()

        threads = [threading.Thread(target=attempt) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        errors = [o for o in outcomes if isinstance(o, LedgermanError)]
        assert len(outcomes) - len(errors) == 1
        assert [e.code for e in errors] == ["DUPLICATE_OPERATION"] * 3

        account = LoyaltyService.get_account("user-1")
        assert account.balance == 100
        assert account.tier_points == 100
        assert JournalEntry.objects.filter(account=account, kind=EntryKind.EARN).count() == 1


class TestTierProgression:
    def test_boundary_crossing(self, points_account):
        LedgerAccount.objects.filter(pk=points_account.pk).update(tier_points=9_999)

        outcome = LoyaltyService.earn("user-1", 500, "tx-boundary")

        assert outcome.earned_points == 5
        assert outcome.previous_tier == "bronze"
        assert outcome.tier == "silver"
        assert outcome.tier_changed
        points_account.refresh_from_db()
        assert points_account.tier == "silver"
        assert points_account.tier_points == 10_004

    def test_next_earn_uses_new_multiplier(self, points_account):
        LedgerAccount.objects.filter(pk=points_account.pk).update(tier_points=9_999)
        LoyaltyService.earn("user-1", 500, "tx-a")

        outcome = LoyaltyService.earn("user-1", 10_000, "tx-b")

        assert outcome.multiplier == Decimal("1.1")
        assert outcome.earned_points == 110

    def test_multiplier_from_tier_before_earn(self, points_account):
        """A purchase that crosses a threshold earns at the old rate."""
        LedgerAccount.objects.filter(pk=points_account.pk).update(tier_points=9_900)

        outcome = LoyaltyService.earn("user-1", 100_000, "tx-big")

        assert outcome.multiplier == Decimal("1.0")
        assert outcome.earned_points == 1_000
        assert outcome.tier == "silver"

    def test_redeem_does_not_lower_tier(self, points_account, grant_points):
        LedgerAccount.objects.filter(pk=points_account.pk).update(tier_points=10_000, tier="silver")
        grant_points("user-1", 1_000)

        LoyaltyService.redeem("user-1", 1_000)

        points_account.refresh_from_db()
        assert points_account.tier == "silver"
        assert points_account.tier_points == 10_000


# ═══════════════════════════════════════════════════════════════════
# Redeem into wallet
# ═══════════════════════════════════════════════════════════════════


class TestRedeem:
    def test_redeem_moves_value(self, funded_points):
        outcome = LoyaltyService.redeem("user-1", 500)

        assert outcome.value == 500
        assert outcome.new_points_balance == 500
        assert outcome.new_currency_balance == 500
        assert wallet.get_wallet("user-1").balance == 500

        legs = JournalEntry.objects.filter(reference=outcome.reference)
        assert sorted(e.delta for e in legs) == [-500, 500]

    def test_insufficient_points(self, db):
        LoyaltyService.earn("user-1", 10_000, "tx-1")

        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.redeem("user-1", 150)

        assert exc.value.code == "INSUFFICIENT_POINTS"
        assert LoyaltyService.get_account("user-1").balance == 100
        assert wallet.get_wallet("user-1").balance == 0

    def test_minimum_redemption(self, funded_points):
        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.redeem("user-1", 99)
        assert exc.value.code == "INVALID_AMOUNT"

    def test_second_leg_failure_rolls_back_both(self, funded_points):
        real_post = ledger.post
        calls = []

        def failing_post(*args, **kwargs):
            calls.append(args)
            if len(calls) == 2:
                raise RuntimeError("currency leg failed")
            return real_post(*args, **kwargs)

        with patch.object(ledger, "post", side_effect=failing_post):
            with pytest.raises(RuntimeError):
                LoyaltyService.redeem("user-1", 500)

        funded_points.refresh_from_db()
        assert funded_points.balance == 1_000
        assert wallet.get_wallet("user-1").balance == 0
        assert not JournalEntry.objects.filter(kind=EntryKind.REDEEM).exists()
        assert ledger.verify_account(funded_points).consistent


# ═══════════════════════════════════════════════════════════════════
# Merchant redemption
# ═══════════════════════════════════════════════════════════════════


class TestMerchantRedeem:
    def test_merchant_redeem(self, funded_points):
        outcome = LoyaltyService.merchant_redeem("user-1", 300, "store-1", reference="pos-1")

        assert outcome.discount_value == 300
        assert outcome.new_balance == 700
        entry = JournalEntry.objects.get(pk=outcome.entry_id)
        assert entry.source == "merchant"
        assert entry.metadata == {"merchant_id": "store-1"}

    def test_unknown_customer(self, db):
        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.merchant_redeem("ghost", 100, "store-1")
        assert exc.value.code == "ACCOUNT_NOT_FOUND"

    def test_repeat_pos_reference(self, funded_points):
        LoyaltyService.merchant_redeem("user-1", 100, "store-1", reference="pos-2")

        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.merchant_redeem("user-1", 100, "store-1", reference="pos-2")

        assert exc.value.code == "DUPLICATE_OPERATION"
        assert LoyaltyService.get_account("user-1").balance == 900

    def test_insufficient(self, funded_points):
        with pytest.raises(LedgermanError) as exc:
            LoyaltyService.merchant_redeem("user-1", 5_000, "store-1")
        assert exc.value.code == "INSUFFICIENT_POINTS"


# ═══════════════════════════════════════════════════════════════════
# Queries
# ═══════════════════════════════════════════════════════════════════


class TestQueries:
    def test_balance_of_unknown_user(self, db):
        balance = LoyaltyService.get_balance("nobody")

        assert balance.points_balance == 0
        assert balance.tier.code == "bronze"
        assert balance.next_tier.code == "silver"
        assert balance.points_to_next == 10_000
        assert LoyaltyService.get_account("nobody") is None

    def test_balance(self, funded_points):
        balance = LoyaltyService.get_balance("user-1")
        assert balance.points_balance == 1_000
        assert balance.lifetime_points == 1_000
        assert balance.tier_points == 1_000
        assert balance.points_to_next == 9_000

    def test_history(self, funded_points):
        LoyaltyService.merchant_redeem("user-1", 100, "store-1")

        page = LoyaltyService.get_history("user-1")
        assert page.total == 2
        assert page.items[0].kind == EntryKind.REDEEM

        earned = LoyaltyService.get_history("user-1", entry_kind=EntryKind.EARN)
        assert earned.total == 1

    def test_tier_table(self):
        table = LoyaltyService.tier_table()

        tiers = table["tiers"]
        assert [t["id"] for t in tiers] == ["bronze", "silver", "gold", "platinum", "diamond"]
        assert tiers[0]["max_points"] == 9_999
        assert tiers[-1]["max_points"] is None
        assert table["redemption_rate"]["rate"] == 1

    def test_program_stats(self, funded_points):
        LoyaltyService.merchant_redeem("user-1", 300, "store-1")
        LoyaltyService.earn("user-2", 20_000, "tx-u2")

        stats = LoyaltyService.program_stats()

        overview = stats["overview"]
        assert overview["total_accounts"] == 2
        assert overview["total_points_outstanding"] == 900
        assert overview["total_points_earned"] == 1_200
        assert overview["points_liability"] == 900

        bronze = next(t for t in stats["tier_distribution"] if t["tier"] == "bronze")
        assert bronze["count"] == 2

        by_kind = {row["kind"]: row for row in stats["transaction_stats"]}
        assert by_kind["earn"]["count"] == 2
        assert by_kind["earn"]["total_points"] == 1_200
        assert by_kind["redeem"]["total_points"] == 300
