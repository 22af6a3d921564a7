"""Wallet service - currency ledger flows (payment, refund, top-up).

Thin layer over the ledger primitive. Every balance change goes through
ledger.mutate() or ledger.post(); nothing here reads-then-writes a balance.
"""

import logging
from dataclasses import dataclass

from django.db.models import Sum
from django.utils import timezone

from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError
from ledgerman.models import AccountKind, EntryKind, LedgerAccount
from ledgerman.services import audit, ledger

logger = logging.getLogger(__name__)

CHARGE_SOURCE = "charge"


@dataclass(frozen=True)
class LimitUsage:
    limit: int
    used: int
    remaining: int


@dataclass(frozen=True)
class WalletLimits:
    """Charge limits with current usage, for display before a top-up."""

    daily: LimitUsage
    monthly: LimitUsage
    balance: LimitUsage


def get_wallet(user_id: str) -> LedgerAccount | None:
    """Get the user's currency wallet, or None."""
    return ledger.get_account(user_id, AccountKind.CURRENCY)


def get_or_create_wallet(user_id: str) -> LedgerAccount:
    return ledger.get_or_create_account(user_id, AccountKind.CURRENCY)


def charge_usage(account: LedgerAccount) -> tuple[int, int]:
    """Charged amounts for today and this month (local time), as (daily, monthly)."""
    day_start = timezone.localtime().replace(hour=0, minute=0, second=0, microsecond=0)
    month_start = day_start.replace(day=1)
    charges = account.entries.filter(kind=EntryKind.TOPUP, source=CHARGE_SOURCE)
    used_today = charges.filter(created_at__gte=day_start).aggregate(t=Sum("delta"))["t"] or 0
    used_month = charges.filter(created_at__gte=month_start).aggregate(t=Sum("delta"))["t"] or 0
    return used_today, used_month


def get_limits(user_id: str) -> WalletLimits:
    """Daily, monthly and balance limits with usage. Unknown wallets read as unused."""
    s = ledgerman_settings
    account = get_wallet(user_id)
    if account is None:
        used_today = used_month = balance = 0
    else:
        used_today, used_month = charge_usage(account)
        balance = account.balance

    def usage(limit, used):
        return LimitUsage(limit=limit, used=used, remaining=max(0, limit - used))

    return WalletLimits(
        daily=usage(s.DAILY_CHARGE_LIMIT, used_today),
        monthly=usage(s.MONTHLY_CHARGE_LIMIT, used_month),
        balance=usage(s.MAX_WALLET_BALANCE, balance),
    )


def mutate_currency(
    user_id: str,
    delta: int,
    kind: str,
    reference: str = "",
    *,
    source: str = "",
    description: str = "",
    metadata: dict | None = None,
    created_by: str = "",
) -> ledger.MutationResult:
    """
    Apply a signed currency mutation to the user's wallet.

    Used by payment, refund, top-up and delivery flows. ``kind`` must be a
    currency kind (payment, refund, topup, adjust).
    """
    account = get_or_create_wallet(user_id)
    return ledger.mutate(
        account.pk,
        delta,
        kind,
        reference=reference,
        source=source or kind,
        description=description,
        metadata=metadata,
        created_by=created_by or user_id,
    )


def pay(
    user_id: str,
    amount: int,
    reference: str,
    description: str = "",
    merchant_id: str = "",
) -> ledger.MutationResult:
    """Debit the wallet for a purchase (ex: delivery order)."""
    if amount <= 0:
        raise LedgermanError("INVALID_AMOUNT", message="Payment amount must be positive")
    return mutate_currency(
        user_id,
        -amount,
        EntryKind.PAYMENT,
        reference,
        description=description or "Payment",
        metadata={"merchant_id": merchant_id} if merchant_id else None,
    )


def refund(
    user_id: str,
    amount: int,
    reference: str,
    description: str = "",
) -> ledger.MutationResult:
    """Credit the wallet back. Idempotent per reference."""
    if amount <= 0:
        raise LedgermanError("INVALID_AMOUNT", message="Refund amount must be positive")
    return mutate_currency(
        user_id,
        amount,
        EntryKind.REFUND,
        reference,
        description=description or "Refund",
    )


def charge(user_id: str, amount: int, reference: str = "") -> ledger.MutationResult:
    """
    Top up the wallet, enforcing charge limits.

    Daily and monthly usage are summed from the journal while the account
    row is locked, so concurrent charges cannot both slip under a limit.

    Raises:
        LedgermanError: INVALID_AMOUNT, LIMIT_EXCEEDED, DUPLICATE_OPERATION
    """
    s = ledgerman_settings
    if not s.CHARGE_MIN <= amount <= s.CHARGE_MAX:
        raise LedgermanError(
            "INVALID_AMOUNT",
            message=f"Amount must be between {s.CHARGE_MIN:,} and {s.CHARGE_MAX:,}",
            amount=amount,
        )

    account = get_or_create_wallet(user_id)

    def _apply():
        locked = ledger.lock_account(account.pk)

        used_today, used_month = charge_usage(locked)

        if used_today + amount > s.DAILY_CHARGE_LIMIT:
            raise LedgermanError(
                "LIMIT_EXCEEDED", message="Daily charge limit exceeded",
                limit="daily", used=used_today,
            )
        if used_month + amount > s.MONTHLY_CHARGE_LIMIT:
            raise LedgermanError(
                "LIMIT_EXCEEDED", message="Monthly charge limit exceeded",
                limit="monthly", used=used_month,
            )
        if locked.balance + amount > s.MAX_WALLET_BALANCE:
            raise LedgermanError(
                "LIMIT_EXCEEDED", message="Maximum balance limit exceeded",
                limit="balance", balance=locked.balance,
            )

        entry = ledger.post(
            locked,
            amount,
            EntryKind.TOPUP,
            reference=reference,
            source=CHARGE_SOURCE,
            description="Balance charge",
            created_by=user_id,
        )
        audit.record(
            "BALANCE_CHARGED",
            user_id,
            "wallet",
            locked.pk,
            f"Charged {amount:,} KRW",
            {"amount": amount, "reference": reference, "balance_after": locked.balance},
        )
        return ledger.MutationResult(account_id=locked.pk, new_balance=locked.balance, entry_id=entry.pk)

    return ledger.run_atomic(_apply)
