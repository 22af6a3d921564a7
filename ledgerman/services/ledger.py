"""Ledger service - the only path that changes a balance.

Every mutation is one atomic unit scoped to the account row: lock the row,
check the non-negative precondition, insert the journal entry, then
compare-and-swap the balance on ``version``. Both writes commit or neither
does. The version check keeps the unit correct on backends where
select_for_update() is a no-op.

Compound operations (earn with tier update, points-to-currency redemption,
reward redemption) lock their rows and call post() inside run_atomic().
"""

import logging
import math
import time
from dataclasses import dataclass

from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.db.models import Sum
from django.utils import timezone

from ledgerman.conf import ledgerman_settings
from ledgerman.exceptions import LedgermanError, StorageConflict
from ledgerman.models import AccountKind, EntryKind, JournalEntry, LedgerAccount
from ledgerman.services import audit
from ledgerman.signals import balance_changed

logger = logging.getLogger(__name__)


ALLOWED_KINDS = {
    AccountKind.POINTS: frozenset({
        EntryKind.EARN,
        EntryKind.REDEEM,
        EntryKind.EXPIRE,
        EntryKind.ADJUST,
        EntryKind.BONUS,
    }),
    AccountKind.CURRENCY: frozenset({
        EntryKind.PAYMENT,
        EntryKind.REFUND,
        EntryKind.TOPUP,
        EntryKind.ADJUST,
    }),
}
CREDIT_KINDS = frozenset({EntryKind.EARN, EntryKind.BONUS, EntryKind.REFUND, EntryKind.TOPUP})
DEBIT_KINDS = frozenset({EntryKind.REDEEM, EntryKind.EXPIRE, EntryKind.PAYMENT})

# Fields that only post() may write
_BALANCE_FIELDS = frozenset({"balance", "lifetime_inflow", "version"})


@dataclass(frozen=True)
class MutationResult:
    """Post-mutation state, so callers never need a second read."""

    account_id: int
    new_balance: int
    entry_id: int


@dataclass(frozen=True)
class Reconciliation:
    """Balance vs. journal sum for one account."""

    account_id: int
    user_id: str
    kind: str
    balance: int
    journal_total: int

    @property
    def consistent(self) -> bool:
        return self.balance == self.journal_total


@dataclass
class Page:
    items: list
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


# ======================================================================
# Accounts
# ======================================================================


def get_account(user_id: str, kind: str) -> LedgerAccount | None:
    """Get the user's account of the given kind, or None."""
    try:
        return LedgerAccount.objects.get(user_id=user_id, kind=kind)
    except LedgerAccount.DoesNotExist:
        return None


def get_or_create_account(user_id: str, kind: str) -> LedgerAccount:
    """Get or lazily create the user's account of the given kind."""
    account, created = LedgerAccount.objects.get_or_create(user_id=user_id, kind=kind)
    if created:
        logger.info("Created %s account for user %s", kind, user_id)
    return account


def lock_account(account_id: int) -> LedgerAccount:
    """
    Get account with row-level lock for mutation.

    MUST be called inside transaction.atomic().
    """
    try:
        return LedgerAccount.objects.select_for_update().get(pk=account_id, is_active=True)
    except LedgerAccount.DoesNotExist:
        raise LedgermanError("ACCOUNT_NOT_FOUND", account_id=account_id)


def lock_accounts(*account_ids: int) -> dict[int, LedgerAccount]:
    """
    Lock several accounts in ascending primary-key order.

    A fixed lock order keeps cross-ledger operations from deadlocking
    each other. MUST be called inside transaction.atomic().
    """
    wanted = sorted(set(account_ids))
    accounts = {
        account.pk: account
        for account in LedgerAccount.objects.select_for_update()
        .filter(pk__in=wanted, is_active=True)
        .order_by("pk")
    }
    missing = [pk for pk in wanted if pk not in accounts]
    if missing:
        raise LedgermanError("ACCOUNT_NOT_FOUND", account_id=missing[0])
    return accounts


# ======================================================================
# Mutation primitive
# ======================================================================


def run_atomic(fn, *args, **kwargs):
    """
    Run ``fn`` as one atomic unit, retrying on StorageConflict.

    Lock waits and serialization failures reported by the database are
    treated as conflicts. After MAX_MUTATION_ATTEMPTS the conflict surfaces
    as STORAGE_FAULT. Inside an outer atomic block nothing is retried: the
    conflict propagates to the owner of the outer transaction.
    """
    nested = transaction.get_connection().in_atomic_block
    attempts = 1 if nested else max(1, ledgerman_settings.MAX_MUTATION_ATTEMPTS)

    conflict = None
    for attempt in range(1, attempts + 1):
        try:
            with transaction.atomic():
                return fn(*args, **kwargs)
        except StorageConflict as exc:
            conflict = exc
        except OperationalError as exc:
            conflict = StorageConflict(str(exc))
        except DatabaseError as exc:
            raise LedgermanError("STORAGE_FAULT", detail=str(exc)) from exc

        if nested:
            raise conflict
        logger.warning(
            "Ledger conflict (attempt %d/%d): %s", attempt, attempts, conflict.message
        )
        if attempt < attempts:
            time.sleep(0.005 * attempt)

    raise LedgermanError("STORAGE_FAULT", attempts=attempts) from conflict


def validate_entry(account: LedgerAccount, delta: int, kind: str) -> None:
    """Check that ``kind`` fits the account and the sign of ``delta``."""
    if kind not in ALLOWED_KINDS[account.kind]:
        raise LedgermanError("INVALID_KIND", kind=kind, account_kind=account.kind)
    if not isinstance(delta, int) or isinstance(delta, bool) or delta == 0:
        raise LedgermanError("INVALID_AMOUNT", message="Delta must be a non-zero integer")
    if kind in CREDIT_KINDS and delta < 0:
        raise LedgermanError("INVALID_AMOUNT", message=f"'{kind}' entries must be positive")
    if kind in DEBIT_KINDS and delta > 0:
        raise LedgermanError("INVALID_AMOUNT", message=f"'{kind}' entries must be negative")


def post(
    account: LedgerAccount,
    delta: int,
    kind: str,
    *,
    reference: str = "",
    source: str = "",
    description: str = "",
    expires_at=None,
    metadata: dict | None = None,
    created_by: str = "",
) -> JournalEntry:
    """
    Apply one journaled mutation to a locked account.

    MUST be called inside transaction.atomic() with ``account`` obtained
    from lock_account() or lock_accounts(). Updates ``account`` in place.

    Raises:
        LedgermanError: INSUFFICIENT_BALANCE / INSUFFICIENT_POINTS,
            DUPLICATE_OPERATION, INVALID_KIND, INVALID_AMOUNT
        StorageConflict: If the row changed since it was read
    """
    validate_entry(account, delta, kind)

    new_balance = account.balance + delta
    if new_balance < 0:
        code = "INSUFFICIENT_POINTS" if account.kind == AccountKind.POINTS else "INSUFFICIENT_BALANCE"
        raise LedgermanError(code, available=account.balance, requested=-delta)

    try:
        with transaction.atomic():
            entry = JournalEntry.objects.create(
                account=account,
                delta=delta,
                kind=kind,
                balance_after=new_balance,
                source=source,
                reference=reference,
                description=description,
                expires_at=expires_at,
                metadata=metadata or {},
                created_by=created_by,
            )
    except IntegrityError:
        # Unique (account, kind, reference) is the idempotency guard
        if reference and JournalEntry.objects.filter(
            account=account, kind=kind, reference=reference
        ).exists():
            raise LedgermanError(
                "DUPLICATE_OPERATION",
                account_id=account.pk,
                kind=kind,
                reference=reference,
            )
        raise

    inflow = delta if delta > 0 else 0
    updated = LedgerAccount.objects.filter(pk=account.pk, version=account.version).update(
        balance=new_balance,
        lifetime_inflow=account.lifetime_inflow + inflow,
        version=account.version + 1,
        updated_at=timezone.now(),
    )
    if updated != 1:
        raise StorageConflict(account_id=account.pk)

    account.balance = new_balance
    account.lifetime_inflow += inflow
    account.version += 1

    logger.info(
        "Ledger %s %s %+d -> %d (account=%s ref=%s)",
        account.kind, kind, delta, new_balance, account.pk, reference or "-",
    )
    audit.send_after_commit(balance_changed, sender=LedgerAccount, account=account, entry=entry)
    return entry


def update_account(account: LedgerAccount, **fields) -> None:
    """
    Update non-balance fields of a locked account (tier, tier_points, ...).

    MUST be called inside the same atomic block that locked ``account``.
    """
    forbidden = _BALANCE_FIELDS.intersection(fields)
    if forbidden:
        raise ValueError(f"Balance fields change only through post(): {sorted(forbidden)}")

    updated = LedgerAccount.objects.filter(pk=account.pk, version=account.version).update(
        version=account.version + 1,
        updated_at=timezone.now(),
        **fields,
    )
    if updated != 1:
        raise StorageConflict(account_id=account.pk)

    for name, value in fields.items():
        setattr(account, name, value)
    account.version += 1


def mutate(
    account_id: int,
    delta: int,
    kind: str,
    *,
    reference: str = "",
    source: str = "",
    description: str = "",
    expires_at=None,
    metadata: dict | None = None,
    created_by: str = "",
) -> MutationResult:
    """
    Atomically apply ``delta`` to an account and journal it.

    Args:
        account_id: LedgerAccount primary key
        delta: Signed amount (positive=credit, negative=debit)
        kind: EntryKind allowed for the account kind
        reference: Idempotency key, unique per (account, kind)
        source: Originating flow (payment, reward, merchant, ...)
        description: Human-readable reason
        expires_at: Points expiry recorded on the entry
        metadata: Extra JSON stored on the entry
        created_by: Actor id

    Returns:
        MutationResult with the post-mutation balance and entry id

    Raises:
        LedgermanError: Domain error codes, or STORAGE_FAULT
    """

    def _apply():
        account = lock_account(account_id)
        entry = post(
            account,
            delta,
            kind,
            reference=reference,
            source=source,
            description=description,
            expires_at=expires_at,
            metadata=metadata,
            created_by=created_by,
        )
        audit.record(
            "LEDGER_MUTATION",
            created_by or account.user_id,
            "ledger_account",
            account.pk,
            description or f"{kind} {delta:+d}",
            {"delta": delta, "kind": kind, "reference": reference, "balance_after": account.balance},
        )
        return MutationResult(account_id=account.pk, new_balance=account.balance, entry_id=entry.pk)

    return run_atomic(_apply)


# ======================================================================
# Queries
# ======================================================================


def history(
    user_id: str,
    kind: str,
    entry_kind: str | None = None,
    page: int = 1,
    limit: int = 20,
) -> Page:
    """Journal entries for a user's account, most recent first."""
    page = max(1, page)
    limit = max(1, min(limit, 100))

    qs = JournalEntry.objects.filter(account__user_id=user_id, account__kind=kind)
    if entry_kind:
        qs = qs.filter(kind=entry_kind)

    total = qs.count()
    offset = (page - 1) * limit
    return Page(items=list(qs[offset:offset + limit]), page=page, limit=limit, total=total)


def verify_account(account: LedgerAccount) -> Reconciliation:
    """Compare the stored balance with the sum of the account's journal."""
    total = account.entries.aggregate(total=Sum("delta"))["total"] or 0
    return Reconciliation(
        account_id=account.pk,
        user_id=account.user_id,
        kind=account.kind,
        balance=account.balance,
        journal_total=total,
    )


def reconcile(user_id: str | None = None) -> list[Reconciliation]:
    """Verify every account (or one user's accounts)."""
    qs = LedgerAccount.objects.all().order_by("pk")
    if user_id:
        qs = qs.filter(user_id=user_id)
    return [verify_account(account) for account in qs]
