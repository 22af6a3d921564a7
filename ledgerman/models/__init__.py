"""Ledgerman models (CORE only).

Contrib models live in their own apps:
- ledgerman.contrib.rewards: Reward, RewardRedemption
"""

from ledgerman.models.account import AccountKind, LedgerAccount, LoyaltyTier
from ledgerman.models.entry import EntryKind, JournalEntry
from ledgerman.models.audit_log import AuditLog

__all__ = [
    "AccountKind",
    "LedgerAccount",
    "LoyaltyTier",
    "EntryKind",
    "JournalEntry",
    "AuditLog",
]
