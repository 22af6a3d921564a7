"""
Ledgerman signals - public event API.

All signals are sent after the originating transaction commits, with
send_robust(), so receivers (push, email, SMS) can never roll back a
ledger mutation.

Emitted signals:
- balance_changed: sender=LedgerAccount, account=LedgerAccount, entry=JournalEntry
- tier_changed: sender=LedgerAccount, account=LedgerAccount, old_tier=str, new_tier=str
- reward_redeemed: sender=Reward, reward=Reward, redemption=RewardRedemption
"""

from django.dispatch import Signal

balance_changed = Signal()
tier_changed = Signal()
reward_redeemed = Signal()
