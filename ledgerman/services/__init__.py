"""Ledgerman services (CORE only).

CORE services are exported here. Contrib services are in their respective modules:
- ledgerman.contrib.loyalty: LoyaltyService
- ledgerman.contrib.rewards: RewardService
"""

from ledgerman.services import audit
from ledgerman.services import ledger
from ledgerman.services import wallet

__all__ = ["audit", "ledger", "wallet"]
