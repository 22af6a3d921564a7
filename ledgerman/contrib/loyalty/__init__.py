"""
Ledgerman Loyalty - tiered points program on top of the ledger.

Points live in the user's points LedgerAccount; no extra models.

Usage:
    from ledgerman.contrib.loyalty import LoyaltyService

    LoyaltyService.earn("user-1", 10_000, "tx-1", "payment")
    balance = LoyaltyService.get_balance("user-1")
    LoyaltyService.redeem("user-1", 500)
"""


def __getattr__(name):
    if name == "LoyaltyService":
        from ledgerman.contrib.loyalty.service import LoyaltyService

        return LoyaltyService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LoyaltyService"]
