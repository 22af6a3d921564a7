"""
Django Ledgerman - Value ledger and loyalty accounting.

Usage:
    from ledgerman import LedgerService

    LedgerService.earn_points("user-1", 10_000, "tx-1", "payment")
    LedgerService.redeem_points("user-1", 500)
    LedgerService.redeem_reward("user-1", reward_id)
    LedgerService.get_balance("user-1")
    LedgerService.mutate_currency("user-1", -3000, "payment", "order:42")
"""


def __getattr__(name):
    if name == "LedgerService":
        from ledgerman.service import LedgerService

        return LedgerService
    if name == "LedgermanError":
        from ledgerman.exceptions import LedgermanError

        return LedgermanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["LedgerService", "LedgermanError"]
__version__ = "0.1.0"
