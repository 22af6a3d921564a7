"""
Ledgerman Rewards - bounded-inventory reward catalog paid with points.

Usage:
    INSTALLED_APPS = [
        ...
        "ledgerman",
        "ledgerman.contrib.rewards",
    ]

    from ledgerman.contrib.rewards import RewardService

    reward = RewardService.create("Coffee voucher", points_required=500, quantity=100)
    offers = RewardService.list_available("user-1")
    outcome = RewardService.redeem("user-1", reward.pk)
"""


def __getattr__(name):
    if name == "RewardService":
        from ledgerman.contrib.rewards.service import RewardService

        return RewardService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["RewardService"]
