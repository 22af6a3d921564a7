"""
Tier engine - derives a loyalty tier from accumulated tier points.

Pure functions over an ordered tier table; no I/O. A tier applies from its
``min_tier_points`` (inclusive) up to the next tier's minimum (exclusive);
the top tier is unbounded.

Usage:
    from ledgerman.tiers import tier_engine

    status = tier_engine.tier_for(12_000)
    status.tier.code        # "silver"
    status.earn_multiplier  # Decimal("1.1")
    status.points_to_next   # 38_000
"""

from dataclasses import dataclass, field
from decimal import Decimal

from ledgerman.models.account import LoyaltyTier


@dataclass(frozen=True)
class Tier:
    """One bracket of the tier table."""

    code: str
    name: str
    min_tier_points: int
    earn_multiplier: Decimal
    benefits: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TierStatus:
    """Result of a tier lookup."""

    tier: Tier
    next_tier: Tier | None
    points_to_next: int | None

    @property
    def earn_multiplier(self) -> Decimal:
        return self.tier.earn_multiplier


DEFAULT_TIERS = (
    Tier(
        LoyaltyTier.BRONZE, "Bronze", 0, Decimal("1.0"),
        ("Basic points earning (1 point per 100 KRW)", "Access to standard rewards"),
    ),
    Tier(
        LoyaltyTier.SILVER, "Silver", 10_000, Decimal("1.1"),
        ("10% bonus points on all purchases", "Priority customer support", "Early access to promotions"),
    ),
    Tier(
        LoyaltyTier.GOLD, "Gold", 50_000, Decimal("1.25"),
        ("25% bonus points on all purchases", "Free delivery on orders over 30,000 KRW",
         "Exclusive member discounts", "Birthday bonus points"),
    ),
    Tier(
        LoyaltyTier.PLATINUM, "Platinum", 100_000, Decimal("1.5"),
        ("50% bonus points on all purchases", "Free delivery on all orders",
         "VIP customer service", "Special event invitations"),
    ),
    Tier(
        LoyaltyTier.DIAMOND, "Diamond", 200_000, Decimal("2.0"),
        ("100% bonus points on all purchases", "Unlimited free delivery",
         "Dedicated account manager", "Exclusive Diamond-only rewards"),
    ),
)


class TierEngine:
    """
    Lookup over an ordered tier table.

    The table must start at 0, have strictly increasing minimums and
    multipliers >= 1, so every non-negative value maps to exactly one tier.
    """

    def __init__(self, tiers=DEFAULT_TIERS):
        tiers = tuple(tiers)
        if not tiers:
            raise ValueError("Tier table is empty")
        if tiers[0].min_tier_points != 0:
            raise ValueError("First tier must start at 0 tier points")
        for lower, upper in zip(tiers, tiers[1:]):
            if upper.min_tier_points <= lower.min_tier_points:
                raise ValueError(
                    f"Tier {upper.code!r} must start above {lower.code!r}"
                )
        for tier in tiers:
            if tier.earn_multiplier < 1:
                raise ValueError(f"Tier {tier.code!r} multiplier below 1.0")
        self.tiers = tiers

    def tier_for(self, tier_points: int) -> TierStatus:
        if tier_points < 0:
            raise ValueError("Tier points cannot be negative")

        index = 0
        for i, tier in enumerate(self.tiers):
            if tier_points >= tier.min_tier_points:
                index = i
            else:
                break

        if index + 1 < len(self.tiers):
            next_tier = self.tiers[index + 1]
            return TierStatus(
                tier=self.tiers[index],
                next_tier=next_tier,
                points_to_next=next_tier.min_tier_points - tier_points,
            )
        return TierStatus(tier=self.tiers[index], next_tier=None, points_to_next=None)

    def get(self, code: str) -> Tier:
        for tier in self.tiers:
            if tier.code == code:
                return tier
        raise KeyError(code)

    def rank(self, code: str) -> int:
        """Position of a tier in the ordering (0 = lowest)."""
        return self.tiers.index(self.get(code))

    def max_points(self, code: str) -> int | None:
        """Inclusive upper bound of a tier, None for the top tier."""
        i = self.rank(code)
        if i + 1 < len(self.tiers):
            return self.tiers[i + 1].min_tier_points - 1
        return None


tier_engine = TierEngine()
