"""
Ledgerman configuration.

Usage in settings.py:
    LEDGERMAN = {
        "BASE_EARN_RATE": "0.01",
        "POINTS_EXPIRY_DAYS": 365,
        "AUDIT_SINK": "ledgerman.adapters.audit.LoggingAuditSink",
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class LedgermanSettings:
    """Ledgerman configuration settings."""

    # Loyalty earning: points per minor currency unit spent
    BASE_EARN_RATE: Decimal = Decimal("0.01")
    POINTS_EXPIRY_DAYS: int = 365
    MIN_REDEMPTION_POINTS: int = 100

    # Bounded retries for optimistic-lock conflicts
    MAX_MUTATION_ATTEMPTS: int = 3

    # Audit sink implementation (dotted path)
    AUDIT_SINK: str = "ledgerman.adapters.audit.ModelAuditSink"

    # Wallet top-up limits (minor units)
    CHARGE_MIN: int = 1_000
    CHARGE_MAX: int = 3_000_000
    DAILY_CHARGE_LIMIT: int = 500_000
    MONTHLY_CHARGE_LIMIT: int = 2_000_000
    MAX_WALLET_BALANCE: int = 3_000_000

    def __post_init__(self):
        self.BASE_EARN_RATE = Decimal(str(self.BASE_EARN_RATE))


def get_ledgerman_settings() -> LedgermanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "LEDGERMAN", {})
    return LedgermanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ledgerman_settings(), name)


ledgerman_settings = _LazySettings()
