"""Ledgerman exceptions."""


class LedgermanError(Exception):
    """
    Structured exception for ledger operations.

    Carries a stable ``code`` plus free-form ``data`` so callers can
    translate failures into user-facing responses.

    Usage:
        try:
            ledger.mutate(account.pk, -500, "payment")
        except LedgermanError as e:
            if e.code == "INSUFFICIENT_BALANCE":
                handle_insufficient(e.data["available"])
    """

    _default_messages = {
        "INSUFFICIENT_BALANCE": "Insufficient balance",
        "INSUFFICIENT_POINTS": "Insufficient points balance",
        "DUPLICATE_OPERATION": "Operation already applied for this reference",
        "REWARD_NOT_FOUND": "Reward not found",
        "REWARD_UNAVAILABLE": "Reward is not currently available",
        "REWARD_EXPIRED": "Reward has expired",
        "REWARD_EXHAUSTED": "Reward is no longer available",
        "ACCOUNT_NOT_FOUND": "Ledger account not found",
        "INVALID_AMOUNT": "Invalid amount",
        "INVALID_KIND": "Entry kind not allowed for this account",
        "INVALID_REFERENCE": "A reference is required for this operation",
        "LIMIT_EXCEEDED": "Charge limit exceeded",
        "STORAGE_CONFLICT": "Concurrent modification detected",
        "STORAGE_FAULT": "Ledger storage failure",
    }

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class StorageConflict(LedgermanError):
    """Optimistic-lock or lock-wait failure. Recoverable by re-running the unit."""

    def __init__(self, message: str | None = None, **data):
        super().__init__("STORAGE_CONFLICT", message=message, **data)


# Codes surfaced to callers as typed results instead of exceptions
DOMAIN_ERROR_CODES = frozenset(
    code for code in LedgermanError._default_messages
    if code not in ("STORAGE_CONFLICT", "STORAGE_FAULT")
)
