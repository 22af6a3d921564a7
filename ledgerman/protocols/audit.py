"""Audit sink protocol for cross-app communication."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class AuditSink(Protocol):
    """
    Receives one structured event per ledger mutation.

    Called after the mutation commits. Implementations may block or fail;
    neither affects the committed ledger state.

    Configuration in settings.py:
        LEDGERMAN = {
            "AUDIT_SINK": "ledgerman.adapters.audit.ModelAuditSink",
        }
    """

    def record(
        self,
        action: str,
        actor_id: str,
        target_type: str,
        target_id: str,
        description: str,
        metadata: dict | None = None,
    ) -> None:
        ...
