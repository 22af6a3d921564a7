"""Audit dispatch - fire-and-forget delivery of audit events and signals.

Everything here runs from transaction.on_commit(). Failures are logged and
never propagate into the mutation path.
"""

import logging

from django.db import transaction
from django.utils.module_loading import import_string

from ledgerman.conf import ledgerman_settings
from ledgerman.protocols.audit import AuditSink

logger = logging.getLogger(__name__)


def get_sink() -> AuditSink:
    """Instantiate the configured AuditSink."""
    sink_class = import_string(ledgerman_settings.AUDIT_SINK)
    return sink_class()


def record(
    action: str,
    actor_id: str,
    target_type: str,
    target_id,
    description: str,
    metadata: dict | None = None,
) -> None:
    """Schedule an audit event for delivery once the current transaction commits."""

    def deliver():
        try:
            get_sink().record(
                action,
                actor_id,
                target_type,
                str(target_id),
                description,
                metadata or {},
            )
        except Exception:
            logger.exception("Audit sink failed for %s %s:%s", action, target_type, target_id)

    transaction.on_commit(deliver)


def send_after_commit(signal, sender, **kwargs) -> None:
    """Send a signal with send_robust() once the current transaction commits."""

    def deliver():
        for receiver, response in signal.send_robust(sender=sender, **kwargs):
            if isinstance(response, Exception):
                logger.error(
                    "Signal receiver %r failed: %s",
                    receiver,
                    response,
                    exc_info=(type(response), response, response.__traceback__),
                )

    transaction.on_commit(deliver)
