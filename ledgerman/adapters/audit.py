"""Built-in AuditSink implementations."""

import logging

from ledgerman.models import AuditLog

logger = logging.getLogger(__name__)


class ModelAuditSink:
    """Adapter: persists audit events as AuditLog rows."""

    def record(self, action, actor_id, target_type, target_id, description, metadata=None):
        AuditLog.objects.create(
            action=action,
            actor_id=actor_id or "",
            target_type=target_type,
            target_id=str(target_id),
            description=description[:255],
            metadata=metadata or {},
        )


class LoggingAuditSink:
    """Adapter: writes audit events to the ``ledgerman.audit`` logger."""

    audit_logger = logging.getLogger("ledgerman.audit")

    def record(self, action, actor_id, target_type, target_id, description, metadata=None):
        self.audit_logger.info(
            "%s actor=%s target=%s:%s %s",
            action,
            actor_id,
            target_type,
            target_id,
            description,
            extra={"audit_metadata": metadata or {}},
        )
