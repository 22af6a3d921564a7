"""Ledgerman protocols."""

from ledgerman.protocols.audit import AuditSink

__all__ = [
    "AuditSink",
]
