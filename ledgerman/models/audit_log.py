"""AuditLog model - storage for the default audit sink."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class AuditLog(models.Model):
    """One audited action. Written after commit, never updated."""

    action = models.CharField(_("action"), max_length=64, db_index=True)
    actor_id = models.CharField(_("actor"), max_length=64, blank=True)
    target_type = models.CharField(_("target type"), max_length=50)
    target_id = models.CharField(_("target id"), max_length=64)
    description = models.CharField(_("description"), max_length=255)
    metadata = models.JSONField(_("metadata"), default=dict, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True, db_index=True)

    class Meta:
        db_table = "ledgerman_audit_log"
        verbose_name = _("audit log")
        verbose_name_plural = _("audit logs")
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["target_type", "target_id"], name="ledgerman_audit_target_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.target_type}:{self.target_id}"
