from .strict_audit import StrictAuditService

__all__ = ["StrictAuditService"]
