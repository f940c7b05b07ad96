"""Persistent stores for docguard state."""

from .audit_log import MAX_ENTRIES, AuditLog, read_log

__all__ = ["AuditLog", "MAX_ENTRIES", "read_log"]
