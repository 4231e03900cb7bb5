"""Audit logging package."""

from nixbucks.audit.logger import AuditLogger

__all__ = ["AuditLogger"]
