"""Service layer wiring sources, digest engine and ledger recorder."""

from assetreg.services.audit import (
    AuditResult,
    AuditService,
    build_audit_service,
    build_recorder,
    build_source,
)

__all__ = [
    "AuditResult",
    "AuditService",
    "build_audit_service",
    "build_recorder",
    "build_source",
]
