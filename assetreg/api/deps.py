"""Shared FastAPI dependencies."""

import threading

from fastapi import Request

from assetreg.config import get_config
from assetreg.services.audit import AuditService, build_audit_service

_service_lock = threading.Lock()


def get_service(request: Request) -> AuditService:
    """Return the app's audit service, building it from config on first use."""
    state = request.app.state
    if state.audit_service is None:
        with _service_lock:
            if state.audit_service is None:
                state.audit_service = build_audit_service(get_config())
    return state.audit_service
