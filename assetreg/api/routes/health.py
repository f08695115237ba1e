"""Health check endpoint."""

import logging

from fastapi import APIRouter, Depends

from assetreg.api.deps import get_service
from assetreg.api.models import HealthResponse
from assetreg.config import get_config
from assetreg.errors import LedgerError
from assetreg.services.audit import AuditService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])

# Any syntactically valid id works; the probe only needs a round trip.
_PROBE_ASSET_ID = "__health__"


@router.get("/health", response_model=HealthResponse)
def health(service: AuditService = Depends(get_service)):
    """Check ledger reachability and whether a data source is configured."""
    config = get_config()
    ledger_ok = False
    try:
        service.recorder.lookup(_PROBE_ASSET_ID)
        ledger_ok = True
    except LedgerError as exc:
        logger.warning("Ledger health check failed: %s", exc.kind)

    source_ok = bool(config.sheet_id)

    if ledger_ok and source_ok:
        status = "healthy"
    elif ledger_ok or source_ok:
        status = "degraded"
    else:
        status = "offline"

    return HealthResponse(
        status=status,
        ledger_backend=config.ledger_backend,
        ledger_reachable=ledger_ok,
        source_configured=source_ok,
        authority=service.recorder.authority,
    )
