"""Audit endpoints - digest a sheet range and record or verify it."""

import logging

from fastapi import APIRouter, Depends

from assetreg.api.auth import rate_limit_reads, rate_limit_writes
from assetreg.api.deps import get_service
from assetreg.api.models import AuditRequest, AuditResponse, VerifyResponse
from assetreg.services.audit import AuditService
from assetreg.sources.base import SourceSelector

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["audit"])


def _selector(request: AuditRequest) -> SourceSelector:
    return SourceSelector(sheet_name=request.sheet_name, range_override=request.range_override)


@router.post(
    "/audit-asset",
    response_model=AuditResponse,
    dependencies=[Depends(rate_limit_writes)],
)
def audit_asset(request: AuditRequest, service: AuditService = Depends(get_service)):
    """Read the sheet range, hash its data rows, and record the hash on the ledger.

    The record becomes visible once the transaction is included; poll
    ``/api/transactions/{transaction_id}`` for confirmation.
    """
    result = service.audit_asset(request.asset_id, _selector(request))
    return AuditResponse(
        asset_id=result.asset_id,
        digest=result.digest_hex,
        transaction_id=result.transaction_id,
    )


@router.post(
    "/verify-asset",
    response_model=VerifyResponse,
    dependencies=[Depends(rate_limit_reads)],
)
def verify_asset(request: AuditRequest, service: AuditService = Depends(get_service)):
    """Recompute the sheet range digest and compare it with the ledger record."""
    verification = service.verify_asset(request.asset_id, _selector(request))
    return verification.to_dict()
