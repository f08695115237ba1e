"""Ledger read endpoints - records, digest verification, transaction status."""

from fastapi import APIRouter, Depends

from assetreg.api.auth import rate_limit_reads
from assetreg.api.deps import get_service
from assetreg.api.models import (
    AssetRecordResponse,
    DigestVerifyRequest,
    TxStatusResponse,
    VerifyResponse,
)
from assetreg.errors import RecordNotFound
from assetreg.integrity.digest import from_hex
from assetreg.services.audit import AuditService

router = APIRouter(prefix="/api", tags=["assets"], dependencies=[Depends(rate_limit_reads)])


@router.get("/assets/{asset_id}", response_model=AssetRecordResponse)
def get_asset(asset_id: str, service: AuditService = Depends(get_service)):
    record = service.recorder.lookup(asset_id)
    if record is None:
        raise RecordNotFound(asset_id)
    return record.to_dict()


@router.post("/assets/{asset_id}/verify", response_model=VerifyResponse)
def verify_digest(
    asset_id: str,
    request: DigestVerifyRequest,
    service: AuditService = Depends(get_service),
):
    """Compare a caller-supplied hex digest with the recorded one."""
    return service.recorder.verify(asset_id, from_hex(request.digest)).to_dict()


@router.get("/transactions/{transaction_id}", response_model=TxStatusResponse)
def get_transaction(transaction_id: str, service: AuditService = Depends(get_service)):
    return service.recorder.transaction_status(transaction_id).to_dict()
