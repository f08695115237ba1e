"""Pydantic request/response models for the asset registry API."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

_ASSET_ID_RE = re.compile(r"^[\x20-\x7e]+$")
_HEX_DIGEST_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


# ---------------------------------------------------------------------------
# Audit / verify from source
# ---------------------------------------------------------------------------

class AuditRequest(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    asset_id: str = Field(..., min_length=1, max_length=64, alias="assetId")
    sheet_name: str = Field(..., min_length=1, max_length=200, alias="sheetName")
    range_override: str | None = Field(default=None, max_length=200, alias="rangeOverride")

    @field_validator("asset_id")
    @classmethod
    def validate_asset_id(cls, v: str) -> str:
        if not v.strip() or not _ASSET_ID_RE.match(v):
            raise ValueError("asset_id must be non-blank printable ASCII.")
        return v

    @field_validator("sheet_name")
    @classmethod
    def validate_sheet_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("sheet_name must not be blank.")
        return v

    @field_validator("range_override")
    @classmethod
    def validate_range_override(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("range_override must not be blank.")
        return v


class AuditResponse(BaseModel):
    message: str = "Asset hash successfully recorded. Awaiting confirmation."
    asset_id: str
    digest: str
    transaction_id: str


# ---------------------------------------------------------------------------
# Records / verification
# ---------------------------------------------------------------------------

class AssetRecordResponse(BaseModel):
    asset_id: str
    data_hash: str
    recorded_at: int
    recorded_by: str


class DigestVerifyRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    digest: str

    @field_validator("digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        if not _HEX_DIGEST_RE.match(v.strip()):
            raise ValueError("digest must be 64 hexadecimal characters.")
        return v.strip()


class VerifyResponse(BaseModel):
    asset_id: str
    result: str
    digest: str
    record: AssetRecordResponse | None = None


class TxStatusResponse(BaseModel):
    transaction_id: str
    state: str
    block_height: int | None = None
    reason: str | None = None


# ---------------------------------------------------------------------------
# Errors / health
# ---------------------------------------------------------------------------

class ErrorResponse(BaseModel):
    error: str
    detail: str
    reason: str | None = None
    retriable: bool = False
    outcome_unknown: bool = False


class HealthResponse(BaseModel):
    status: str = "healthy"
    ledger_backend: str = ""
    ledger_reachable: bool = False
    source_configured: bool = False
    authority: str = ""
