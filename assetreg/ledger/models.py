"""Value objects exchanged with the ledger."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from typing import Any

# Contract surface shared by every ledger backend.
RECORD_FUNCTION = "record-asset-hash"
LOOKUP_FUNCTION = "get-asset-record"
RECORDED_EVENT = "asset-recorded"

MAX_ASSET_ID_BYTES = 64
HASH_BYTES = 32


@dataclass(frozen=True)
class AssetRecord:
    """The on-ledger record for one asset id.

    ``recorded_at`` (block height) and ``recorded_by`` (signer principal)
    are assigned by the ledger, never by the caller.
    """

    asset_id: str
    data_hash: bytes
    recorded_at: int
    recorded_by: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "data_hash": self.data_hash.hex(),
            "recorded_at": self.recorded_at,
            "recorded_by": self.recorded_by,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AssetRecord":
        raw_hash = data["data_hash"]
        if isinstance(raw_hash, str):
            raw_hash = bytes.fromhex(raw_hash.removeprefix("0x"))
        return cls(
            asset_id=str(data["asset_id"]),
            data_hash=bytes(raw_hash),
            recorded_at=int(data["recorded_at"]),
            recorded_by=str(data["recorded_by"]),
        )


@dataclass(frozen=True)
class Confirmation:
    """Handle for a submitted (not necessarily included) record write."""

    asset_id: str
    data_hash: bytes
    transaction_id: str
    submitted_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "data_hash": self.data_hash.hex(),
            "transaction_id": self.transaction_id,
            "submitted_at": self.submitted_at.isoformat(),
        }


class TxState(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    REJECTED = "rejected"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class TxStatus:
    transaction_id: str
    state: TxState
    block_height: int | None = None
    reason: str | None = None

    @property
    def final(self) -> bool:
        return self.state in (TxState.SUCCESS, TxState.REJECTED)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


class VerifyResult(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    NO_RECORD = "no_record"


@dataclass(frozen=True)
class Verification:
    """Outcome of comparing a recomputed digest with the ledger record."""

    asset_id: str
    result: VerifyResult
    digest: bytes
    record: AssetRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "asset_id": self.asset_id,
            "result": self.result.value,
            "digest": self.digest.hex(),
            "record": self.record.to_dict() if self.record else None,
        }
