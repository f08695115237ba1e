"""In-process reference ledger implementing the asset-tracker contract.

Used for local development (``ASSETREG_LEDGER_BACKEND=memory``) and tests.
It enforces the same rules the on-chain contract does:

- the envelope signature must verify and the signer must be the authority
- at most one record per asset id; the existence check and the reservation
  happen atomically under one lock, so concurrent writers for the same id
  see exactly one acceptance
- records become visible to readers only once their transaction is
  included in a block (``mine()``), unless ``auto_mine`` is set
"""

from __future__ import annotations

import copy
import logging
import threading
from typing import Any

from assetreg.errors import AlreadyRecorded, LedgerRejected, NotAuthorized
from assetreg.ledger.models import (
    HASH_BYTES,
    LOOKUP_FUNCTION,
    MAX_ASSET_ID_BYTES,
    RECORD_FUNCTION,
    RECORDED_EVENT,
    AssetRecord,
    TxState,
    TxStatus,
)
from assetreg.ledger.signing import SignedEnvelope

logger = logging.getLogger(__name__)


def _arg(args: list[dict[str, str]], index: int, arg_type: str) -> str:
    try:
        item = args[index]
    except IndexError:
        raise LedgerRejected(f"Missing argument {index}", reason="bad-arguments") from None
    if item.get("type") != arg_type:
        raise LedgerRejected(f"Argument {index} must be {arg_type}", reason="bad-arguments")
    return str(item.get("value", ""))


class InMemoryLedger:
    """Thread-safe in-memory ledger with write-once asset records."""

    def __init__(self, contract: str, authority: str, *, auto_mine: bool = False) -> None:
        self.contract = contract
        self.authority = authority
        self.auto_mine = auto_mine
        self.block_height = 0
        self._records: dict[str, dict[str, Any]] = {}
        self._pending: dict[str, dict[str, Any]] = {}
        self._reserved: set[str] = set()
        self._statuses: dict[str, TxStatus] = {}
        self._events: list[dict[str, Any]] = []
        self._lock = threading.Lock()

    # -- LedgerNetwork --------------------------------------------------------

    def submit_transaction(self, envelope: SignedEnvelope) -> str:
        if envelope.contract != self.contract:
            raise LedgerRejected(f"Unknown contract {envelope.contract}", reason="unknown-contract")
        if envelope.function != RECORD_FUNCTION:
            raise LedgerRejected(f"Unknown public function {envelope.function}", reason="unknown-function")
        if not envelope.verify():
            raise NotAuthorized("Transaction signature does not verify.", reason="bad-signature")

        asset_id = _arg(envelope.args, 0, "string-ascii")
        hash_hex = _arg(envelope.args, 1, "buffer")
        if not asset_id or len(asset_id.encode("ascii", "replace")) > MAX_ASSET_ID_BYTES:
            raise LedgerRejected("Asset id out of bounds", reason="invalid-asset-id")
        try:
            data_hash = bytes.fromhex(hash_hex)
        except ValueError:
            raise LedgerRejected("Hash is not hex", reason="invalid-hash") from None
        if len(data_hash) != HASH_BYTES:
            raise LedgerRejected("Hash must be 32 bytes", reason="invalid-hash")

        txid = envelope.transaction_id
        with self._lock:
            if envelope.sender != self.authority:
                raise NotAuthorized(
                    f"Signer {envelope.sender} is not the registry authority.",
                    reason="not-authorized",
                )
            if asset_id in self._reserved:
                raise AlreadyRecorded(asset_id)
            self._reserved.add(asset_id)
            self._pending[txid] = {
                "asset_id": asset_id,
                "data_hash": data_hash,
                "recorded_by": envelope.sender,
            }
            self._statuses[txid] = TxStatus(transaction_id=txid, state=TxState.PENDING)
            if self.auto_mine:
                self._mine_locked()
        logger.debug("Accepted transaction %s for asset %s", txid, asset_id)
        return txid

    def query_state(self, contract: str, function: str, args: list[dict[str, str]]) -> Any:
        if contract != self.contract:
            raise LedgerRejected(f"Unknown contract {contract}", reason="unknown-contract")
        if function != LOOKUP_FUNCTION:
            raise LedgerRejected(f"Unknown read-only function {function}", reason="unknown-function")
        asset_id = _arg(args, 0, "string-ascii")
        with self._lock:
            record = self._records.get(asset_id)
            return copy.deepcopy(record) if record is not None else None

    def transaction_status(self, transaction_id: str) -> TxStatus:
        with self._lock:
            return self._statuses.get(
                transaction_id,
                TxStatus(transaction_id=transaction_id, state=TxState.UNKNOWN),
            )

    # -- Block production -----------------------------------------------------

    def mine(self) -> int:
        """Include all pending transactions in a new block; return its height."""
        with self._lock:
            return self._mine_locked()

    def _mine_locked(self) -> int:
        self.block_height += 1
        for txid, pending in self._pending.items():
            record = AssetRecord(
                asset_id=pending["asset_id"],
                data_hash=pending["data_hash"],
                recorded_at=self.block_height,
                recorded_by=pending["recorded_by"],
            )
            self._records[record.asset_id] = record.to_dict()
            self._statuses[txid] = TxStatus(
                transaction_id=txid,
                state=TxState.SUCCESS,
                block_height=self.block_height,
            )
            self._events.append({
                "event": RECORDED_EVENT,
                "asset_id": record.asset_id,
                "data_hash": record.data_hash.hex(),
                "recorded_at": record.recorded_at,
                "transaction_id": txid,
            })
        self._pending.clear()
        return self.block_height

    def events(self, asset_id: str | None = None) -> list[dict[str, Any]]:
        """Return emitted ``asset-recorded`` events, optionally for one asset."""
        with self._lock:
            return [
                dict(e) for e in self._events
                if asset_id is None or e["asset_id"] == asset_id
            ]
