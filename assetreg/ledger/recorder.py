"""Ledger Recorder: write-once recording, lookup and verification of digests.

The recorder never checks for an existing record before writing. The
"no record yet for this asset id" test is the ledger's atomic primitive; a
local pre-check would open a race window and a local cache could drift from
ledger truth. Concurrent writers for one asset id are therefore safe: the
ledger accepts one and the rest get ``AlreadyRecorded``.

Retry policy
------------
``record`` submits exactly once. If the submission fails in transit the
error is a ``LedgerTransportError`` with ``outcome_unknown=True`` and the
caller must ``lookup`` (or ``verify``) before deciding to resubmit.
"""

from __future__ import annotations

import hmac
import logging
import re
import threading
import time
from datetime import datetime, timezone

from assetreg.errors import (
    AlreadyRecorded,
    LedgerError,
    LedgerRejected,
    NotAuthorized,
    ValidationError,
)
from assetreg.integrity.digest import DIGEST_SIZE
from assetreg.ledger.models import (
    LOOKUP_FUNCTION,
    MAX_ASSET_ID_BYTES,
    RECORD_FUNCTION,
    AssetRecord,
    Confirmation,
    TxState,
    TxStatus,
    Verification,
    VerifyResult,
)
from assetreg.ledger.network import LedgerNetwork
from assetreg.ledger.signing import SigningCredential, ascii_arg, buffer_arg
from assetreg.utils import short_hex

logger = logging.getLogger(__name__)

# Printable ASCII, matching the contract's string-ascii argument type.
_ASSET_ID_RE = re.compile(r"^[\x20-\x7e]+$")

_AUTH_REASONS = {"not-authorized", "bad-signature"}


def validate_asset_id(asset_id: str) -> str:
    """Check an asset id is non-empty printable ASCII within the ledger bound."""
    if not isinstance(asset_id, str) or not asset_id.strip():
        raise ValidationError("asset_id is required.")
    if not _ASSET_ID_RE.match(asset_id):
        raise ValidationError("asset_id must contain printable ASCII characters only.")
    if len(asset_id.encode("ascii")) > MAX_ASSET_ID_BYTES:
        raise ValidationError(f"asset_id exceeds {MAX_ASSET_ID_BYTES} bytes.")
    return asset_id


def _typed_rejection(reason: str | None, message: str, asset_id: str) -> LedgerError:
    """Map a ledger rejection reason onto the registry's typed errors."""
    if reason == "already-recorded":
        return AlreadyRecorded(asset_id)
    if reason in _AUTH_REASONS:
        return NotAuthorized(message, reason=reason)
    return LedgerRejected(message, reason=reason)


def _validate_digest(digest: bytes) -> bytes:
    if not isinstance(digest, (bytes, bytearray)) or len(digest) != DIGEST_SIZE:
        raise ValidationError(f"digest must be exactly {DIGEST_SIZE} bytes.")
    return bytes(digest)


class LedgerRecorder:
    """Record, look up and verify asset digests on the ledger."""

    def __init__(
        self,
        network: LedgerNetwork,
        credential: SigningCredential,
        contract: str,
        authority: str,
        *,
        confirmation_timeout: float = 60.0,
        poll_interval: float = 5.0,
    ) -> None:
        self.network = network
        self.credential = credential
        self.contract = contract
        self.authority = authority
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval

    def record(self, asset_id: str, digest: bytes) -> Confirmation:
        """Submit a write-once record of ``digest`` under ``asset_id``.

        Returns once the ledger has accepted the transaction; the record
        becomes visible to ``lookup`` after inclusion.
        """
        validate_asset_id(asset_id)
        digest = _validate_digest(digest)
        if self.credential.principal != self.authority:
            raise NotAuthorized(
                f"Signing identity {self.credential.principal} is not the configured "
                f"registry authority {self.authority}.",
                reason="signer-mismatch",
            )

        envelope = self.credential.sign(
            self.contract,
            RECORD_FUNCTION,
            [ascii_arg(asset_id), buffer_arg(digest)],
        )
        try:
            txid = self.network.submit_transaction(envelope)
        except LedgerRejected as exc:
            error = _typed_rejection(exc.reason, str(exc), asset_id)
            if type(error) is LedgerRejected:
                raise
            raise error from exc

        logger.info(
            "Submitted asset %s hash=%s txid=%s",
            asset_id, short_hex(digest), txid,
        )
        return Confirmation(
            asset_id=asset_id,
            data_hash=digest,
            transaction_id=txid,
            submitted_at=datetime.now(timezone.utc),
        )

    def lookup(self, asset_id: str) -> AssetRecord | None:
        validate_asset_id(asset_id)
        value = self.network.query_state(self.contract, LOOKUP_FUNCTION, [ascii_arg(asset_id)])
        if value is None:
            return None
        try:
            return AssetRecord.from_dict(value)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise LedgerRejected(
                f"Ledger returned a malformed record for asset '{asset_id}'.",
                reason="malformed-record",
            ) from exc

    def verify(self, asset_id: str, digest: bytes) -> Verification:
        """Compare a recomputed digest against the recorded one, byte for byte."""
        digest = _validate_digest(digest)
        record = self.lookup(asset_id)
        if record is None:
            result = VerifyResult.NO_RECORD
        elif hmac.compare_digest(record.data_hash, digest):
            result = VerifyResult.MATCH
        else:
            result = VerifyResult.MISMATCH
        logger.info("Verified asset %s hash=%s result=%s", asset_id, short_hex(digest), result.value)
        return Verification(asset_id=asset_id, result=result, digest=digest, record=record)

    def transaction_status(self, transaction_id: str) -> TxStatus:
        if not transaction_id or not transaction_id.strip():
            raise ValidationError("transaction_id is required.")
        return self.network.transaction_status(transaction_id)

    def wait_for_inclusion(
        self,
        transaction_id: str,
        timeout: float | None = None,
        cancel: threading.Event | None = None,
        asset_id: str | None = None,
    ) -> TxStatus:
        """Poll a transaction until it is final, the deadline passes or ``cancel`` is set.

        Returns the last observed status, which may still be pending. Polling
        is read-only and safe to repeat. When ``asset_id`` is given, a
        transaction the ledger aborted at inclusion raises the same typed
        error ``record`` would (``AlreadyRecorded``, ``NotAuthorized`` or
        ``LedgerRejected``).
        """
        deadline = time.monotonic() + (self.confirmation_timeout if timeout is None else timeout)
        status = self.transaction_status(transaction_id)
        while not status.final:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            wait = min(self.poll_interval, remaining)
            if cancel is not None:
                if cancel.wait(wait):
                    break
            else:
                time.sleep(wait)
            status = self.transaction_status(transaction_id)
        if asset_id is not None and status.state is TxState.REJECTED:
            raise _typed_rejection(
                status.reason,
                f"Transaction {transaction_id} was aborted by the ledger.",
                asset_id,
            )
        return status
