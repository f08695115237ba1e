"""Ledger network collaborator.

``LedgerNetwork`` is the narrow surface the recorder consumes: submit a
signed transaction, run a read-only contract call, and read a
transaction's inclusion status. ``HttpLedgerNetwork`` speaks to a ledger
node/gateway over HTTP.

Read calls are retried with linear backoff. Submissions are sent exactly
once: a submission that fails in transit has an unknown outcome and must be
resolved by a lookup, not a blind resend.
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Protocol

import httpx

from assetreg.errors import LedgerRejected, LedgerTransportError
from assetreg.ledger.models import TxState, TxStatus
from assetreg.ledger.signing import SignedEnvelope

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 15.0
_DEFAULT_MAX_RETRIES = 3
_DEFAULT_RETRY_DELAY = 1.0

_TX_STATES = {
    "pending": TxState.PENDING,
    "success": TxState.SUCCESS,
    "abort_by_response": TxState.REJECTED,
    "abort_by_post_condition": TxState.REJECTED,
    "rejected": TxState.REJECTED,
}


class LedgerNetwork(Protocol):
    def submit_transaction(self, envelope: SignedEnvelope) -> str:
        """Submit a signed transaction; return its id. Inclusion is asynchronous."""
        ...

    def query_state(self, contract: str, function: str, args: list[dict[str, str]]) -> Any:
        """Run a read-only contract call and return its result value."""
        ...

    def transaction_status(self, transaction_id: str) -> TxStatus:
        ...


def _reason_from(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except (json.JSONDecodeError, ValueError):
        return f"http-{resp.status_code}"
    if isinstance(body, dict):
        return str(body.get("reason") or body.get("cause") or body.get("error") or f"http-{resp.status_code}")
    return f"http-{resp.status_code}"


def _json_object(resp: httpx.Response, what: str) -> dict[str, Any]:
    """Decode a successful read response, which must be a JSON object."""
    try:
        body = resp.json()
    except (json.JSONDecodeError, ValueError):
        raise LedgerTransportError(
            f"Ledger returned a non-JSON body for {what}.", reason="bad-response"
        ) from None
    if not isinstance(body, dict):
        raise LedgerTransportError(
            f"Ledger returned {type(body).__name__} for {what}, expected an object.",
            reason="bad-response",
        )
    return body


class HttpLedgerNetwork:
    """HTTP client for a ledger node exposing transaction and read-only call endpoints."""

    def __init__(
        self,
        base_url: str,
        read_sender: str = "",
        timeout: float = _DEFAULT_TIMEOUT,
        max_retries: int = _DEFAULT_MAX_RETRIES,
        retry_delay: float = _DEFAULT_RETRY_DELAY,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.read_sender = read_sender
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay

    # -- Writes ---------------------------------------------------------------

    def submit_transaction(self, envelope: SignedEnvelope) -> str:
        url = f"{self.base_url}/v2/transactions"
        try:
            resp = httpx.post(url, json=envelope.to_dict(), timeout=self.timeout)
        except httpx.RequestError as exc:
            logger.error("Transaction submission to %s failed in transit: %s", url, exc)
            raise LedgerTransportError(
                "Ledger submission outcome unknown; look the asset up before retrying.",
                outcome_unknown=True,
                reason=type(exc).__name__,
            ) from exc

        if 400 <= resp.status_code < 500:
            raise LedgerRejected(
                f"Ledger rejected the transaction (HTTP {resp.status_code}).",
                reason=_reason_from(resp),
            )
        if resp.status_code >= 500:
            # A gateway error can follow an accepted broadcast.
            raise LedgerTransportError(
                f"Ledger node returned HTTP {resp.status_code}; submission outcome unknown.",
                outcome_unknown=True,
                reason=f"http-{resp.status_code}",
            )

        try:
            body = resp.json()
        except (json.JSONDecodeError, ValueError):
            body = resp.text.strip().strip('"')
        txid = body.get("txid") if isinstance(body, dict) else body
        if not txid:
            raise LedgerTransportError(
                "Ledger accepted the request but returned no transaction id.",
                outcome_unknown=True,
                reason="missing-txid",
            )
        return str(txid)

    # -- Reads ----------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Issue a read request with retry logic. 4xx responses are returned."""
        url = f"{self.base_url}/{path.lstrip('/')}"
        last_exc: Exception | None = None

        for attempt in range(self.max_retries):
            try:
                resp = httpx.request(method, url, timeout=self.timeout, **kwargs)
                if resp.status_code >= 500:
                    resp.raise_for_status()
                return resp
            except (httpx.HTTPStatusError, httpx.RequestError) as exc:
                last_exc = exc
                logger.warning(
                    "Ledger read %s failed (attempt %d/%d): %s",
                    url, attempt + 1, self.max_retries, exc,
                )
                if attempt < self.max_retries - 1:
                    time.sleep(self.retry_delay * (attempt + 1))

        raise LedgerTransportError(
            f"Failed to reach ledger at {url} after {self.max_retries} attempts",
            reason=type(last_exc).__name__ if last_exc else None,
        ) from last_exc

    def query_state(self, contract: str, function: str, args: list[dict[str, str]]) -> Any:
        address, _, name = contract.partition(".")
        resp = self._request(
            "POST",
            f"/v2/contracts/call-read/{address}/{name}/{function}",
            json={"sender": self.read_sender or address, "arguments": args},
        )
        if resp.status_code >= 400:
            raise LedgerRejected(
                f"Read-only call {function} failed (HTTP {resp.status_code}).",
                reason=_reason_from(resp),
            )
        body = _json_object(resp, f"read-only call {function}")
        if not body.get("okay", False):
            raise LedgerRejected(
                f"Read-only call {function} failed.",
                reason=str(body.get("cause", "unknown")),
            )
        return body.get("result")

    def transaction_status(self, transaction_id: str) -> TxStatus:
        resp = self._request("GET", f"/extended/v1/tx/{transaction_id}")
        if resp.status_code == 404:
            return TxStatus(transaction_id=transaction_id, state=TxState.UNKNOWN)
        if resp.status_code >= 400:
            raise LedgerRejected(
                f"Transaction status lookup failed (HTTP {resp.status_code}).",
                reason=_reason_from(resp),
            )
        body = _json_object(resp, f"transaction {transaction_id}")
        state = _TX_STATES.get(str(body.get("tx_status", "")), TxState.UNKNOWN)
        height = body.get("block_height")
        try:
            block_height = int(height) if height is not None else None
        except (TypeError, ValueError):
            raise LedgerTransportError(
                f"Ledger returned a non-numeric block height for {transaction_id}.",
                reason="bad-response",
            ) from None
        return TxStatus(
            transaction_id=transaction_id,
            state=state,
            block_height=block_height,
            reason=body.get("reason"),
        )
