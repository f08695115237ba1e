"""Ledger Recorder and its collaborators.

Core components:
    AssetRecord        - The write-once on-ledger record
    SigningCredential  - Ed25519 authority key and principal
    HttpLedgerNetwork  - HTTP ledger node client
    InMemoryLedger     - In-process reference ledger (write-once contract)
    LedgerRecorder     - record / lookup / verify / wait_for_inclusion
"""

from assetreg.ledger.memory import InMemoryLedger
from assetreg.ledger.models import (
    AssetRecord,
    Confirmation,
    TxState,
    TxStatus,
    Verification,
    VerifyResult,
)
from assetreg.ledger.network import HttpLedgerNetwork, LedgerNetwork
from assetreg.ledger.recorder import LedgerRecorder, validate_asset_id
from assetreg.ledger.signing import SignedEnvelope, SigningCredential, principal_for

__all__ = [
    "AssetRecord",
    "Confirmation",
    "TxState",
    "TxStatus",
    "Verification",
    "VerifyResult",
    "HttpLedgerNetwork",
    "InMemoryLedger",
    "LedgerNetwork",
    "LedgerRecorder",
    "validate_asset_id",
    "SignedEnvelope",
    "SigningCredential",
    "principal_for",
]
