"""
Asset Registry
Tamper-evident digests of spreadsheet data on a write-once ledger
"""

__version__ = "0.1.0"

from assetreg.config import AssetRegSettings, get_config
from assetreg.integrity import DigestEngine, canonicalize
from assetreg.ledger import AssetRecord, LedgerRecorder, VerifyResult

__all__ = [
    "AssetRegSettings",
    "get_config",
    "DigestEngine",
    "canonicalize",
    "AssetRecord",
    "LedgerRecorder",
    "VerifyResult",
]
