"""Canonicalization and digest computation for tabular snapshots.

Core components:
    canonicalize   - Header-excluded, length-prefixed canonical bytes
    data_rows      - Header-stripped, padded data rows
    DigestEngine   - Schema-versioned 32-byte digests (SHA-256 for v1)
"""

from assetreg.integrity.canonical import canonicalize, data_rows
from assetreg.integrity.digest import (
    DIGEST_SIZE,
    SCHEMA_VERSION,
    DigestEngine,
    from_hex,
    to_hex,
)

__all__ = [
    "canonicalize",
    "data_rows",
    "DIGEST_SIZE",
    "SCHEMA_VERSION",
    "DigestEngine",
    "from_hex",
    "to_hex",
]
