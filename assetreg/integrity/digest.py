"""Fixed-length content digests over canonical snapshot bytes."""

from __future__ import annotations

import hashlib
import re
from typing import Any, Sequence

from assetreg.errors import DigestConfigurationError, ValidationError
from assetreg.integrity.canonical import canonicalize

DIGEST_SIZE = 32
SCHEMA_VERSION = 1

# Record schema version -> hash algorithm. A new algorithm means a new
# schema version, never a per-record flag.
ALGORITHMS: dict[int, str] = {1: "sha256"}

_HEX_DIGEST_RE = re.compile(r"^[0-9a-fA-F]{64}$")


class DigestEngine:
    """Hash canonical bytes with the algorithm pinned to a schema version."""

    def __init__(self, schema_version: int = SCHEMA_VERSION) -> None:
        algorithm = ALGORITHMS.get(schema_version)
        if algorithm is None:
            raise DigestConfigurationError(f"Unknown record schema version: {schema_version}")
        try:
            probe = hashlib.new(algorithm)
        except ValueError as exc:
            raise DigestConfigurationError(f"Hash algorithm '{algorithm}' is unavailable") from exc
        if probe.digest_size != DIGEST_SIZE:
            raise DigestConfigurationError(
                f"Hash algorithm '{algorithm}' produces {probe.digest_size}-byte digests, "
                f"expected {DIGEST_SIZE}"
            )
        self.schema_version = schema_version
        self.algorithm = algorithm

    def digest(self, canonical: bytes) -> bytes:
        return hashlib.new(self.algorithm, canonical).digest()

    def digest_rows(self, rows: Sequence[Sequence[Any]]) -> bytes:
        """Canonicalize a snapshot (header first) and hash it."""
        return self.digest(canonicalize(rows))


def to_hex(digest: bytes) -> str:
    return digest.hex()


def from_hex(value: str) -> bytes:
    """Parse a 64-character hex digest, optionally ``0x``-prefixed."""
    text = (value or "").strip()
    if text.startswith(("0x", "0X")):
        text = text[2:]
    if not _HEX_DIGEST_RE.match(text):
        raise ValidationError("Digest must be 64 hexadecimal characters (32 bytes).")
    return bytes.fromhex(text)
