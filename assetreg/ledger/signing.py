"""Authority credential and signed contract-call envelopes.

The registry authority is an Ed25519 key. Its ledger principal is derived
from the public key, so the ledger can check "signer is the authority"
without trusting anything the sender claims about itself.
"""

from __future__ import annotations

import hashlib
import json
import re
from dataclasses import dataclass, field
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519

from assetreg.errors import NotAuthorized

PRINCIPAL_PREFIX = "AR"
_SEED_RE = re.compile(r"^[0-9a-fA-F]{64}$")


def principal_for(public_key: bytes) -> str:
    """Ledger principal for a raw 32-byte Ed25519 public key."""
    return PRINCIPAL_PREFIX + hashlib.sha256(public_key).hexdigest()[:40].upper()


def _canonical_json(data: Any) -> bytes:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=True).encode("ascii")


def ascii_arg(value: str) -> dict[str, str]:
    return {"type": "string-ascii", "value": value}


def buffer_arg(value: bytes) -> dict[str, str]:
    return {"type": "buffer", "value": value.hex()}


class SigningCredential:
    """Process-wide signing key of the registry authority.

    Read-only after construction. The private key never appears in
    ``repr`` or log output.
    """

    def __init__(self, private_key: ed25519.Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self.public_key = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )
        self.principal = principal_for(self.public_key)

    @classmethod
    def from_hex(cls, seed_hex: str) -> "SigningCredential":
        """Load a credential from a 32-byte hex-encoded private seed."""
        seed = (seed_hex or "").strip()
        if not _SEED_RE.match(seed):
            raise NotAuthorized("Authority signing key must be a 64-character hex Ed25519 seed.")
        return cls(ed25519.Ed25519PrivateKey.from_private_bytes(bytes.fromhex(seed)))

    @classmethod
    def generate(cls) -> "SigningCredential":
        return cls(ed25519.Ed25519PrivateKey.generate())

    def private_hex(self) -> str:
        """Export the seed. Only used by the ``keygen`` command."""
        return self._private_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        ).hex()

    def sign(self, contract: str, function: str, args: list[dict[str, str]]) -> "SignedEnvelope":
        unsigned = SignedEnvelope(
            contract=contract,
            function=function,
            args=list(args),
            sender=self.principal,
            public_key=self.public_key.hex(),
        )
        signature = self._private_key.sign(unsigned.signing_bytes())
        return SignedEnvelope(
            contract=unsigned.contract,
            function=unsigned.function,
            args=unsigned.args,
            sender=unsigned.sender,
            public_key=unsigned.public_key,
            signature=signature.hex(),
        )

    def __repr__(self) -> str:
        return f"SigningCredential(principal={self.principal!r})"


@dataclass(frozen=True)
class SignedEnvelope:
    """A contract call signed by the sender's key."""

    contract: str
    function: str
    args: list[dict[str, str]] = field(default_factory=list)
    sender: str = ""
    public_key: str = ""
    signature: str = ""

    def signing_bytes(self) -> bytes:
        return _canonical_json({
            "contract": self.contract,
            "function": self.function,
            "args": self.args,
            "sender": self.sender,
            "public_key": self.public_key,
        })

    @property
    def transaction_id(self) -> str:
        return hashlib.sha256(self.signing_bytes() + bytes.fromhex(self.signature)).hexdigest()

    def verify(self) -> bool:
        """Check the signature and that ``sender`` matches the public key."""
        try:
            public_bytes = bytes.fromhex(self.public_key)
            signature = bytes.fromhex(self.signature)
            key = ed25519.Ed25519PublicKey.from_public_bytes(public_bytes)
            key.verify(signature, self.signing_bytes())
        except (ValueError, InvalidSignature):
            return False
        return principal_for(public_bytes) == self.sender

    def to_dict(self) -> dict[str, Any]:
        return {
            "contract": self.contract,
            "function": self.function,
            "args": self.args,
            "sender": self.sender,
            "public_key": self.public_key,
            "signature": self.signature,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SignedEnvelope":
        return cls(
            contract=data["contract"],
            function=data["function"],
            args=list(data.get("args", [])),
            sender=data.get("sender", ""),
            public_key=data.get("public_key", ""),
            signature=data.get("signature", ""),
        )
