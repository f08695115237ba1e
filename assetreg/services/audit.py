"""Audit orchestration: source -> canonical bytes -> digest -> ledger.

``AuditService`` is the one request surface of the registry. It validates
input before touching any collaborator and surfaces every failure unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from assetreg.config import AssetRegSettings
from assetreg.errors import NotAuthorized, ValidationError
from assetreg.integrity.digest import DigestEngine
from assetreg.ledger.memory import InMemoryLedger
from assetreg.ledger.models import Confirmation, Verification
from assetreg.ledger.network import HttpLedgerNetwork, LedgerNetwork
from assetreg.ledger.recorder import LedgerRecorder, validate_asset_id
from assetreg.ledger.signing import SigningCredential
from assetreg.sources.base import SourceSelector, TabularSource
from assetreg.sources.sheets import SheetsSource
from assetreg.utils import short_hex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuditResult:
    asset_id: str
    digest: bytes
    transaction_id: str

    @property
    def digest_hex(self) -> str:
        return self.digest.hex()

    def to_dict(self) -> dict:
        return {
            "asset_id": self.asset_id,
            "digest": self.digest_hex,
            "transaction_id": self.transaction_id,
        }


def _validate_selector(selector: SourceSelector) -> SourceSelector:
    if not selector.sheet_name or not selector.sheet_name.strip():
        raise ValidationError("sheet_name is required.")
    if selector.range_override is not None and not selector.range_override.strip():
        raise ValidationError("range_override must not be blank.")
    return selector


class AuditService:
    """Record and verify digests of tabular snapshots."""

    def __init__(
        self,
        source: TabularSource,
        recorder: LedgerRecorder,
        engine: DigestEngine | None = None,
    ) -> None:
        self.source = source
        self.recorder = recorder
        self.engine = engine or DigestEngine()

    def snapshot_digest(self, selector: SourceSelector) -> bytes:
        """Read the selected range and return its digest."""
        rows = self.source.read_range(_validate_selector(selector))
        return self.engine.digest_rows(rows)

    def audit_asset(self, asset_id: str, selector: SourceSelector) -> AuditResult:
        """Digest the current snapshot and record it under ``asset_id``."""
        validate_asset_id(asset_id)
        _validate_selector(selector)
        digest = self.snapshot_digest(selector)
        confirmation: Confirmation = self.recorder.record(asset_id, digest)
        logger.info(
            "Audit recorded asset=%s hash=%s txid=%s",
            asset_id, short_hex(digest), confirmation.transaction_id,
        )
        return AuditResult(
            asset_id=asset_id,
            digest=digest,
            transaction_id=confirmation.transaction_id,
        )

    def verify_asset(self, asset_id: str, selector: SourceSelector) -> Verification:
        """Recompute the snapshot digest and compare it with the ledger record."""
        validate_asset_id(asset_id)
        _validate_selector(selector)
        return self.recorder.verify(asset_id, self.snapshot_digest(selector))


# ---------------------------------------------------------------------------
# Construction from configuration
# ---------------------------------------------------------------------------

def build_recorder(cfg: AssetRegSettings, network: LedgerNetwork | None = None) -> LedgerRecorder:
    """Build the recorder from the frozen settings.

    The memory backend generates an ephemeral authority when no key is
    configured; the HTTP backend requires a configured key and authority.
    """
    signing_key = cfg.authority_signing_key.get_secret_value()
    if signing_key:
        credential = SigningCredential.from_hex(signing_key)
    elif cfg.ledger_backend == "memory":
        credential = SigningCredential.generate()
        logger.warning("No authority key configured; using ephemeral key %s", credential.principal)
    else:
        raise NotAuthorized("ASSETREG_AUTHORITY_SIGNING_KEY is not set.", reason="missing-credential")

    authority = cfg.authority_principal or credential.principal
    contract = cfg.contract_id

    if network is None:
        if cfg.ledger_backend == "memory":
            network = InMemoryLedger(contract, authority, auto_mine=True)
        else:
            network = HttpLedgerNetwork(
                cfg.ledger_url,
                read_sender=authority,
                timeout=cfg.ledger_timeout,
                max_retries=cfg.ledger_read_retries,
            )

    return LedgerRecorder(
        network,
        credential,
        contract,
        authority,
        confirmation_timeout=cfg.confirmation_timeout,
        poll_interval=cfg.confirmation_poll_interval,
    )


def build_source(cfg: AssetRegSettings) -> SheetsSource:
    return SheetsSource(
        cfg.sheet_id,
        access_token=cfg.sheets_access_token.get_secret_value(),
        api_key=cfg.sheets_api_key.get_secret_value(),
        base_url=cfg.sheets_api_base,
        column_span=cfg.default_column_span,
        timeout=cfg.source_timeout,
        max_retries=cfg.source_max_retries,
    )


def build_audit_service(cfg: AssetRegSettings) -> AuditService:
    return AuditService(build_source(cfg), build_recorder(cfg))
