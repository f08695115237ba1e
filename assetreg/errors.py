"""Error taxonomy for the asset registry.

Every error carries a machine-readable ``kind`` plus the collaborator's
``reason`` (when there is one) so callers can decide retry eligibility
without parsing message text.
"""

from __future__ import annotations


class AssetRegError(Exception):
    """Base class for all asset registry errors."""

    kind = "asset_registry_error"
    retriable = False

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict:
        return {
            "error": self.kind,
            "detail": str(self),
            "reason": self.reason,
            "retriable": self.retriable,
            "outcome_unknown": False,
        }


class ValidationError(AssetRegError):
    """Caller input is missing or malformed."""

    kind = "validation_error"


class SourceError(AssetRegError):
    """The tabular data source is unreachable or denied access.

    ``reason`` is one of ``not_found``, ``auth`` or ``unreachable``.
    """

    kind = "source_error"

    def __init__(self, message: str, *, reason: str = "unreachable") -> None:
        super().__init__(message, reason=reason)

    @property
    def retriable(self) -> bool:  # type: ignore[override]
        return self.reason == "unreachable"


class InsufficientData(AssetRegError):
    """The snapshot has no header or no data rows."""

    kind = "insufficient_data"


class RecordNotFound(AssetRegError):
    """No ledger record exists for the asset id."""

    kind = "no_record"

    def __init__(self, asset_id: str) -> None:
        super().__init__(f"No ledger record for asset '{asset_id}'.")
        self.asset_id = asset_id


class DigestConfigurationError(AssetRegError):
    """The configured hash algorithm is unknown or unavailable."""

    kind = "digest_configuration_error"


class LedgerError(AssetRegError):
    """Base class for failures reported by or about the ledger."""

    kind = "ledger_error"


class AlreadyRecorded(LedgerError):
    """A record already exists for the asset id (write-once)."""

    kind = "already_recorded"

    def __init__(self, asset_id: str, *, reason: str | None = "already-recorded") -> None:
        super().__init__(f"Asset '{asset_id}' is already recorded on the ledger.", reason=reason)
        self.asset_id = asset_id


class NotAuthorized(LedgerError):
    """The signer is not the configured registry authority."""

    kind = "not_authorized"


class LedgerRejected(LedgerError):
    """The ledger rejected a request for a reason without a dedicated type."""

    kind = "ledger_rejected"


class LedgerTransportError(LedgerError):
    """Network or timeout failure while talking to the ledger.

    When ``outcome_unknown`` is true the submission may or may not have been
    accepted: look the asset up before resubmitting.
    """

    kind = "ledger_transport"
    retriable = True

    def __init__(self, message: str, *, outcome_unknown: bool = False, reason: str | None = None) -> None:
        super().__init__(message, reason=reason)
        self.outcome_unknown = outcome_unknown

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["outcome_unknown"] = self.outcome_unknown
        return data
