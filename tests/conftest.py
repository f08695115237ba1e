"""Shared test fixtures for the asset registry test suite."""

import os

import pytest

# Ensure test environment variables are set before any config import
os.environ.setdefault("ASSETREG_LEDGER_BACKEND", "memory")
os.environ.setdefault("ASSETREG_API_KEY", "test-api-key")
os.environ.setdefault("ASSETREG_DEMO_MODE", "true")
os.environ.setdefault("ASSETREG_SHEET_ID", "test-sheet-id")
os.environ.setdefault("ASSETREG_CONTRACT_ADDRESS", "SPTEST")

from assetreg.ledger.memory import InMemoryLedger
from assetreg.ledger.recorder import LedgerRecorder
from assetreg.ledger.signing import SigningCredential

CONTRACT = "SPTEST.asset-tracker"
AUTHORITY_SEED = "11" * 32
OTHER_SEED = "22" * 32


class StaticSource:
    """Tabular source returning fixed rows and counting reads."""

    def __init__(self, rows):
        self.rows = rows
        self.calls = []

    def read_range(self, selector):
        self.calls.append(selector)
        return [list(r) for r in self.rows]


@pytest.fixture
def credential():
    return SigningCredential.from_hex(AUTHORITY_SEED)


@pytest.fixture
def other_credential():
    return SigningCredential.from_hex(OTHER_SEED)


@pytest.fixture
def ledger(credential):
    """Reference ledger; transactions stay pending until ``mine()``."""
    return InMemoryLedger(CONTRACT, credential.principal)


@pytest.fixture
def recorder(ledger, credential):
    return LedgerRecorder(
        ledger,
        credential,
        CONTRACT,
        credential.principal,
        confirmation_timeout=0.2,
        poll_interval=0.01,
    )


@pytest.fixture
def sample_rows():
    """Header plus two data rows."""
    return [["ID", "Qty"], ["A1", "10"], ["A2", "5"]]


@pytest.fixture
def static_source(sample_rows):
    return StaticSource(sample_rows)


@pytest.fixture(autouse=True)
def _reset_config():
    """Drop cached settings and rate-limit buckets between tests."""
    import assetreg.api.auth
    import assetreg.config
    assetreg.config._config = None
    assetreg.api.auth._rate_buckets.clear()
    yield
    assetreg.config._config = None
    assetreg.api.auth._rate_buckets.clear()
