"""Tests for the in-memory reference ledger and envelope signing."""

import threading

import pytest

from assetreg.errors import AlreadyRecorded, LedgerRejected, NotAuthorized
from assetreg.ledger.memory import InMemoryLedger
from assetreg.ledger.models import LOOKUP_FUNCTION, RECORD_FUNCTION, TxState
from assetreg.ledger.signing import (
    SignedEnvelope,
    SigningCredential,
    ascii_arg,
    buffer_arg,
    principal_for,
)
from tests.conftest import CONTRACT

HASH_A = b"\xaa" * 32
HASH_B = b"\xbb" * 32


def _record_call(credential, asset_id="BATCH-1", digest=HASH_A, contract=CONTRACT):
    return credential.sign(contract, RECORD_FUNCTION, [ascii_arg(asset_id), buffer_arg(digest)])


def _lookup(ledger, asset_id):
    return ledger.query_state(CONTRACT, LOOKUP_FUNCTION, [ascii_arg(asset_id)])


class TestSigning:
    def test_principal_is_stable(self, credential):
        again = SigningCredential.from_hex("11" * 32)
        assert again.principal == credential.principal
        assert credential.principal.startswith("AR")
        assert credential.principal == principal_for(credential.public_key)

    def test_envelope_verifies(self, credential):
        assert _record_call(credential).verify() is True

    def test_tampered_envelope_fails(self, credential):
        env = _record_call(credential)
        tampered = SignedEnvelope.from_dict({**env.to_dict(), "args": [ascii_arg("OTHER"), buffer_arg(HASH_A)]})
        assert tampered.verify() is False

    def test_spoofed_sender_fails(self, credential, other_credential):
        env = _record_call(other_credential)
        spoofed = SignedEnvelope.from_dict({**env.to_dict(), "sender": credential.principal})
        assert spoofed.verify() is False

    def test_repr_hides_key(self, credential):
        assert "11" * 32 not in repr(credential)
        assert credential.principal in repr(credential)

    def test_bad_seed_rejected(self):
        with pytest.raises(NotAuthorized):
            SigningCredential.from_hex("not-hex")


class TestWriteOnce:
    def test_record_visible_only_after_inclusion(self, ledger, credential):
        txid = ledger.submit_transaction(_record_call(credential))
        assert _lookup(ledger, "BATCH-1") is None
        assert ledger.transaction_status(txid).state is TxState.PENDING

        height = ledger.mine()
        record = _lookup(ledger, "BATCH-1")
        assert record["data_hash"] == HASH_A.hex()
        assert record["recorded_at"] == height
        assert record["recorded_by"] == credential.principal
        assert ledger.transaction_status(txid).state is TxState.SUCCESS

    def test_second_write_rejected_even_while_pending(self, ledger, credential):
        ledger.submit_transaction(_record_call(credential, digest=HASH_A))
        with pytest.raises(AlreadyRecorded):
            ledger.submit_transaction(_record_call(credential, digest=HASH_B))

    def test_second_write_rejected_after_inclusion(self, ledger, credential):
        ledger.submit_transaction(_record_call(credential, digest=HASH_A))
        ledger.mine()
        with pytest.raises(AlreadyRecorded):
            ledger.submit_transaction(_record_call(credential, digest=HASH_B))
        ledger.mine()
        assert _lookup(ledger, "BATCH-1")["data_hash"] == HASH_A.hex()

    def test_concurrent_writers_one_wins(self, ledger, credential):
        outcomes = []
        lock = threading.Lock()

        def write(i):
            try:
                ledger.submit_transaction(_record_call(credential, digest=bytes([i]) * 32))
                result = "ok"
            except AlreadyRecorded:
                result = "dup"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=write, args=(i,)) for i in range(1, 17)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert outcomes.count("ok") == 1
        assert outcomes.count("dup") == 15

    def test_non_authority_rejected_without_state_change(self, ledger, other_credential):
        with pytest.raises(NotAuthorized):
            ledger.submit_transaction(_record_call(other_credential))
        ledger.mine()
        assert _lookup(ledger, "BATCH-1") is None
        assert ledger.events() == []

    def test_invalid_signature_rejected(self, ledger, credential):
        env = _record_call(credential)
        forged = SignedEnvelope.from_dict({**env.to_dict(), "signature": "00" * 64})
        with pytest.raises(NotAuthorized):
            ledger.submit_transaction(forged)

    def test_wrong_hash_length_rejected(self, ledger, credential):
        with pytest.raises(LedgerRejected) as exc_info:
            ledger.submit_transaction(_record_call(credential, digest=b"\x01" * 31))
        assert exc_info.value.reason == "invalid-hash"

    def test_unknown_contract_rejected(self, ledger, credential):
        with pytest.raises(LedgerRejected):
            ledger.submit_transaction(_record_call(credential, contract="SPOTHER.asset-tracker"))

    def test_event_emitted_on_inclusion(self, ledger, credential):
        txid = ledger.submit_transaction(_record_call(credential))
        assert ledger.events() == []
        ledger.mine()
        events = ledger.events("BATCH-1")
        assert len(events) == 1
        assert events[0]["data_hash"] == HASH_A.hex()
        assert events[0]["transaction_id"] == txid
        assert events[0]["recorded_at"] == 1

    def test_auto_mine(self, credential):
        ledger = InMemoryLedger(CONTRACT, credential.principal, auto_mine=True)
        ledger.submit_transaction(_record_call(credential))
        assert _lookup(ledger, "BATCH-1") is not None

    def test_unknown_transaction_status(self, ledger):
        assert ledger.transaction_status("deadbeef").state is TxState.UNKNOWN
