"""Tests for the Ledger Recorder: write-once, authorization, lookup, verify, polling."""

import threading
from unittest.mock import MagicMock

import pytest

from assetreg.errors import (
    AlreadyRecorded,
    LedgerRejected,
    LedgerTransportError,
    NotAuthorized,
    ValidationError,
)
from assetreg.ledger.models import TxState, TxStatus, VerifyResult
from assetreg.ledger.recorder import LedgerRecorder, validate_asset_id
from tests.conftest import CONTRACT

H1 = b"\x01" * 32
H2 = b"\x02" * 32


class TestValidation:
    @pytest.mark.parametrize("asset_id", ["", "   ", "x" * 65, "café", "tab\tid"])
    def test_bad_asset_ids(self, asset_id):
        with pytest.raises(ValidationError):
            validate_asset_id(asset_id)

    def test_max_length_accepted(self):
        assert validate_asset_id("x" * 64) == "x" * 64

    def test_wrong_digest_length(self, recorder, ledger):
        with pytest.raises(ValidationError):
            recorder.record("BATCH-1", b"\x01" * 31)
        ledger.mine()
        assert recorder.lookup("BATCH-1") is None

    def test_hex_string_digest_rejected(self, recorder):
        with pytest.raises(ValidationError):
            recorder.record("BATCH-1", "01" * 32)


class TestRecord:
    def test_record_returns_confirmation(self, recorder):
        confirmation = recorder.record("BATCH-1", H1)
        assert confirmation.asset_id == "BATCH-1"
        assert confirmation.data_hash == H1
        assert len(confirmation.transaction_id) == 64

    def test_record_not_visible_until_included(self, recorder, ledger):
        recorder.record("BATCH-1", H1)
        assert recorder.lookup("BATCH-1") is None
        ledger.mine()
        record = recorder.lookup("BATCH-1")
        assert record.data_hash == H1
        assert record.recorded_at == 1

    def test_write_once_first_writer_wins(self, recorder, ledger):
        recorder.record("BATCH-1", H1)
        ledger.mine()
        for digest in (H2, H1, H2):
            with pytest.raises(AlreadyRecorded):
                recorder.record("BATCH-1", digest)
            ledger.mine()
        assert recorder.lookup("BATCH-1").data_hash == H1

    def test_independent_assets(self, recorder, ledger):
        recorder.record("BATCH-1", H1)
        recorder.record("BATCH-2", H2)
        ledger.mine()
        assert recorder.lookup("BATCH-1").data_hash == H1
        assert recorder.lookup("BATCH-2").data_hash == H2

    def test_does_not_read_before_writing(self, credential):
        network = MagicMock()
        network.submit_transaction.return_value = "tx-1"
        recorder = LedgerRecorder(network, credential, CONTRACT, credential.principal)
        recorder.record("BATCH-1", H1)
        network.query_state.assert_not_called()
        network.submit_transaction.assert_called_once()

    def test_signer_mismatch_never_submits(self, other_credential, credential):
        network = MagicMock()
        recorder = LedgerRecorder(network, other_credential, CONTRACT, credential.principal)
        with pytest.raises(NotAuthorized):
            recorder.record("BATCH-1", H1)
        network.submit_transaction.assert_not_called()

    def test_ledger_authority_check(self, ledger, other_credential):
        # Misconfigured authority locally; the ledger still refuses.
        recorder = LedgerRecorder(ledger, other_credential, CONTRACT, other_credential.principal)
        with pytest.raises(NotAuthorized):
            recorder.record("BATCH-1", H1)
        ledger.mine()
        assert ledger.query_state(CONTRACT, "get-asset-record", [{"type": "string-ascii", "value": "BATCH-1"}]) is None

    @pytest.mark.parametrize("reason,expected", [
        ("already-recorded", AlreadyRecorded),
        ("not-authorized", NotAuthorized),
        ("bad-signature", NotAuthorized),
    ])
    def test_rejection_reasons_mapped(self, credential, reason, expected):
        network = MagicMock()
        network.submit_transaction.side_effect = LedgerRejected("no", reason=reason)
        recorder = LedgerRecorder(network, credential, CONTRACT, credential.principal)
        with pytest.raises(expected):
            recorder.record("BATCH-1", H1)

    def test_other_rejections_propagate(self, credential):
        network = MagicMock()
        network.submit_transaction.side_effect = LedgerRejected("no", reason="invalid-asset-id")
        recorder = LedgerRecorder(network, credential, CONTRACT, credential.principal)
        with pytest.raises(LedgerRejected) as exc_info:
            recorder.record("BATCH-1", H1)
        assert exc_info.value.reason == "invalid-asset-id"

    def test_transport_failure_is_not_retried(self, credential):
        network = MagicMock()
        network.submit_transaction.side_effect = LedgerTransportError("timeout", outcome_unknown=True)
        recorder = LedgerRecorder(network, credential, CONTRACT, credential.principal)
        with pytest.raises(LedgerTransportError) as exc_info:
            recorder.record("BATCH-1", H1)
        assert exc_info.value.outcome_unknown is True
        assert network.submit_transaction.call_count == 1

    def test_concurrent_records_same_asset(self, recorder, ledger):
        outcomes = []
        lock = threading.Lock()

        def write(i):
            try:
                recorder.record("BATCH-1", bytes([i]) * 32)
                result = "ok"
            except AlreadyRecorded:
                result = "dup"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=write, args=(i,)) for i in range(1, 9)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(outcomes) == ["dup"] * 7 + ["ok"]


class TestVerify:
    def test_match_mismatch_no_record(self, recorder, ledger):
        assert recorder.verify("BATCH-1", H1).result is VerifyResult.NO_RECORD
        recorder.record("BATCH-1", H1)
        ledger.mine()

        match = recorder.verify("BATCH-1", H1)
        assert match.result is VerifyResult.MATCH
        assert match.record.data_hash == H1

        mismatch = recorder.verify("BATCH-1", H2)
        assert mismatch.result is VerifyResult.MISMATCH
        assert mismatch.record.data_hash == H1

    def test_verify_to_dict(self, recorder, ledger):
        recorder.record("BATCH-1", H1)
        ledger.mine()
        data = recorder.verify("BATCH-1", H1).to_dict()
        assert data["result"] == "match"
        assert data["digest"] == H1.hex()
        assert data["record"]["data_hash"] == H1.hex()

    def test_lookup_transport_error_propagates(self, credential):
        network = MagicMock()
        network.query_state.side_effect = LedgerTransportError("down")
        recorder = LedgerRecorder(network, credential, CONTRACT, credential.principal)
        with pytest.raises(LedgerTransportError) as exc_info:
            recorder.verify("BATCH-1", H1)
        assert exc_info.value.outcome_unknown is False


class TestWaitForInclusion:
    def test_returns_success_once_mined(self, recorder, ledger):
        confirmation = recorder.record("BATCH-1", H1)
        ledger.mine()
        status = recorder.wait_for_inclusion(confirmation.transaction_id)
        assert status.state is TxState.SUCCESS
        assert status.block_height == 1

    def test_bounded_when_never_included(self, recorder):
        confirmation = recorder.record("BATCH-1", H1)
        status = recorder.wait_for_inclusion(confirmation.transaction_id, timeout=0.05)
        assert status.state is TxState.PENDING

    def test_polls_until_final(self, credential):
        network = MagicMock()
        network.transaction_status.side_effect = [
            TxStatus("tx", TxState.PENDING),
            TxStatus("tx", TxState.PENDING),
            TxStatus("tx", TxState.SUCCESS, block_height=7),
        ]
        recorder = LedgerRecorder(
            network, credential, CONTRACT, credential.principal,
            confirmation_timeout=5.0, poll_interval=0.001,
        )
        status = recorder.wait_for_inclusion("tx")
        assert status.block_height == 7
        assert network.transaction_status.call_count == 3

    def test_cancel_stops_polling(self, recorder):
        confirmation = recorder.record("BATCH-1", H1)
        cancel = threading.Event()
        cancel.set()
        status = recorder.wait_for_inclusion(confirmation.transaction_id, timeout=10.0, cancel=cancel)
        assert status.state is TxState.PENDING

    @pytest.mark.parametrize("reason,error", [
        ("already-recorded", AlreadyRecorded),
        ("not-authorized", NotAuthorized),
        ("bad-signature", NotAuthorized),
        ("(err u500)", LedgerRejected),
    ])
    def test_abort_at_inclusion_raises_typed_error(self, credential, reason, error):
        network = MagicMock()
        network.transaction_status.return_value = TxStatus("tx", TxState.REJECTED, reason=reason)
        recorder = LedgerRecorder(network, credential, CONTRACT, credential.principal)
        with pytest.raises(error) as exc_info:
            recorder.wait_for_inclusion("tx", asset_id="BATCH-1")
        assert exc_info.value.reason == reason

    def test_abort_without_asset_id_returns_status(self, credential):
        network = MagicMock()
        network.transaction_status.return_value = TxStatus("tx", TxState.REJECTED, reason="already-recorded")
        recorder = LedgerRecorder(network, credential, CONTRACT, credential.principal)
        status = recorder.wait_for_inclusion("tx")
        assert status.state is TxState.REJECTED
        assert status.reason == "already-recorded"

    def test_blank_transaction_id(self, recorder):
        with pytest.raises(ValidationError):
            recorder.transaction_status(" ")
