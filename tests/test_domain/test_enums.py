"""Tests for domain enumerations and value objects."""

from __future__ import annotations

import pytest

from tron_facilitator.domain.enums import (
    ExecutionState,
    FunctionSelector,
    InvalidReason,
    SettleErrorReason,
)
from tron_facilitator.domain.models import ConfirmationPolicy, ExecutionStatus


class TestInvalidReason:
    def test_all_reasons_exist(self) -> None:
        expected = {
            "unsupported_scheme",
            "network_mismatch",
            "invalid_tron_payload_type",
            "invalid_tron_payload_decode_failed",
            "invalid_tron_payload_not_smart_contract",
            "invalid_tron_payload_not_transfer",
            "invalid_tron_payload_asset_mismatch",
            "invalid_tron_payload_recipient_mismatch",
            "invalid_tron_payload_amount_insufficient",
            "invalid_tron_payload_sender_mismatch",
            "invalid_tron_payload_facilitator_is_sender",
            "invalid_tron_payload_expired",
            "invalid_tron_payload_insufficient_balance",
            "invalid_tron_payload_balance_check_failed",
            "invalid_tron_payload_energy_too_expensive",
        }
        assert {r.value for r in InvalidReason} == expected

    def test_reason_is_str_enum(self) -> None:
        assert isinstance(InvalidReason.EXPIRED, str)
        assert InvalidReason.EXPIRED == "invalid_tron_payload_expired"


class TestSettleErrorReason:
    def test_broadcast_failed_code(self) -> None:
        assert SettleErrorReason.BROADCAST_FAILED == "transaction_broadcast_failed"

    def test_no_overlap_with_verify_reasons(self) -> None:
        assert not {r.value for r in SettleErrorReason} & {r.value for r in InvalidReason}


class TestFunctionSelector:
    def test_selectors(self) -> None:
        assert FunctionSelector.TRANSFER == "a9059cbb"
        assert FunctionSelector.APPROVE == "095ea7b3"


class TestExecutionStatus:
    @pytest.mark.parametrize(
        ("status", "expected"),
        [
            (ExecutionStatus(found=False), ExecutionState.PENDING),
            (ExecutionStatus(found=True), ExecutionState.PENDING),
            (ExecutionStatus(found=True, status="SUCCESS"), ExecutionState.CONFIRMED),
            (ExecutionStatus(found=True, status="REVERT"), ExecutionState.FAILED),
            (ExecutionStatus(found=True, status="OUT_OF_ENERGY"), ExecutionState.FAILED),
        ],
    )
    def test_classify(self, status, expected) -> None:
        assert status.classify() is expected


class TestConfirmationPolicy:
    def test_defaults(self) -> None:
        policy = ConfirmationPolicy()
        assert policy.max_attempts == 30
        assert policy.interval_seconds == 3.0
        assert policy.missing_receipt_threshold == 5

    def test_rejects_empty_budget(self) -> None:
        with pytest.raises(ValueError):
            ConfirmationPolicy(max_attempts=0)
