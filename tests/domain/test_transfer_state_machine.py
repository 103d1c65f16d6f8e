"""
Tests for the transfer lifecycle state machine and result objects.

Tests cover:
- validate_transition: every legal edge accepted, every other edge rejected
- Terminal statuses have no outgoing edges
- Transfer / ApprovalOutcome / TransferProgress derived properties
"""

from datetime import datetime, timezone
from decimal import Decimal
from itertools import product
from uuid import uuid4

import pytest

from transfer_kernel.domain.transfer import (
    IN_FLIGHT_STATUSES,
    TERMINAL_TRANSFER_STATUSES,
    TRANSFER_TRANSITIONS,
    ApprovalOutcome,
    ApprovalRecord,
    ApprovalState,
    InitiationResult,
    RuleSnapshot,
    Transfer,
    TransferProgress,
    TransferStatus,
    validate_transition,
)
from transfer_kernel.exceptions import InvalidTransferTransitionError

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

LEGAL_EDGES = {
    (TransferStatus.PENDING_APPROVAL, TransferStatus.PROCESSING),
    (TransferStatus.PENDING_APPROVAL, TransferStatus.FAILED),
    (TransferStatus.PROCESSING, TransferStatus.COMPLETED),
    (TransferStatus.PROCESSING, TransferStatus.FAILED),
}


def make_transfer(
    status: TransferStatus = TransferStatus.PENDING_APPROVAL,
    approval_status: ApprovalState = ApprovalState.PENDING_APPROVAL,
    required: int = 2,
    current: int = 0,
) -> Transfer:
    return Transfer(
        transfer_id=uuid4(),
        tenant_id=uuid4(),
        reference="TRF-000001",
        source_wallet_id="W-1",
        destination_wallet_id="W-2",
        amount=Decimal("300000"),
        currency="USD",
        initiated_by=uuid4(),
        status=status,
        approval_status=approval_status,
        required_approvals=required,
        current_approvals=current,
        rule=RuleSnapshot(
            rule_name="Very Large Transfers",
            auto_approve=False,
            required_approvals=required,
            required_role_level=7,
            is_default=False,
        ),
        initiated_at=NOW,
    )


def make_record(transfer: Transfer) -> ApprovalRecord:
    return ApprovalRecord(
        record_id=uuid4(),
        tenant_id=transfer.tenant_id,
        transfer_id=transfer.transfer_id,
        approver_user_id=uuid4(),
        approver_role="Manager",
        approver_level=7,
        approved_at=NOW,
    )


class TestTransitions:
    @pytest.mark.parametrize("edge", sorted(LEGAL_EDGES, key=str))
    def test_legal_edges_accepted(self, edge):
        validate_transition(uuid4(), *edge)

    def test_every_other_edge_rejected(self):
        for from_status, to_status in product(TransferStatus, TransferStatus):
            if (from_status, to_status) in LEGAL_EDGES:
                continue
            with pytest.raises(InvalidTransferTransitionError) as exc_info:
                validate_transition("trf-1", from_status, to_status)
            assert exc_info.value.from_status == from_status.value
            assert exc_info.value.to_status == to_status.value

    def test_terminal_statuses_have_no_exits(self):
        for status in TERMINAL_TRANSFER_STATUSES:
            assert TRANSFER_TRANSITIONS[status] == frozenset()

    def test_in_flight_and_terminal_partition_statuses(self):
        assert IN_FLIGHT_STATUSES | TERMINAL_TRANSFER_STATUSES == set(TransferStatus)
        assert not IN_FLIGHT_STATUSES & TERMINAL_TRANSFER_STATUSES

    def test_error_kind_is_conflict(self):
        with pytest.raises(InvalidTransferTransitionError) as exc_info:
            validate_transition("trf-1", TransferStatus.COMPLETED, TransferStatus.FAILED)
        assert exc_info.value.kind.value == "conflict"


class TestTransferProperties:
    def test_auto_approved_flag(self):
        transfer = make_transfer(
            status=TransferStatus.PROCESSING,
            approval_status=ApprovalState.AUTO_APPROVED,
            required=0,
        )
        assert transfer.is_auto_approved
        assert not transfer.is_terminal
        assert InitiationResult(transfer).auto_approved

    def test_terminal_flag(self):
        assert make_transfer(status=TransferStatus.COMPLETED).is_terminal
        assert make_transfer(status=TransferStatus.FAILED).is_terminal
        assert not make_transfer().is_terminal

    def test_transfer_is_frozen(self):
        transfer = make_transfer()
        with pytest.raises(AttributeError):
            transfer.current_approvals = 5


class TestResultObjects:
    def test_approval_outcome_reads_through_transfer(self):
        transfer = make_transfer(current=1)
        outcome = ApprovalOutcome(transfer, make_record(transfer), threshold_reached=False)
        assert outcome.current_approvals == 1
        assert outcome.required_approvals == 2
        assert outcome.status == TransferStatus.PENDING_APPROVAL

    def test_progress_counts(self):
        transfer = make_transfer(current=1)
        progress = TransferProgress(transfer, (make_record(transfer),), percentage=50)
        assert progress.approved == 1
        assert progress.required == 2
        assert len(progress.approvals) == 1
