"""Tests for SettlementService: scheduling, due-job execution and gateway failure."""

from decimal import Decimal

import pytest
from sqlalchemy import select

from transfer_kernel.domain.settlement import SettlementOutcome
from transfer_kernel.domain.transfer import TransferStatus
from transfer_kernel.models.settlement import SettlementJobModel
from transfer_kernel.models.transfer import TransferModel
from transfer_kernel.services.settlement_service import SettlementService
from transfer_kernel.services.transfer_service import TransferService
from transfer_services.settlement_gateway import SimulatedSettlementGateway


@pytest.fixture
def bank(session, populate_tenant):
    return populate_tenant(session)


@pytest.fixture
def settlements(session, deterministic_clock, policy):
    return SettlementService(session, deterministic_clock, policy)


@pytest.fixture
def auto_transfer(session, bank, make_snapshot, deterministic_clock, policy):
    def _create(source_wallet_id="W-SRC"):
        return TransferService(session, deterministic_clock, policy).initiate(
            bank.tenant_id,
            initiated_by=bank.user_id("operator"),
            amount=Decimal("500"),
            currency="USD",
            source_wallet_id=source_wallet_id,
            destination_wallet_id="W-DST",
            rule=make_snapshot(auto_approve=True, required_role_level=1, rule_name="Small Transfers"),
        )

    return _create


def job_for(session, transfer_id):
    return session.execute(
        select(SettlementJobModel).where(SettlementJobModel.transfer_id == transfer_id)
    ).scalar_one()


class TestSchedule:
    def test_scheduling_twice_is_noop(self, session, auto_transfer, settlements):
        transfer = auto_transfer()
        first_due = job_for(session, transfer.transfer_id).due_at
        assert settlements.schedule(transfer.transfer_id, transfer.tenant_id) == first_due
        count = session.execute(select(SettlementJobModel)).scalars().all()
        assert len(count) == 1

    def test_cancel_only_scheduled_jobs(self, auto_transfer, settlements):
        transfer = auto_transfer()
        assert settlements.cancel(transfer.transfer_id, "cancelled") is True
        assert settlements.cancel(transfer.transfer_id, "cancelled") is False


class TestRunDue:
    def test_nothing_runs_before_due(self, auto_transfer, settlements):
        auto_transfer()
        assert settlements.run_due(SimulatedSettlementGateway()) == []

    def test_due_job_completes_transfer(
        self, session, auto_transfer, settlements, deterministic_clock, policy,
    ):
        transfer = auto_transfer()
        gateway = SimulatedSettlementGateway()
        deterministic_clock.advance(policy.settlement_delay.total_seconds())

        [result] = settlements.run_due(gateway)

        assert result.outcome == SettlementOutcome.COMPLETED
        assert result.transfer.status == TransferStatus.COMPLETED
        assert result.transfer.completed_at == deterministic_clock.now()
        assert gateway.settled == (transfer.transfer_id,)
        job = job_for(session, transfer.transfer_id)
        assert (job.status, job.attempts) == ("completed", 1)
        assert settlements.run_due(gateway) == []

    def test_gateway_failure_fails_transfer(
        self, session, auto_transfer, settlements, deterministic_clock,
    ):
        transfer = auto_transfer(source_wallet_id="W-FROZEN")
        gateway = SimulatedSettlementGateway(failing_wallets=frozenset({"W-FROZEN"}))
        deterministic_clock.advance(3600)

        [result] = settlements.run_due(gateway)

        assert result.outcome == SettlementOutcome.FAILED
        assert result.transfer.status == TransferStatus.FAILED
        assert result.transfer.failure_reason.startswith("settlement_failed: ")
        assert job_for(session, transfer.transfer_id).status == "failed"
        assert gateway.settled == ()

    def test_job_for_non_processing_transfer_is_skipped(
        self, session, auto_transfer, settlements, deterministic_clock,
    ):
        transfer = auto_transfer()
        session.get(TransferModel, transfer.transfer_id).status = TransferStatus.FAILED.value
        session.flush()
        deterministic_clock.advance(3600)

        [result] = settlements.run_due(SimulatedSettlementGateway())

        assert result.outcome == SettlementOutcome.SKIPPED
        assert job_for(session, transfer.transfer_id).status == "cancelled"

    def test_limit_bounds_batch(self, auto_transfer, settlements, deterministic_clock):
        for _ in range(3):
            auto_transfer()
        deterministic_clock.advance(3600)
        gateway = SimulatedSettlementGateway()
        assert len(settlements.run_due(gateway, limit=2)) == 2
        assert len(settlements.run_due(gateway, limit=2)) == 1

    def test_unexpected_gateway_error_fails_only_that_job(
        self, session, auto_transfer, settlements, deterministic_clock, captured_logs,
    ):
        class FlakyGateway(SimulatedSettlementGateway):
            def settle(self, transfer):
                if transfer.source_wallet_id == "W-BAD":
                    raise ConnectionError("ledger offline")
                super().settle(transfer)

        bad = auto_transfer(source_wallet_id="W-BAD")
        deterministic_clock.advance(1)
        good = auto_transfer(source_wallet_id="W-OK")
        deterministic_clock.advance(3600)
        gateway = FlakyGateway()

        results = settlements.run_due(gateway)

        assert [r.outcome for r in results] == [SettlementOutcome.FAILED, SettlementOutcome.COMPLETED]
        assert results[0].transfer.status == TransferStatus.FAILED
        assert results[0].transfer.failure_reason == "settlement_error: ConnectionError: ledger offline"
        assert gateway.settled == (good.transfer_id,)
        bad_job = job_for(session, bad.transfer_id)
        assert (bad_job.status, bad_job.attempts) == ("failed", 1)
        assert bad_job.last_error == "ConnectionError: ledger offline"
        assert job_for(session, good.transfer_id).status == "completed"
        assert settlements.run_due(gateway) == []
        assert any(r["message"] == "settlement_error" for r in captured_logs())

    def test_long_gateway_error_is_truncated(self, auto_transfer, settlements, deterministic_clock):
        class VerboseGateway:
            def settle(self, transfer):
                raise RuntimeError("x" * 500)

        auto_transfer()
        deterministic_clock.advance(3600)

        [result] = settlements.run_due(VerboseGateway())

        assert result.outcome == SettlementOutcome.FAILED
        assert len(result.transfer.failure_reason) == 200
