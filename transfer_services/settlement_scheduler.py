"""
SettlementScheduler -- In-process polling loop for settlement and expiry.

Contract:
    Each tick fails pending transfers whose approval window has elapsed,
    then, in a second transaction, runs every due settlement job through
    the ``SettlementGateway``.  After commit, publish
    ``transfer_completed`` / ``transfer_failed`` events.

Architecture: transfer_services.  Uses SettlementService and
    TransferService from the kernel; all timestamps come from the injected
    Clock, so tests drive it with ``DeterministicClock`` and ``tick()``.

Invariants enforced:
    - Expiry and settlement commit independently: an unexpected error rolls
      back only its own phase, and that phase publishes no events.
    - One broken settlement job never blocks the rest of the batch; it is
      failed inside its own savepoint by SettlementService.
    - Graceful shutdown: ``stop()`` lets the current tick finish.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from transfer_kernel.domain.clock import Clock, SystemClock
from transfer_kernel.domain.events import EventSink, TransferEvent, TransferEventType
from transfer_kernel.domain.policy import WorkflowPolicy
from transfer_kernel.domain.settlement import (
    SettlementGateway,
    SettlementOutcome,
    SettlementResult,
)
from transfer_kernel.domain.transfer import Transfer
from transfer_kernel.logging_config import get_logger
from transfer_kernel.services.settlement_service import SettlementService
from transfer_kernel.services.transfer_service import TransferService
from transfer_services.event_sinks import publish, transfer_event

logger = get_logger("services.settlement_scheduler")


@dataclass(frozen=True)
class TickReport:
    settlements: tuple[SettlementResult, ...] = ()
    expired: tuple[Transfer, ...] = ()
    error: bool = False

    @property
    def completed(self) -> int:
        return sum(1 for r in self.settlements if r.outcome == SettlementOutcome.COMPLETED)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.settlements if r.outcome == SettlementOutcome.FAILED)


class SettlementScheduler:
    """In-process polling scheduler for due settlements and approval expiry.

    Contract:
        - ``tick()`` runs one pass and returns a ``TickReport``.
        - ``start()`` / ``stop()`` for background thread operation.

    Non-goals:
        - NOT a distributed scheduler (no leader election).  Due jobs are
          claimed with ``SKIP LOCKED`` on PostgreSQL, so several instances
          do not settle the same job twice.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        gateway: SettlementGateway,
        clock: Clock | None = None,
        policy: WorkflowPolicy | None = None,
        event_sink: EventSink | None = None,
        tick_interval_seconds: float = 5.0,
        batch_size: int = 100,
    ):
        self._session_factory = session_factory
        self._gateway = gateway
        self._clock = clock or SystemClock()
        self._policy = policy or WorkflowPolicy()
        self._event_sink = event_sink
        self._tick_interval = tick_interval_seconds
        self._batch_size = batch_size
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def tick(self) -> TickReport:
        """Expire overdue approvals and run due settlements (public for testing)."""
        now = self._clock.now()
        expired, expiry_failed = self._in_transaction(
            "expiry",
            lambda session: TransferService(session, self._clock, self._policy).expire_overdue(now),
        )
        settlements, settlement_failed = self._in_transaction(
            "settlement",
            lambda session: SettlementService(session, self._clock, self._policy).run_due(
                self._gateway, now=now, limit=self._batch_size,
            ),
        )

        report = TickReport(
            settlements=tuple(settlements),
            expired=tuple(expired),
            error=expiry_failed or settlement_failed,
        )
        publish(self._event_sink, self._events_for(report))

        if settlements or expired:
            logger.info(
                "settlement_tick_completed",
                extra={
                    "completed": report.completed,
                    "failed": report.failed,
                    "expired": len(expired),
                },
            )
        return report

    def start(self) -> None:
        """Start the scheduler in a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="settlement-scheduler",
            daemon=True,
        )
        self._thread.start()
        logger.info("scheduler_started", extra={"tick_interval": self._tick_interval})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the current tick to finish."""
        self._stop_event.set()
        if self._thread is not None and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        logger.info("scheduler_stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            self.tick()
            self._stop_event.wait(timeout=self._tick_interval)

    def _in_transaction(self, phase: str, work: Callable[[Session], list]) -> tuple[list, bool]:
        """Run one phase of a tick in its own transaction; returns (result, failed)."""
        session = self._session_factory()
        try:
            result = work(session)
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("settlement_tick_failed", extra={"phase": phase})
            return [], True
        finally:
            session.close()
        return result, False

    def _events_for(self, report: TickReport) -> list[TransferEvent]:
        now = self._clock.now()
        events: list[TransferEvent] = []
        for transfer in report.expired:
            events.append(
                transfer_event(
                    TransferEventType.TRANSFER_FAILED,
                    transfer,
                    now,
                    failure_reason=transfer.failure_reason,
                )
            )
        for result in report.settlements:
            if result.transfer is None:
                continue
            if result.outcome == SettlementOutcome.COMPLETED:
                events.append(
                    transfer_event(TransferEventType.TRANSFER_COMPLETED, result.transfer, now)
                )
            elif result.outcome == SettlementOutcome.FAILED:
                events.append(
                    transfer_event(
                        TransferEventType.TRANSFER_FAILED,
                        result.transfer,
                        now,
                        failure_reason=result.reason,
                    )
                )
        return events
