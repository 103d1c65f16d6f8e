"""
Clock -- the single source of "now" for the approval workflow.

Responsibility:
    Every time-dependent decision reads the injected Clock: the approval
    deadline stamped at initiation (``now + approval_window``), the
    settlement due time (``now + settlement_delay``), approval record
    timestamps, and the scheduler's expiry and due-job cut-offs.

Architecture position:
    Kernel > Domain -- pure, zero I/O (except SystemClock, which is the one
    sanctioned I/O boundary for time).

Failure modes:
    - DeterministicClock.advance_to() raises ValueError when asked to move
      backwards; deadlines already passed must stay passed.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone


class Clock(ABC):
    """
    Contract:
        Services, the approval engine and the settlement scheduler receive a
        Clock through their constructor and never read wall time themselves.

    Guarantees:
        - ``now()`` returns a timezone-aware UTC ``datetime``, comparable with
          the stored ``approval_deadline`` and ``due_at`` columns.
    """

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    """Wall-clock UTC time; the default outside tests."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock that only moves when told to.

    Tests drive the workflow through time explicitly: initiate, then
    ``advance(policy.settlement_delay)`` and tick the scheduler, or
    ``advance_to(transfer.approval_deadline)`` to land exactly on a deadline.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0.0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def set_time(self, time: datetime) -> None:
        """Jump to ``time``, forwards or backwards."""
        self._fixed_time = time
        self._advance_seconds = 0.0

    def advance(self, by: float | timedelta = 1) -> None:
        """Move forward by a number of seconds or a ``timedelta``."""
        if isinstance(by, timedelta):
            by = by.total_seconds()
        self._advance_seconds += by

    def advance_to(self, moment: datetime) -> None:
        """Move forward to ``moment``, e.g. an approval deadline or a due time."""
        current = self.now()
        if moment < current:
            raise ValueError(f"cannot move clock back from {current} to {moment}")
        self.advance(moment - current)

    def tick(self) -> datetime:
        """Advance by 1 second and return the new time."""
        self.advance(1)
        return self.now()
