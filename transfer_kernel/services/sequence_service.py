"""
SequenceService -- monotonic sequence allocation via locked counter rows.

Responsibility:
    Provides strictly increasing per-tenant numbers for transfer references
    (``TRF-000042``).  Uses a dedicated counter table with row-level
    locking (``SELECT ... FOR UPDATE``) so numbering survives restarts and
    is shared correctly by every process writing to the same database.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Called by TransferService during initiation.

Invariants enforced:
    - Monotonicity: the locked counter row is the sole source of truth for
      the next value.  SQL aggregate-max-plus-one is never used.
    - Transactional: the increment is only visible after the caller's
      transaction commits.  Rollback returns the value.

Failure modes:
    - IntegrityError: concurrent counter creation race (handled via
      savepoint rollback and retry).
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from transfer_kernel.logging_config import get_logger
from transfer_kernel.models.sequence import SequenceCounter

logger = get_logger("services.sequence")


class SequenceService:
    """
    Service for generating transactional sequence numbers.

    Guarantees:
        - Strictly monotonic values per sequence name.
        - ``SELECT ... FOR UPDATE`` serializes concurrent allocations.

    Non-goals:
        - Does NOT call ``session.commit()`` -- caller controls boundaries.
    """

    TRANSFER_PREFIX = "transfer"

    def __init__(self, session: Session):
        self._session = session

    @classmethod
    def transfer_sequence_name(cls, tenant_id: UUID) -> str:
        return f"{cls.TRANSFER_PREFIX}:{tenant_id}"

    def next_value(self, sequence_name: str) -> int:
        """
        Get the next value for a named sequence.

        Postconditions:
            - Returns an integer > 0 strictly greater than any previously
              committed value for this sequence name.
            - The counter row is locked until the transaction completes.
        """
        counter = self._lock_counter(sequence_name)

        if counter is None:
            savepoint = self._session.begin_nested()
            try:
                self._session.add(SequenceCounter(name=sequence_name, current_value=1))
                self._session.flush()
                savepoint.commit()
                logger.debug(
                    "sequence_allocated",
                    extra={"sequence_name": sequence_name, "value": 1},
                )
                return 1
            except IntegrityError:
                logger.debug(
                    "sequence_counter_race_retry",
                    extra={"sequence_name": sequence_name},
                )
                savepoint.rollback()
                counter = self._lock_counter(sequence_name)
                if counter is None:
                    raise

        counter.current_value += 1
        self._session.flush()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": counter.current_value},
        )
        return counter.current_value

    def next_transfer_reference(self, tenant_id: UUID) -> tuple[int, str]:
        """Allocate the next transfer number for a tenant and format it."""
        value = self.next_value(self.transfer_sequence_name(tenant_id))
        return value, f"TRF-{value:06d}"

    def current_value(self, sequence_name: str) -> int | None:
        counter = self._session.execute(
            select(SequenceCounter).where(SequenceCounter.name == sequence_name)
        ).scalar_one_or_none()
        return counter.current_value if counter else None

    def _lock_counter(self, sequence_name: str) -> SequenceCounter | None:
        return self._session.execute(
            select(SequenceCounter)
            .where(SequenceCounter.name == sequence_name)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
