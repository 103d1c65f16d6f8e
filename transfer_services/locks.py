"""
TransferLockRegistry -- per-transfer in-process serialization.

Responsibility:
    Hands out one re-entrant lock per transfer id so that, within a single
    process, mutations of the same transfer run one at a time for the whole
    of their transaction.  Different transfers never contend.

Architecture position:
    Services -- used by ``ApprovalEngine``.  Complements, never replaces,
    the database row lock and the approval ledger's unique constraint,
    which remain the cross-process guarantees.

Invariants enforced:
    - At most one lock object exists per transfer id while any holder or
      waiter references it.
    - Entries are dropped when their last user releases them.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from uuid import UUID


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


class TransferLockRegistry:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._entries: dict[UUID, _Entry] = {}

    @contextmanager
    def hold(self, transfer_id: UUID) -> Iterator[None]:
        with self._guard:
            entry = self._entries.get(transfer_id)
            if entry is None:
                entry = _Entry()
                self._entries[transfer_id] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._entries[transfer_id]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
