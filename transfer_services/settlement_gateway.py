"""
SimulatedSettlementGateway -- stands in for the real funds movement.

Settles every transfer successfully unless its source wallet is listed in
``failing_wallets``, in which case it raises ``SettlementFailedError``.
Settled transfer ids are kept in ``settled`` for inspection.
"""

from __future__ import annotations

import threading
from uuid import UUID

from transfer_kernel.domain.transfer import Transfer
from transfer_kernel.exceptions import SettlementFailedError
from transfer_kernel.logging_config import get_logger

logger = get_logger("services.settlement_gateway")


class SimulatedSettlementGateway:
    def __init__(self, failing_wallets: frozenset[str] | set[str] = frozenset()):
        self.failing_wallets = frozenset(failing_wallets)
        self._settled: list[UUID] = []
        self._lock = threading.Lock()

    def settle(self, transfer: Transfer) -> None:
        if transfer.source_wallet_id in self.failing_wallets:
            raise SettlementFailedError(
                str(transfer.transfer_id),
                f"source wallet {transfer.source_wallet_id} rejected the transfer",
            )
        with self._lock:
            self._settled.append(transfer.transfer_id)
        logger.debug(
            "simulated_settlement",
            extra={
                "transfer_id": str(transfer.transfer_id),
                "amount": transfer.amount,
                "currency": transfer.currency,
            },
        )

    @property
    def settled(self) -> tuple[UUID, ...]:
        with self._lock:
            return tuple(self._settled)
