"""Append-only in-memory store of stage transactions.

Transactions are grouped by owning request id. Records are never removed
or replaced; only status, block number and destination hash change as
confirmations arrive.
"""

import asyncio
import logging
from typing import Optional

from infinitydex.models import Transaction, TransactionStatus

logger = logging.getLogger(__name__)


class TransactionStore:
    """Arena of transactions with lookup by id and by request id."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._by_id: dict[str, Transaction] = {}
        self._by_request: dict[str, list[str]] = {}

    async def add(self, tx: Transaction) -> Transaction:
        """Append a transaction. Adding the same id twice is a no-op."""
        async with self._lock:
            if tx.id in self._by_id:
                return self._by_id[tx.id]
            self._by_id[tx.id] = tx
            self._by_request.setdefault(tx.request_id, []).append(tx.id)

        logger.debug(f"[{tx.request_id}] Stored {tx.type.value} transaction {tx.id} ({tx.status.value})")
        return tx

    async def get(self, tx_id: str) -> Optional[Transaction]:
        async with self._lock:
            return self._by_id.get(tx_id)

    async def list_for_request(self, request_id: str) -> list[Transaction]:
        """Transactions of a request in the order they were created."""
        async with self._lock:
            return [self._by_id[tx_id] for tx_id in self._by_request.get(request_id, [])]

    async def update_status(
        self,
        tx_id: str,
        status: TransactionStatus,
        block_number: Optional[int] = None,
        dest_hash: Optional[str] = None,
    ) -> Transaction:
        """
        Update the mutable confirmation fields of a transaction.

        Raises:
            KeyError: if the transaction is unknown
        """
        async with self._lock:
            tx = self._by_id[tx_id]
            tx.status = status
            if block_number is not None:
                tx.block_number = block_number
            if dest_hash is not None:
                tx.dest_hash = dest_hash

        logger.debug(f"[{tx.request_id}] Transaction {tx_id} -> {status.value}")
        return tx

    async def pending(self, request_id: Optional[str] = None) -> list[Transaction]:
        """Transactions still awaiting confirmation."""
        async with self._lock:
            if request_id is None:
                candidates = list(self._by_id.values())
            else:
                candidates = [self._by_id[i] for i in self._by_request.get(request_id, [])]
        return [tx for tx in candidates if tx.status == TransactionStatus.PENDING]

    def __len__(self) -> int:
        return len(self._by_id)
