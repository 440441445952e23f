"""Dry-run bridging provider for simulated swaps.

Simulates a Universal-style bridge: wrapping yields ``u``-prefixed tokens
on the same chain, transfers settle asynchronously, and each operation
charges a fixed fee schedule expressed in fractions of one whole token.
"""

import asyncio
import logging
import random
import uuid
from decimal import Decimal
from typing import Optional

from infinitydex.bridge.base import (
    BridgeProvider,
    BridgeTransactionStatus,
    SwapTokensRequest,
    SwapTokensResult,
    TransferRequest,
    TransferResult,
    UnwrapRequest,
    UnwrapResult,
    WrapRequest,
    WrapResult,
)
from infinitydex.chains import get_chain_name, wrapped_token_for
from infinitydex.errors import BridgeError
from infinitydex.models import Fee, Token, TransactionStatus
from infinitydex.pricing import convert_amount, usd_value

logger = logging.getLogger(__name__)

# Fee schedules in whole-token fractions: (gas, protocol, network, bridge)
WRAP_FEES = (Decimal("0.001"), Decimal("0.0005"), Decimal("0"), Decimal("0"))
UNWRAP_FEES = (Decimal("0.0012"), Decimal("0.0006"), Decimal("0"), Decimal("0"))
TRANSFER_FEES = (Decimal("0.0015"), Decimal("0.00075"), Decimal("0.00035"), Decimal("0.002"))
ESTIMATE_FEES = (Decimal("0.001"), Decimal("0.0005"), Decimal("0.0002"), Decimal("0.002"))

# Simulated seconds until a transfer lands on the destination chain
TRANSFER_SECONDS_DEFAULT = 15
TRANSFER_SECONDS_TO_ETHEREUM = 30


def _mock_hash() -> str:
    return f"0x{uuid.uuid4().hex}"


class DryRunBridge(BridgeProvider):
    """
    Simulated bridging provider.

    Provides deterministic results by default with:
    - Configurable latency and random failure rate
    - Forced failures per operation for testing (``fail_operations``)
    - Transfers that stay ``pending`` until polled ``confirmation_polls`` times
    """

    def __init__(
        self,
        latency: float = 0.0,
        failure_rate: float = 0.0,
        fail_operations: Optional[set[str]] = None,
        confirmation_polls: int = 1,
        omit_dest_hash: bool = False,
        seed: Optional[int] = None,
    ):
        self.latency = latency
        self.failure_rate = failure_rate
        self.fail_operations: set[str] = set(fail_operations or ())
        self.confirmation_polls = confirmation_polls
        self.omit_dest_hash = omit_dest_hash
        self._random = random.Random(seed)
        self._operations: dict[str, BridgeTransactionStatus] = {}
        self._polls: dict[str, int] = {}
        self._block_number = 19_000_000
        self.calls: list[str] = []

    @property
    def name(self) -> str:
        return "dry_run"

    async def _simulate(self, operation: str) -> None:
        """Record the call, sleep for latency and maybe fail."""
        self.calls.append(operation)
        if self.latency:
            await asyncio.sleep(self.latency)
        if operation in self.fail_operations:
            raise BridgeError(f"{operation} transaction failed: simulated failure")
        if self.failure_rate and self._random.random() < self.failure_rate:
            raise BridgeError(f"{operation} transaction failed: network error")

    def _next_block(self) -> int:
        self._block_number += 1
        return self._block_number

    @staticmethod
    def _fee(schedule: tuple[Decimal, ...], token: Token) -> Fee:
        gas, protocol, network, bridge = (int(part * token.unit) for part in schedule)
        total = gas + protocol + network + bridge
        return Fee(
            gas_fee=gas,
            protocol_fee=protocol,
            network_fee=network,
            bridge_fee=bridge,
            total_fee_usd=usd_value(total, token),
        )

    def _register(
        self,
        status: TransactionStatus,
        source_tx_hash: str,
        dest_tx_hash: Optional[str] = None,
    ) -> str:
        transaction_id = str(uuid.uuid4())
        self._operations[transaction_id] = BridgeTransactionStatus(
            transaction_id=transaction_id,
            status=status,
            source_tx_hash=source_tx_hash,
            dest_tx_hash=dest_tx_hash,
            block_number=self._next_block() if status == TransactionStatus.COMPLETED else 0,
        )
        return transaction_id

    async def wrap(self, request: WrapRequest) -> WrapResult:
        await self._simulate("wrap")

        fee = self._fee(WRAP_FEES, request.source_token)
        amount = request.amount - fee.total
        if amount <= 0:
            raise BridgeError("amount too small to cover fees")

        tx_hash = _mock_hash()
        return WrapResult(
            wrapped_token=wrapped_token_for(request.source_token),
            amount=amount,
            status=TransactionStatus.COMPLETED,
            tx_hash=tx_hash,
            transaction_id=self._register(TransactionStatus.COMPLETED, tx_hash),
            fee=fee,
        )

    async def unwrap(self, request: UnwrapRequest) -> UnwrapResult:
        await self._simulate("unwrap")

        fee = self._fee(UNWRAP_FEES, request.wrapped_token)
        amount = request.amount - fee.total
        if amount <= 0:
            raise BridgeError("amount too small to cover fees")

        tx_hash = _mock_hash()
        return UnwrapResult(
            native_token=request.destination_token,
            amount=amount,
            status=TransactionStatus.COMPLETED,
            tx_hash=tx_hash,
            transaction_id=self._register(TransactionStatus.COMPLETED, tx_hash),
            fee=fee,
        )

    async def transfer(self, request: TransferRequest) -> TransferResult:
        await self._simulate("transfer")

        fee = self._fee(TRANSFER_FEES, request.wrapped_token)
        amount = request.amount - fee.total
        if amount <= 0:
            raise BridgeError("amount too small to cover fees")

        source_tx_hash = _mock_hash()
        dest_tx_hash = None if self.omit_dest_hash else _mock_hash()
        status = (
            TransactionStatus.PENDING if self.confirmation_polls > 0 else TransactionStatus.COMPLETED
        )

        estimated = TRANSFER_SECONDS_DEFAULT
        if request.dest_chain_id == 1:
            estimated = TRANSFER_SECONDS_TO_ETHEREUM

        logger.debug(
            f"Simulated transfer {request.wrapped_token.symbol} "
            f"{get_chain_name(request.source_chain_id)} -> {get_chain_name(request.dest_chain_id)}"
        )
        return TransferResult(
            amount=amount,
            status=status,
            source_tx_hash=source_tx_hash,
            dest_tx_hash=dest_tx_hash,
            transaction_id=self._register(status, source_tx_hash, dest_tx_hash),
            fee=fee,
            estimated_seconds=estimated,
        )

    async def swap(self, request: SwapTokensRequest) -> SwapTokensResult:
        await self._simulate("swap")

        if request.source_token.chain_id != request.destination_token.chain_id:
            raise BridgeError("swap tokens must be on the same chain")

        output = convert_amount(request.amount, request.source_token, request.destination_token)
        if output <= 0:
            raise BridgeError("swap output would be zero")

        tx_hash = _mock_hash()
        return SwapTokensResult(
            output_amount=output,
            status=TransactionStatus.COMPLETED,
            tx_hash=tx_hash,
            transaction_id=self._register(TransactionStatus.COMPLETED, tx_hash),
        )

    async def estimate_fee(
        self,
        source_token: Token,
        destination_token: Token,
        amount: int,
    ) -> Fee:
        await self._simulate("estimate_fee")

        gas, protocol, network, bridge = (int(part * source_token.unit) for part in ESTIMATE_FEES)
        if source_token.chain_id == destination_token.chain_id:
            bridge = 0

        # Scale with size above one whole token
        if amount > source_token.unit:
            factor = amount // source_token.unit + 1
            gas *= factor
            protocol *= factor

        total = gas + protocol + network + bridge
        return Fee(
            gas_fee=gas,
            protocol_fee=protocol,
            network_fee=network,
            bridge_fee=bridge,
            total_fee_usd=usd_value(total, source_token),
        )

    async def get_transaction_status(self, transaction_id: str) -> BridgeTransactionStatus:
        await self._simulate("get_transaction_status")

        operation = self._operations.get(transaction_id)
        if operation is None:
            raise BridgeError(f"unknown transaction: {transaction_id}")

        if operation.status == TransactionStatus.PENDING:
            polls = self._polls.get(transaction_id, 0) + 1
            self._polls[transaction_id] = polls
            if polls >= self.confirmation_polls:
                operation.status = TransactionStatus.COMPLETED
                operation.block_number = self._next_block()
                if operation.dest_tx_hash is None:
                    operation.dest_tx_hash = _mock_hash()

        return BridgeTransactionStatus(
            transaction_id=operation.transaction_id,
            status=operation.status,
            source_tx_hash=operation.source_tx_hash,
            dest_tx_hash=operation.dest_tx_hash,
            block_number=operation.block_number,
            error_message=operation.error_message,
        )
