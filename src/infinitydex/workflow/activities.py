"""Pipeline step executors (activities).

Each executor validates its inputs, makes exactly one bridging provider
call and normalizes the result into a :class:`Transaction`. Validation
failures raise non-retryable errors before the provider is called;
provider failures are wrapped in the stage's retryable error.
"""

import logging
from decimal import ROUND_DOWN, Decimal
from typing import Optional

from infinitydex.bridge.base import (
    BridgeProvider,
    SwapTokensRequest,
    TransferRequest,
    UnwrapRequest,
    WrapRequest,
)
from infinitydex.chains import get_chain_name
from infinitydex.errors import (
    InsufficientAmount,
    InvalidAddress,
    InvalidToken,
    InvalidTokens,
    SwapFailed,
    TransferFailed,
    UnwrapFailed,
    WrapFailed,
)
from infinitydex.models import StepType, SwapQuote, SwapRequest, Token, Transaction, TransactionStatus
from infinitydex.pricing import convert_amount
from infinitydex.quotes import QuoteCalculator, validate_amount
from infinitydex.services.transaction_store import TransactionStore

logger = logging.getLogger(__name__)

# Simulated swap fee taken from the output (0.3%)
SWAP_FEE_RATE = Decimal("0.003")

# Default gas figures until the provider reports real ones
DEFAULT_GAS_PRICE = 2_000_000_000  # 2 gwei
WRAP_GAS = 21_000
TRANSFER_GAS = 100_000
SWAP_GAS = 150_000
UNWRAP_GAS = 50_000

STAGE_ERRORS = {
    StepType.WRAP: WrapFailed,
    StepType.TRANSFER: TransferFailed,
    StepType.SWAP: SwapFailed,
    StepType.UNWRAP: UnwrapFailed,
}


def apply_swap_costs(gross_output: int, slippage: float) -> int:
    """Apply the slippage haircut, then deduct the swap fee."""
    haircut = Decimal(gross_output) * (Decimal(1) - Decimal(str(slippage)) / Decimal(100))
    haircut = haircut.to_integral_value(rounding=ROUND_DOWN)
    fee = (haircut * SWAP_FEE_RATE).to_integral_value(rounding=ROUND_DOWN)
    return int(haircut - fee)


class SwapActivities:
    """Activities the swap orchestrator schedules."""

    def __init__(
        self,
        bridge: BridgeProvider,
        store: Optional[TransactionStore] = None,
        quote_calculator: Optional[QuoteCalculator] = None,
    ):
        self.bridge = bridge
        self.store = store or TransactionStore()
        self.quote_calculator = quote_calculator or QuoteCalculator(bridge)

    async def calculate_quote(self, request: SwapRequest) -> SwapQuote:
        """Quote a request (fee estimate plus output calculation)."""
        return await self.quote_calculator.quote(request)

    async def wrap_token(self, request: SwapRequest) -> Transaction:
        """Wrap the request's source token into its bridge-recognized form."""
        logger.info(f"[{request.request_id}] Wrapping {request.amount} {request.source_token.symbol}")

        validate_amount(request.amount)
        if not request.source_address:
            raise InvalidAddress("source address cannot be empty")

        try:
            result = await self.bridge.wrap(
                WrapRequest(
                    source_token=request.source_token,
                    amount=request.amount,
                    source_address=request.source_address,
                    refund_address=request.refund_address,
                )
            )
        except Exception as e:
            logger.error(f"[{request.request_id}] Failed to wrap token: {e}")
            raise WrapFailed(f"Failed to wrap token: {e}", cause=e) from e

        tx = Transaction(
            type=StepType.WRAP,
            hash=result.tx_hash,
            status=result.status,
            from_address=request.source_address,
            to_address=request.source_address,
            source_chain=request.source_token.chain_name,
            dest_chain=request.source_token.chain_name,
            source_token=request.source_token,
            dest_token=result.wrapped_token,
            amount=request.amount,
            value=result.amount,
            request_id=request.request_id,
            bridge_tx_id=result.transaction_id or None,
            gas=WRAP_GAS,
            gas_price=DEFAULT_GAS_PRICE,
        )
        return await self.store.add(tx)

    async def transfer_token(
        self,
        request_id: str,
        token: Token,
        source_chain_id: int,
        dest_chain_id: int,
        amount: int,
        source_address: str,
        dest_address: str,
    ) -> Transaction:
        """Move a wrapped token to another chain."""
        logger.info(
            f"[{request_id}] Transferring {amount} {token.symbol} "
            f"chain {source_chain_id} -> chain {dest_chain_id}"
        )

        validate_amount(amount)
        if not source_address or not dest_address:
            raise InvalidAddress("source and destination addresses cannot be empty")
        if not token.is_wrapped:
            raise InvalidToken("token must be wrapped for cross-chain transfer")

        try:
            result = await self.bridge.transfer(
                TransferRequest(
                    wrapped_token=token,
                    source_chain_id=source_chain_id,
                    dest_chain_id=dest_chain_id,
                    amount=amount,
                    source_address=source_address,
                    dest_address=dest_address,
                )
            )
        except Exception as e:
            logger.error(f"[{request_id}] Failed to transfer token: {e}")
            raise TransferFailed(f"Failed to transfer token: {e}", cause=e) from e

        dest_chain = get_chain_name(dest_chain_id)
        tx = Transaction(
            type=StepType.TRANSFER,
            hash=result.source_tx_hash,
            dest_hash=result.dest_tx_hash,
            status=result.status,
            from_address=source_address,
            to_address=dest_address,
            source_chain=token.chain_name,
            dest_chain=dest_chain,
            source_token=token,
            dest_token=token.on_chain(dest_chain_id, dest_chain),
            amount=amount,
            value=result.amount,
            request_id=request_id,
            bridge_tx_id=result.transaction_id or None,
            gas=TRANSFER_GAS,
            gas_price=DEFAULT_GAS_PRICE,
        )
        return await self.store.add(tx)

    async def swap_tokens(
        self,
        request_id: str,
        source_token: Token,
        dest_token: Token,
        amount: int,
        dest_address: str,
        slippage: float,
    ) -> Transaction:
        """Swap two tokens on one chain. Settles synchronously."""
        logger.info(
            f"[{request_id}] Swapping {amount} {source_token.symbol} -> {dest_token.symbol}"
        )

        validate_amount(amount)
        if not dest_address:
            raise InvalidAddress("destination address cannot be empty")
        if source_token.chain_id != dest_token.chain_id:
            raise InvalidTokens("swap tokens must be on the same chain")

        expected = apply_swap_costs(convert_amount(amount, source_token, dest_token), slippage)
        if expected <= 0:
            raise InsufficientAmount("swap output is zero after slippage and fees")

        try:
            result = await self.bridge.swap(
                SwapTokensRequest(
                    source_token=source_token,
                    destination_token=dest_token,
                    amount=amount,
                    destination_address=dest_address,
                    slippage=slippage,
                )
            )
        except Exception as e:
            logger.error(f"[{request_id}] Failed to swap tokens: {e}")
            raise SwapFailed(f"Failed to swap tokens: {e}", cause=e) from e

        output = apply_swap_costs(result.output_amount, slippage)
        tx = Transaction(
            type=StepType.SWAP,
            hash=result.tx_hash,
            status=TransactionStatus.COMPLETED,
            from_address=dest_address,
            to_address=dest_address,
            source_chain=source_token.chain_name,
            dest_chain=dest_token.chain_name,
            source_token=source_token,
            dest_token=dest_token,
            amount=amount,
            value=output,
            request_id=request_id,
            bridge_tx_id=result.transaction_id or None,
            gas=SWAP_GAS,
            gas_price=DEFAULT_GAS_PRICE,
        )
        tx = await self.store.add(tx)
        if output <= 0:
            # The provider already executed; the transaction stays on record
            raise InsufficientAmount("swap output is zero after slippage and fees")
        return tx

    async def unwrap_token(
        self,
        request_id: str,
        wrapped_token: Token,
        native_token: Token,
        amount: int,
        dest_address: str,
        is_compensation: bool = False,
    ) -> Transaction:
        """Redeem a wrapped token back into its native token."""
        logger.info(
            f"[{request_id}] Unwrapping {amount} {wrapped_token.symbol} -> {native_token.symbol}"
        )

        validate_amount(amount)
        if not dest_address:
            raise InvalidAddress("destination address cannot be empty")
        if not wrapped_token.is_wrapped:
            raise InvalidToken("source token must be wrapped for unwrapping")

        try:
            result = await self.bridge.unwrap(
                UnwrapRequest(
                    wrapped_token=wrapped_token,
                    destination_token=native_token,
                    amount=amount,
                    destination_address=dest_address,
                )
            )
        except Exception as e:
            logger.error(f"[{request_id}] Failed to unwrap token: {e}")
            raise UnwrapFailed(f"Failed to unwrap token: {e}", cause=e) from e

        tx = Transaction(
            type=StepType.UNWRAP,
            hash=result.tx_hash,
            status=result.status,
            from_address=dest_address,
            to_address=dest_address,
            source_chain=wrapped_token.chain_name,
            dest_chain=native_token.chain_name,
            source_token=wrapped_token,
            dest_token=native_token,
            amount=amount,
            value=result.amount,
            request_id=request_id,
            bridge_tx_id=result.transaction_id or None,
            gas=UNWRAP_GAS,
            gas_price=DEFAULT_GAS_PRICE,
            is_compensation=is_compensation,
        )
        return await self.store.add(tx)

    async def confirm_transaction(self, tx: Transaction) -> Transaction:
        """
        Check whether a pending transaction has settled.

        Completed: the stored record is updated and returned. Failed or
        still pending: the stage's error is raised (pending is retryable, so
        the activity runner polls again after its backoff).
        """
        if tx.is_completed:
            return tx

        stage_error = STAGE_ERRORS[tx.type]
        if not tx.bridge_tx_id:
            raise stage_error(f"{tx.type.value} transaction {tx.id} has no provider reference")

        try:
            status = await self.bridge.get_transaction_status(tx.bridge_tx_id)
        except Exception as e:
            raise stage_error(f"Failed to check {tx.type.value} status: {e}", cause=e) from e

        if status.status == TransactionStatus.PENDING:
            raise stage_error(f"{tx.type.value} transaction {tx.hash} not yet confirmed")

        updated = await self.store.update_status(
            tx.id,
            status.status,
            block_number=status.block_number,
            dest_hash=status.dest_tx_hash,
        )
        if updated.status != TransactionStatus.COMPLETED:
            reason = status.error_message or status.status.value
            error = stage_error(f"{tx.type.value} transaction {tx.hash} {reason}")
            error.retryable = False
            raise error

        logger.info(f"[{tx.request_id}] {tx.type.value} transaction {tx.hash} confirmed")
        return updated
