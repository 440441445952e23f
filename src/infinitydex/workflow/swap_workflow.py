"""Swap orchestrator state machine.

One workflow instance drives one swap request:

    initiated -> quote_ready -> {confirmed | cancelled | timeout}
              -> executing -> {succeeded | failed}

After quoting, the workflow waits for the first of a confirm signal, a
cancel signal or the quote timer. On confirm it runs the route's stages
strictly in order (wrap, transfer, swap, unwrap). If a transfer fails
after a successful wrap, the wrapped funds are unwrapped back to the
refund address on a best-effort basis.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional

from infinitydex.chains import wrapped_token_for
from infinitydex.errors import InvalidAmount, InvalidSignal, SwapError
from infinitydex.models import (
    StepType,
    SwapQuote,
    SwapRequest,
    SwapResult,
    SwapStatus,
    Token,
    Transaction,
    TransactionStatus,
    as_utc,
    new_request_id,
    utcnow,
)
from infinitydex.quotes import validate_amount
from infinitydex.routes import RoutePlan, plan_route
from infinitydex.workflow.activities import STAGE_ERRORS, SwapActivities
from infinitydex.workflow.runtime import (
    ActivityOptions,
    EventJournal,
    SignalChannel,
    Timer,
    execute_activity,
    select,
)

logger = logging.getLogger(__name__)

CONFIRM_SIGNAL = "confirm_swap"
CANCEL_SIGNAL = "cancel_swap"
TIMEOUT_EVENT = "timeout"

# Accepted spellings for inbound signals
SIGNAL_ALIASES = {
    "confirm": CONFIRM_SIGNAL,
    CONFIRM_SIGNAL: CONFIRM_SIGNAL,
    "cancel": CANCEL_SIGNAL,
    CANCEL_SIGNAL: CANCEL_SIGNAL,
}

# Statuses in which confirm/cancel signals are still buffered
SIGNALABLE_STATUSES = frozenset({SwapStatus.INITIATED, SwapStatus.QUOTE_READY})

DEFAULT_QUOTE_TIMEOUT = 30.0


@dataclass
class SwapWorkflowState:
    """Mutable state owned by exactly one workflow instance."""

    request_id: str
    status: SwapStatus = SwapStatus.INITIATED
    quote: Optional[SwapQuote] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    updated_at: datetime = field(default_factory=utcnow)


class StageFailed(Exception):
    """Internal: a stage failed and the run must end as failed."""

    def __init__(self, stage: StepType, error: SwapError):
        self.stage = stage
        self.error = error
        super().__init__(str(error))


def stage_error(stage: StepType, error: SwapError) -> SwapError:
    """Report retryable failures (timeouts included) as the stage's own error."""
    error_cls = STAGE_ERRORS[stage]
    if isinstance(error, error_cls) or not error.retryable:
        return error
    return error_cls(f"{stage.value} failed: {error.message}", cause=error)


class SwapWorkflow:
    """Orchestrates one swap request from quote to terminal result."""

    def __init__(
        self,
        request: SwapRequest,
        activities: SwapActivities,
        options: Optional[ActivityOptions] = None,
        quote_timeout: float = DEFAULT_QUOTE_TIMEOUT,
        max_amount: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not request.request_id:
            request.request_id = new_request_id()

        self.request = request
        self.activities = activities
        self.options = options or ActivityOptions()
        self.quote_timeout = quote_timeout
        self.max_amount = max_amount
        self._sleep = sleep

        self.state = SwapWorkflowState(request_id=request.request_id)
        self.journal = EventJournal(request.request_id)
        self.transactions: list[Transaction] = []
        self.result: Optional[SwapResult] = None
        self._channels = {
            CONFIRM_SIGNAL: SignalChannel(CONFIRM_SIGNAL),
            CANCEL_SIGNAL: SignalChannel(CANCEL_SIGNAL),
        }

    @property
    def request_id(self) -> str:
        return self.state.request_id

    @property
    def status(self) -> SwapStatus:
        return self.state.status

    # ---------------------------
    # Signals
    # ---------------------------
    def signal(self, name: str, payload: Any = True) -> bool:
        """
        Deliver a confirm or cancel signal.

        Returns:
            True if the signal was buffered for the quote selector, False if
            the workflow is already past the point where it listens.

        Raises:
            InvalidSignal: unknown signal name
        """
        channel_name = SIGNAL_ALIASES.get(name)
        if channel_name is None:
            raise InvalidSignal(f"Unknown signal: {name}")

        if self.state.status not in SIGNALABLE_STATUSES:
            logger.info(
                f"[{self.request_id}] Ignoring {channel_name}: swap is {self.state.status.value}"
            )
            return False

        accepted = self._channels[channel_name].send(payload)
        if accepted:
            self.journal.record("signal_received", signal=channel_name)
        return accepted

    # ---------------------------
    # Lifecycle
    # ---------------------------
    async def run(self) -> SwapResult:
        """Run the workflow to a terminal result. Never raises SwapError."""
        logger.info(
            f"[{self.request_id}] SwapWorkflow started: "
            f"{self.request.source_token.symbol} (chain {self.request.source_token.chain_id}) -> "
            f"{self.request.destination_token.symbol} (chain {self.request.destination_token.chain_id})"
        )
        self.journal.record("started", amount=str(self.request.amount))

        try:
            return await self._run()
        except Exception as e:
            logger.exception(f"[{self.request_id}] SwapWorkflow crashed")
            return self._finish(SwapStatus.FAILED, error_message=f"Internal error: {e}")
        finally:
            for channel in self._channels.values():
                channel.close()

    async def _run(self) -> SwapResult:
        # Step 1: validate before any external call
        try:
            self._validate()
            plan = plan_route(self.request)
        except SwapError as e:
            return self._fail(e)

        # Step 2: quote
        try:
            quote = await self._activity(self.activities.calculate_quote, self.request)
        except SwapError as e:
            logger.error(f"[{self.request_id}] Failed to calculate quote: {e}")
            return self._fail(e)

        self.state.quote = quote
        self._transition(SwapStatus.QUOTE_READY, path=list(quote.path))

        # Step 3: wait for confirm, cancel or timeout (first wins)
        outcome = await self._await_confirmation()
        if outcome is not None:
            return outcome

        # Step 4: execute
        self._transition(SwapStatus.EXECUTING, stages=[s.value for s in plan.stages])
        try:
            output_amount = await self._execute(plan)
        except StageFailed as e:
            return self._fail(e.error, stage=e.stage)

        return self._finish(SwapStatus.SUCCEEDED, output_amount=output_amount)

    def _validate(self) -> None:
        validate_amount(self.request.amount)
        if self.max_amount is not None and self.request.amount > self.max_amount:
            raise InvalidAmount(f"amount exceeds maximum swap amount of {self.max_amount}")

    async def _await_confirmation(self) -> Optional[SwapResult]:
        """Select on the signals and the timer; None means confirmed."""
        winner, _ = await select(
            [
                (CONFIRM_SIGNAL, self._channels[CONFIRM_SIGNAL].receive),
                (CANCEL_SIGNAL, self._channels[CANCEL_SIGNAL].receive),
                (TIMEOUT_EVENT, Timer(self.quote_timeout).wait),
            ]
        )
        for channel in self._channels.values():
            channel.close()

        if winner == CANCEL_SIGNAL:
            return self._finish(SwapStatus.CANCELLED, error_message="Swap cancelled by user")

        if winner == TIMEOUT_EVENT:
            return self._finish(SwapStatus.TIMEOUT, error_message="Quote confirmation timed out")

        deadline = self.request.deadline
        if deadline is not None and utcnow() > as_utc(deadline):
            return self._finish(
                SwapStatus.TIMEOUT, error_message="Swap deadline passed before confirmation"
            )

        self._transition(SwapStatus.CONFIRMED)
        return None

    async def _execute(self, plan: RoutePlan) -> int:
        """Run the planned stages in order. Returns the final output amount."""
        request = self.request
        working: Token = request.source_token
        amount = request.amount
        wrap_tx: Optional[Transaction] = None

        if plan.wrap:
            wrap_tx = await self._stage(StepType.WRAP, self.activities.wrap_token, request)
            working, amount = wrap_tx.dest_token, wrap_tx.value

        if plan.transfer:
            try:
                tx = await self._stage(
                    StepType.TRANSFER,
                    self.activities.transfer_token,
                    self.request_id,
                    working,
                    request.source_token.chain_id,
                    request.destination_token.chain_id,
                    amount,
                    request.source_address,
                    request.destination_address,
                )
            except StageFailed:
                if wrap_tx is not None:
                    await self._compensate(wrap_tx)
                raise
            working, amount = tx.dest_token, tx.value

        if plan.swap:
            target = request.destination_token
            if working.is_wrapped and not target.is_wrapped:
                target = wrapped_token_for(target)
            tx = await self._stage(
                StepType.SWAP,
                self.activities.swap_tokens,
                self.request_id,
                working,
                target,
                amount,
                request.destination_address,
                request.slippage,
            )
            working, amount = tx.dest_token, tx.value

        if plan.unwrap:
            tx = await self._stage(
                StepType.UNWRAP,
                self.activities.unwrap_token,
                self.request_id,
                working,
                request.destination_token,
                amount,
                request.destination_address,
            )
            amount = tx.value

        return amount

    async def _stage(self, stage: StepType, fn: Callable[..., Awaitable[Transaction]], *args) -> Transaction:
        """Run one stage and wait until its transaction is completed."""
        self.journal.record("stage_started", stage=stage.value)

        try:
            tx = await self._activity(fn, *args, name=f"{stage.value}_activity")
        except SwapError as e:
            error = stage_error(stage, e)
            self.journal.record("stage_failed", stage=stage.value, error=str(error))
            raise StageFailed(stage, error) from e

        self.transactions.append(tx)

        if not tx.is_completed:
            try:
                tx = await self._activity(
                    self.activities.confirm_transaction, tx, name=f"confirm_{stage.value}"
                )
            except SwapError as e:
                error = stage_error(stage, e)
                self.journal.record(
                    "stage_failed", stage=stage.value, tx_id=tx.id, error=str(error)
                )
                raise StageFailed(stage, error) from e

        self.journal.record("stage_completed", stage=stage.value, tx_id=tx.id, value=str(tx.value))
        logger.info(f"[{self.request_id}] {stage.value} completed: {tx.amount} -> {tx.value}")
        return tx

    async def _compensate(self, wrap_tx: Transaction) -> None:
        """Best-effort unwrap of wrapped funds back to the refund address."""
        transfer_tx = next((tx for tx in self.transactions if tx.type == StepType.TRANSFER), None)
        if transfer_tx is not None and transfer_tx.status == TransactionStatus.PENDING:
            # The transfer may still land on the destination chain
            logger.warning(
                f"[{self.request_id}] Transfer {transfer_tx.hash} still pending; "
                f"skipping compensation"
            )
            self.journal.record("compensation_skipped", reason="transfer pending")
            return

        address = self.request.compensation_address
        self.journal.record("compensation_started", address=address, amount=str(wrap_tx.value))
        logger.warning(
            f"[{self.request_id}] Compensating: unwrapping {wrap_tx.value} "
            f"{wrap_tx.dest_token.symbol} to {address}"
        )

        try:
            tx = await self._activity(
                self.activities.unwrap_token,
                self.request_id,
                wrap_tx.dest_token,
                self.request.source_token,
                wrap_tx.value,
                address,
                True,
                name="compensate_unwrap",
            )
        except Exception as e:
            logger.error(f"[{self.request_id}] Compensation failed: {e}")
            self.journal.record("compensation_failed", error=str(e))
            return

        self.transactions.append(tx)
        self.journal.record("compensation_completed", tx_id=tx.id)

    async def _activity(self, fn: Callable[..., Awaitable[Any]], *args, name: Optional[str] = None):
        return await execute_activity(fn, *args, options=self.options, name=name, sleep=self._sleep)

    # ---------------------------
    # State
    # ---------------------------
    def _transition(self, status: SwapStatus, **data) -> None:
        self.journal.record("transition", status=status.value, **data)
        self.state.status = status
        self.state.updated_at = utcnow()
        logger.info(f"[{self.request_id}] -> {status.value}")

    def _fail(self, error: SwapError, stage: Optional[StepType] = None) -> SwapResult:
        if stage is not None:
            logger.error(f"[{self.request_id}] Stage {stage.value} failed: {error}")
        return self._finish(
            SwapStatus.FAILED,
            error_message=error.message,
            error_code=error.code,
        )

    def _finish(
        self,
        status: SwapStatus,
        output_amount: int = 0,
        error_message: Optional[str] = None,
        error_code: Optional[str] = None,
    ) -> SwapResult:
        """Move to a terminal status and build the immutable result."""
        if self.result is not None:
            return self.result

        self.state.error_message = error_message
        self.state.error_code = error_code
        self._transition(status, error=error_message)

        quote = self.state.quote
        self.result = SwapResult(
            request_id=self.request_id,
            success=status == SwapStatus.SUCCEEDED,
            status=status,
            input_amount=self.request.amount if isinstance(self.request.amount, int) else 0,
            output_amount=output_amount,
            fee=quote.fee if quote else None,
            transactions=tuple(tx.snapshot() for tx in self.transactions),
            completion_time=self.state.updated_at,
            error_message=error_message,
            error_code=error_code,
        )

        if self.result.success:
            logger.info(
                f"[{self.request_id}] SwapWorkflow completed successfully: "
                f"{self.result.input_amount} {self.request.source_token.symbol} -> "
                f"{self.result.output_amount} {self.request.destination_token.symbol}"
            )
        else:
            logger.info(f"[{self.request_id}] SwapWorkflow ended {status.value}: {error_message}")
        return self.result
