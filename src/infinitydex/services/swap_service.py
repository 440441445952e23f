"""Swap service: starts orchestrators, routes signals, aggregates status.

Each request id owns exactly one :class:`SwapWorkflow` running as its own
asyncio task. Starting a request id twice returns the existing run.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Union

from infinitydex.bridge.base import BridgeProvider
from infinitydex.bridge.factory import create_bridge_provider
from infinitydex.config import Settings, get_settings
from infinitydex.errors import SwapNotFound
from infinitydex.models import PendingStatus, SwapRequest, SwapResult, new_request_id, utcnow
from infinitydex.quotes import QuoteCalculator
from infinitydex.services.transaction_store import TransactionStore
from infinitydex.workflow.activities import SwapActivities
from infinitydex.workflow.swap_workflow import CANCEL_SIGNAL, CONFIRM_SIGNAL, SwapWorkflow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignalOutcome:
    """Whether a signal reached a workflow that was still listening."""

    request_id: str
    accepted: bool
    message: str


class SwapService:
    """Runs swap workflows in-process, keyed by request id."""

    def __init__(
        self,
        bridge: Optional[BridgeProvider] = None,
        settings: Optional[Settings] = None,
        store: Optional[TransactionStore] = None,
    ):
        self.settings = settings or get_settings()
        self.bridge = bridge or create_bridge_provider(self.settings)
        self.store = store or TransactionStore()
        self.activities = SwapActivities(
            self.bridge,
            store=self.store,
            quote_calculator=QuoteCalculator(
                self.bridge, quote_ttl_seconds=self.settings.quote_timeout_seconds
            ),
        )
        self._workflows: dict[str, SwapWorkflow] = {}
        self._tasks: dict[str, asyncio.Task] = {}
        self._lock = asyncio.Lock()

    async def start_swap(self, request: SwapRequest) -> str:
        """
        Start an orchestrator for a request and return its request id.

        The request id is the idempotency key: a request id that is already
        known returns without starting a second workflow.
        """
        if not request.request_id:
            request.request_id = new_request_id()

        async with self._lock:
            self.evict_finished()
            existing = self._workflows.get(request.request_id)
            if existing is not None:
                logger.info(f"[{request.request_id}] Swap already started; returning existing run")
                return existing.request_id

            workflow = SwapWorkflow(
                request,
                self.activities,
                options=self.settings.activity_options(),
                quote_timeout=self.settings.quote_timeout_seconds,
                max_amount=self.settings.max_swap_amount,
            )
            self._workflows[request.request_id] = workflow
            self._tasks[request.request_id] = asyncio.create_task(
                workflow.run(), name=f"swap:{request.request_id}"
            )

        logger.info(f"[{request.request_id}] Swap started")
        return request.request_id

    def get_workflow(self, request_id: str) -> SwapWorkflow:
        """Raises SwapNotFound for unknown request ids."""
        workflow = self._workflows.get(request_id)
        if workflow is None:
            raise SwapNotFound(request_id)
        return workflow

    def signal(self, request_id: str, name: str) -> SignalOutcome:
        workflow = self.get_workflow(request_id)
        accepted = workflow.signal(name)
        if accepted:
            message = f"{name} delivered"
        else:
            message = f"{name} ignored: swap is {workflow.status.value}"
        return SignalOutcome(request_id=request_id, accepted=accepted, message=message)

    def confirm_swap(self, request_id: str) -> SignalOutcome:
        return self.signal(request_id, CONFIRM_SIGNAL)

    def cancel_swap(self, request_id: str) -> SignalOutcome:
        """Cancel a swap that is still waiting for confirmation.

        Once execution has begun, cancellation no longer applies and the
        outcome says so.
        """
        outcome = self.signal(request_id, CANCEL_SIGNAL)
        if not outcome.accepted:
            status = self.get_workflow(request_id).status
            return SignalOutcome(
                request_id=request_id,
                accepted=False,
                message=f"Swap can no longer be cancelled (status: {status.value})",
            )
        return outcome

    def get_status(self, request_id: str) -> Union[SwapResult, PendingStatus]:
        """
        Current status of a swap.

        Terminal runs return their cached result unchanged on every call.
        Non-terminal runs return a lightweight pending status.
        """
        workflow = self.get_workflow(request_id)
        if workflow.result is not None:
            return workflow.result

        state = workflow.state
        return PendingStatus(
            request_id=request_id,
            status=state.status,
            quote=state.quote,
            transactions=tuple(tx.snapshot() for tx in workflow.transactions),
            updated_at=state.updated_at,
        )

    async def wait_for_result(self, request_id: str, timeout: Optional[float] = None) -> SwapResult:
        """Block until the swap reaches a terminal result."""
        self.get_workflow(request_id)
        task = self._tasks[request_id]
        return await asyncio.wait_for(asyncio.shield(task), timeout=timeout)

    async def refresh_transactions(self, request_id: str) -> int:
        """
        Poll the provider for pending transactions of a request.

        Returns the number of transactions still pending afterwards.
        """
        pending = await self.store.pending(request_id)
        for tx in pending:
            if not tx.bridge_tx_id:
                continue
            try:
                status = await self.bridge.get_transaction_status(tx.bridge_tx_id)
            except Exception as e:
                logger.warning(f"[{request_id}] Could not refresh transaction {tx.id}: {e}")
                continue
            if status.status != tx.status:
                await self.store.update_status(
                    tx.id,
                    status.status,
                    block_number=status.block_number,
                    dest_hash=status.dest_tx_hash,
                )
        return len(await self.store.pending(request_id))

    def list_request_ids(self) -> list[str]:
        return list(self._workflows)

    def evict_finished(self, now: Optional[datetime] = None) -> int:
        """
        Forget swaps that finished more than ``result_retention_seconds`` ago.

        Evicted request ids answer SwapNotFound afterwards; their transactions
        stay in the store. Returns the number of swaps evicted.
        """
        cutoff = (now or utcnow()) - timedelta(seconds=self.settings.result_retention_seconds)
        expired = [
            request_id
            for request_id, workflow in self._workflows.items()
            if workflow.result is not None and workflow.result.completion_time <= cutoff
        ]
        for request_id in expired:
            del self._workflows[request_id]
            self._tasks.pop(request_id, None)

        if expired:
            logger.info(f"Evicted {len(expired)} finished swap(s)")
        return len(expired)

    async def shutdown(self) -> None:
        """Cancel every workflow task that is still running."""
        running = [task for task in self._tasks.values() if not task.done()]
        for task in running:
            task.cancel()
        if running:
            await asyncio.gather(*running, return_exceptions=True)
            logger.info(f"Cancelled {len(running)} running swap(s)")
