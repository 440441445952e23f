"""Tests for the swap service (orchestrator registry and status aggregation)."""

import asyncio
from datetime import timedelta

import pytest

from infinitydex.errors import InvalidSignal, SwapNotFound
from infinitydex.models import (
    PendingStatus,
    StepType,
    SwapResult,
    SwapStatus,
    Transaction,
    TransactionStatus,
)
from infinitydex.services.swap_service import SwapService


async def wait_for_status(service: SwapService, request_id: str, status: SwapStatus, timeout: float = 2.0):
    """Poll until a swap reaches the given status."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if service.get_status(request_id).status == status:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"{request_id} never reached {status.value}")


class TestStartSwap:
    """Tests for starting swaps."""

    @pytest.mark.asyncio
    async def test_start_and_confirm(self, swap_service, make_request):
        request_id = await swap_service.start_swap(make_request(request_id="swap-a"))
        assert request_id == "swap-a"
        await wait_for_status(swap_service, "swap-a", SwapStatus.QUOTE_READY)

        pending = swap_service.get_status("swap-a")
        assert isinstance(pending, PendingStatus)
        assert pending.quote is not None
        assert pending.transactions == ()

        outcome = swap_service.confirm_swap("swap-a")
        assert outcome.accepted

        result = await swap_service.wait_for_result("swap-a", timeout=5)
        assert result.success
        assert swap_service.get_workflow("swap-a").result is result

    @pytest.mark.asyncio
    async def test_duplicate_request_id_returns_existing(self, swap_service, make_request):
        first = await swap_service.start_swap(make_request(request_id="swap-dup"))
        workflow = swap_service.get_workflow("swap-dup")
        second = await swap_service.start_swap(make_request(request_id="swap-dup", amount=5))

        assert first == second == "swap-dup"
        assert swap_service.get_workflow("swap-dup") is workflow
        assert workflow.request.amount != 5
        assert swap_service.list_request_ids() == ["swap-dup"]

    @pytest.mark.asyncio
    async def test_concurrent_starts_create_one_workflow(self, swap_service, make_request):
        request_ids = await asyncio.gather(
            *(swap_service.start_swap(make_request(request_id="swap-race")) for _ in range(5))
        )

        assert set(request_ids) == {"swap-race"}
        assert swap_service.list_request_ids() == ["swap-race"]

    @pytest.mark.asyncio
    async def test_generates_request_id(self, swap_service, make_request):
        request_id = await swap_service.start_swap(make_request())

        assert request_id.startswith("swap-")
        assert request_id in swap_service.list_request_ids()

    @pytest.mark.asyncio
    async def test_settings_applied(self, bridge, test_settings, make_request):
        test_settings.max_swap_amount = 10
        service = SwapService(bridge=bridge, settings=test_settings)

        await service.start_swap(make_request(request_id="swap-big"))
        result = await service.wait_for_result("swap-big", timeout=5)

        assert result.error_code == "INVALID_AMOUNT"
        await service.shutdown()


class TestStatus:
    """Tests for status aggregation."""

    @pytest.mark.asyncio
    async def test_status_is_idempotent_after_completion(self, swap_service, make_request):
        await swap_service.start_swap(make_request(request_id="swap-b"))
        swap_service.confirm_swap("swap-b")
        await swap_service.wait_for_result("swap-b", timeout=5)

        first = swap_service.get_status("swap-b")
        second = swap_service.get_status("swap-b")

        assert isinstance(first, SwapResult)
        assert first is second
        assert first.to_dict() == second.to_dict()

    @pytest.mark.asyncio
    async def test_unknown_request(self, swap_service):
        with pytest.raises(SwapNotFound):
            swap_service.get_status("swap-missing")

        with pytest.raises(SwapNotFound):
            swap_service.confirm_swap("swap-missing")

    @pytest.mark.asyncio
    async def test_unknown_signal(self, swap_service, make_request):
        await swap_service.start_swap(make_request(request_id="swap-sig"))

        with pytest.raises(InvalidSignal):
            swap_service.signal("swap-sig", "pause")


class TestCancel:
    """Tests for cancellation."""

    @pytest.mark.asyncio
    async def test_cancel_before_confirm(self, swap_service, make_request):
        await swap_service.start_swap(make_request(request_id="swap-c"))

        outcome = swap_service.cancel_swap("swap-c")
        result = await swap_service.wait_for_result("swap-c", timeout=5)

        assert outcome.accepted
        assert result.status == SwapStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_after_completion_is_rejected(self, swap_service, make_request):
        await swap_service.start_swap(make_request(request_id="swap-d"))
        swap_service.confirm_swap("swap-d")
        await swap_service.wait_for_result("swap-d", timeout=5)

        outcome = swap_service.cancel_swap("swap-d")

        assert not outcome.accepted
        assert "no longer be cancelled" in outcome.message
        assert swap_service.get_status("swap-d").status == SwapStatus.SUCCEEDED


class TestRefreshTransactions:
    @pytest.mark.asyncio
    async def test_late_confirmation_is_picked_up(self, swap_service, bridge, make_request):
        # Confirms on the 4th poll; the workflow only polls 3 times
        bridge.confirmation_polls = 4
        await swap_service.start_swap(make_request(request_id="swap-late"))
        swap_service.confirm_swap("swap-late")
        result = await swap_service.wait_for_result("swap-late", timeout=5)

        assert result.error_code == "TRANSFER_FAILED"
        assert len(await swap_service.store.pending("swap-late")) == 1

        remaining = await swap_service.refresh_transactions("swap-late")

        assert remaining == 0
        stored = await swap_service.store.list_for_request("swap-late")
        transfer = stored[1]
        assert transfer.status == TransactionStatus.COMPLETED
        assert transfer.block_number > 0
        # The terminal result keeps its snapshot
        assert result.transactions[1].status == TransactionStatus.PENDING


class TestEviction:
    """Tests for dropping finished swaps after the retention window."""

    @pytest.mark.asyncio
    async def test_finished_swaps_are_evicted(self, bridge, test_settings, make_request):
        test_settings.result_retention_seconds = 0
        service = SwapService(bridge=bridge, settings=test_settings)
        await service.start_swap(make_request(request_id="swap-old"))
        service.cancel_swap("swap-old")
        await service.wait_for_result("swap-old", timeout=5)

        await service.start_swap(make_request(request_id="swap-new"))

        assert service.list_request_ids() == ["swap-new"]
        with pytest.raises(SwapNotFound):
            service.get_status("swap-old")
        await service.shutdown()

    @pytest.mark.asyncio
    async def test_running_and_recent_swaps_are_kept(self, swap_service, make_request):
        await swap_service.start_swap(make_request(request_id="swap-running"))
        await swap_service.start_swap(make_request(request_id="swap-done"))
        swap_service.cancel_swap("swap-done")
        result = await swap_service.wait_for_result("swap-done", timeout=5)

        assert swap_service.evict_finished() == 0
        assert set(swap_service.list_request_ids()) == {"swap-running", "swap-done"}

        later = result.completion_time + timedelta(hours=2)
        assert swap_service.evict_finished(now=later) == 1
        assert swap_service.list_request_ids() == ["swap-running"]


class TestTransactionStore:
    """Tests for the transaction store seen through a completed swap."""

    @pytest.mark.asyncio
    async def test_transactions_recorded_in_order(self, swap_service, make_request):
        await swap_service.start_swap(make_request(request_id="swap-e"))
        swap_service.confirm_swap("swap-e")
        result = await swap_service.wait_for_result("swap-e", timeout=5)

        assert result.status.is_terminal
        stored = await swap_service.store.list_for_request("swap-e")
        assert [tx.id for tx in stored] == [tx.id for tx in result.transactions]
        assert len(swap_service.store) == 4

        first = await swap_service.store.get(stored[0].id)
        assert first is stored[0]
        assert await swap_service.store.get("missing") is None

    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, store, make_request):
        request = make_request()
        tx = Transaction(
            type=StepType.SWAP,
            hash="0xabc",
            status=TransactionStatus.PENDING,
            from_address=request.source_address,
            to_address=request.destination_address,
            source_chain="Ethereum",
            dest_chain="Ethereum",
            source_token=request.source_token,
            dest_token=request.source_token,
            amount=1,
            value=1,
            request_id="swap-f",
        )

        await store.add(tx)
        await store.add(tx)

        assert await store.list_for_request("swap-f") == [tx]
        assert await store.pending() == [tx]

        with pytest.raises(KeyError):
            await store.update_status("missing", TransactionStatus.COMPLETED)

    def test_pending_status_is_not_terminal(self):
        assert not SwapStatus.QUOTE_READY.is_terminal
        assert SwapStatus.TIMEOUT.is_terminal
