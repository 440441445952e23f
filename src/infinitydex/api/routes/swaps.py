"""Swap and token endpoints.

Starting a swap returns immediately with its request id; the quote and the
execution progress are read back through the status endpoint.
"""

import logging

from fastapi import APIRouter, HTTPException, Request

from infinitydex.api.contracts import SignalResponse, SwapCreateRequest, SwapCreateResponse
from infinitydex.chains import CHAINS, tokens_for_chain
from infinitydex.errors import SwapError, SwapNotFound
from infinitydex.services.swap_service import SignalOutcome, SwapService

logger = logging.getLogger(__name__)

router = APIRouter()


def _service(request: Request) -> SwapService:
    return request.app.state.swap_service


def _signal_response(outcome: SignalOutcome) -> SignalResponse:
    return SignalResponse(
        success=outcome.accepted,
        request_id=outcome.request_id,
        message=outcome.message,
    )


@router.post("/swap", response_model=SwapCreateResponse)
async def start_swap(body: SwapCreateRequest, request: Request) -> SwapCreateResponse:
    """Start a swap.

    The request id doubles as an idempotency key: posting the same id again
    returns the existing swap.
    """
    service = _service(request)

    try:
        swap_request = body.to_domain(service.settings.default_slippage)
    except SwapError as e:
        logger.warning(f"Rejected swap request: {e}")
        raise HTTPException(status_code=400, detail=e.message)

    if swap_request.source_token == swap_request.destination_token:
        raise HTTPException(
            status_code=400, detail="Source and destination tokens must differ"
        )

    request_id = await service.start_swap(swap_request)
    return SwapCreateResponse(
        request_id=request_id,
        status=service.get_status(request_id).status.value,
        message="Swap started; confirm once the quote is ready",
    )


@router.get("/swap/{request_id}")
async def get_swap_status(request_id: str, request: Request) -> dict:
    """Current status of a swap (terminal results are returned unchanged)."""
    try:
        status = _service(request).get_status(request_id)
    except SwapNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return status.to_dict()


@router.post("/swap/{request_id}/confirm", response_model=SignalResponse)
async def confirm_swap(request_id: str, request: Request) -> SignalResponse:
    try:
        outcome = _service(request).confirm_swap(request_id)
    except SwapNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _signal_response(outcome)


@router.post("/swap/{request_id}/cancel", response_model=SignalResponse)
async def cancel_swap(request_id: str, request: Request) -> SignalResponse:
    """Cancel a swap that has not been confirmed yet."""
    try:
        outcome = _service(request).cancel_swap(request_id)
    except SwapNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _signal_response(outcome)


@router.get("/tokens")
async def list_tokens() -> dict:
    """Known tokens on every supported chain."""
    chains = []
    for chain_id, config in CHAINS.items():
        chains.append({
            "chain_id": chain_id,
            "name": config.name,
            "native_symbol": config.native_symbol,
            "explorer_url": config.explorer_url,
            "tokens": [token.to_dict() for token in tokens_for_chain(chain_id)],
        })

    return {"success": True, "chains": chains}


@router.get("/tokens/{chain_id}")
async def list_chain_tokens(chain_id: int) -> dict:
    if chain_id not in CHAINS:
        raise HTTPException(status_code=404, detail=f"Unsupported chain: {chain_id}")

    return {
        "success": True,
        "chain_id": chain_id,
        "tokens": [token.to_dict() for token in tokens_for_chain(chain_id)],
    }
