"""Fee and quote calculation for swap requests."""

import logging
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from infinitydex.bridge.base import BridgeProvider
from infinitydex.errors import FeeEstimateFailed, InsufficientAmount, InvalidAmount
from infinitydex.models import Fee, SwapQuote, SwapRequest, utcnow
from infinitydex.pricing import PRICE_IMPACT_PERCENT, convert_amount
from infinitydex.routes import plan_route

logger = logging.getLogger(__name__)


def validate_amount(amount: Optional[int]) -> None:
    """Raise InvalidAmount unless amount is a positive integer."""
    if amount is None or isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise InvalidAmount("amount must be greater than zero")


class QuoteCalculator:
    """Produces fee breakdowns and perishable quotes for swap requests.

    The only external call is the provider's read-only fee estimate.
    """

    def __init__(self, bridge: BridgeProvider, quote_ttl_seconds: float = 30.0):
        self.bridge = bridge
        self.quote_ttl_seconds = quote_ttl_seconds

    async def estimate_fee(self, request: SwapRequest) -> Fee:
        """Get a fee estimate, rejecting requests that cannot cover it."""
        validate_amount(request.amount)

        try:
            fee = await self.bridge.estimate_fee(
                request.source_token, request.destination_token, request.amount
            )
        except Exception as e:
            logger.error(f"[{request.request_id}] Failed to get fee estimate: {e}")
            raise FeeEstimateFailed(f"Failed to get fee estimate: {e}", cause=e) from e

        if request.amount - fee.total <= 0:
            raise InsufficientAmount("Amount too small to cover fees")

        return fee

    async def quote(self, request: SwapRequest) -> SwapQuote:
        """
        Quote a swap request.

        Fees are charged in source-token units, so they are deducted before
        converting into the destination token.

        Raises:
            InvalidAmount: amount is not positive (no provider call is made)
            InvalidTokens: source and destination are the same token
            FeeEstimateFailed: the provider's fee estimate failed
            InsufficientAmount: nothing would be left after fees
        """
        validate_amount(request.amount)
        plan = plan_route(request)
        fee = await self.estimate_fee(request)

        net_input = request.amount - fee.total
        output_amount = convert_amount(net_input, request.source_token, request.destination_token)
        if output_amount <= 0:
            raise InsufficientAmount("Output amount too small after fees")

        exchange_rate = float(Decimal(output_amount) / Decimal(request.amount))
        created_at = utcnow()

        quote = SwapQuote(
            source_token=request.source_token,
            destination_token=request.destination_token,
            input_amount=request.amount,
            output_amount=output_amount,
            fee=fee,
            path=plan.path,
            price_impact=PRICE_IMPACT_PERCENT,
            exchange_rate=exchange_rate,
            created_at=created_at,
            expires_at=created_at + timedelta(seconds=self.quote_ttl_seconds),
        )
        logger.info(
            f"[{request.request_id}] Quote: {quote.input_amount} {quote.source_token.symbol} -> "
            f"{quote.output_amount} {quote.destination_token.symbol} "
            f"(fee {fee.total}, rate {exchange_rate:.6g})"
        )
        return quote
