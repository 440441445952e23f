"""Request and response contracts for the swap API.

Amounts are integers in the token's smallest unit. They are accepted as
JSON numbers or digit strings and always returned as strings.
"""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from infinitydex.chains import find_token
from infinitydex.errors import InvalidToken
from infinitydex.models import SwapRequest, Token


class TokenRef(BaseModel):
    """A token identified by symbol and chain."""

    symbol: str = Field(..., min_length=1, max_length=20, description="Token symbol (e.g. ETH, uUSDC)")
    chain_id: int = Field(..., gt=0, description="EVM chain ID")

    @field_validator("symbol")
    @classmethod
    def normalize_symbol(cls, v: str) -> str:
        return v.strip()

    def resolve(self) -> Token:
        """Look the token up in the registry. Raises InvalidToken if unknown."""
        token = find_token(self.symbol, self.chain_id)
        if token is None:
            raise InvalidToken(f"Unsupported token {self.symbol} on chain {self.chain_id}")
        return token


class SwapCreateRequest(BaseModel):
    """Request to start a swap."""

    source_token: TokenRef
    destination_token: TokenRef
    # Non-positive amounts are rejected by the workflow as a failed run
    amount: int = Field(..., description="Amount in source token smallest units")
    source_address: str = Field(..., min_length=1, max_length=100, description="Sender address")
    destination_address: str = Field(
        ..., min_length=1, max_length=100, description="Recipient address"
    )
    slippage: Optional[float] = Field(
        None, ge=0, le=50, description="Slippage tolerance in percent (default from settings)"
    )
    deadline: Optional[datetime] = Field(None, description="Latest confirmation time")
    refund_address: Optional[str] = Field(None, max_length=100, description="Refund address")
    request_id: Optional[str] = Field(
        None, max_length=100, description="Idempotency key (generated if omitted)"
    )

    @field_validator("deadline")
    @classmethod
    def deadline_as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Deadlines without an offset are read as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    def to_domain(self, default_slippage: float) -> SwapRequest:
        """Build the domain request. Raises InvalidToken for unknown tokens."""
        return SwapRequest(
            source_token=self.source_token.resolve(),
            destination_token=self.destination_token.resolve(),
            amount=self.amount,
            source_address=self.source_address,
            destination_address=self.destination_address,
            slippage=default_slippage if self.slippage is None else self.slippage,
            deadline=self.deadline,
            refund_address=self.refund_address,
            request_id=self.request_id or "",
        )


class SwapCreateResponse(BaseModel):
    success: bool = True
    request_id: str
    status: str
    message: Optional[str] = None


class SignalResponse(BaseModel):
    """Outcome of a confirm or cancel call."""

    success: bool
    request_id: str
    message: str
