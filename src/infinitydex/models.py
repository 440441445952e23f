"""Domain models for cross-chain swaps.

All on-chain amounts are Python ints in the token's smallest unit.
Floats appear only in display fields (exchange rate, price impact,
USD fee total) and never feed back into amount arithmetic.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_request_id() -> str:
    """Generate a fresh swap request id (idempotency key)."""
    return f"swap-{uuid.uuid4()}"


class StepType(str, Enum):
    """Pipeline stage that produced a transaction."""

    WRAP = "wrap"
    TRANSFER = "transfer"
    SWAP = "swap"
    UNWRAP = "unwrap"


class TransactionStatus(str, Enum):
    """Status of a single stage transaction."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class SwapStatus(str, Enum):
    """Lifecycle status of one orchestration run."""

    INITIATED = "initiated"
    QUOTE_READY = "quote_ready"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"
    EXECUTING = "executing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {SwapStatus.CANCELLED, SwapStatus.TIMEOUT, SwapStatus.SUCCEEDED, SwapStatus.FAILED}
)


@dataclass(frozen=True)
class Token:
    """A token on a specific chain. Equal by (symbol, chain_id)."""

    symbol: str
    name: str = field(default="", compare=False)
    decimals: int = field(default=18, compare=False)
    address: str = field(default="", compare=False)
    chain_id: int = 0
    chain_name: str = field(default="", compare=False)
    is_wrapped: bool = field(default=False, compare=False)

    @property
    def unit(self) -> int:
        """Smallest units per whole token."""
        return 10 ** self.decimals

    def on_chain(self, chain_id: int, chain_name: str) -> "Token":
        """Same asset re-homed on another chain."""
        return replace(self, chain_id=chain_id, chain_name=chain_name)

    def to_dict(self) -> dict:
        return {
            "symbol": self.symbol,
            "name": self.name,
            "decimals": self.decimals,
            "address": self.address,
            "chain_id": self.chain_id,
            "chain_name": self.chain_name,
            "is_wrapped": self.is_wrapped,
        }


@dataclass
class SwapRequest:
    """A user's request to swap one token for another."""

    source_token: Token
    destination_token: Token
    amount: int
    source_address: str
    destination_address: str
    slippage: float = 0.5  # percent
    deadline: Optional[datetime] = None
    refund_address: Optional[str] = None
    request_id: str = ""

    def __post_init__(self):
        if self.deadline is not None:
            self.deadline = as_utc(self.deadline)

    @property
    def is_cross_chain(self) -> bool:
        return self.source_token.chain_id != self.destination_token.chain_id

    @property
    def compensation_address(self) -> str:
        """Where compensating refunds are sent."""
        return self.refund_address or self.source_address


@dataclass(frozen=True)
class Fee:
    """Fee breakdown in source-token smallest units."""

    gas_fee: int = 0
    protocol_fee: int = 0
    network_fee: int = 0
    bridge_fee: int = 0
    total_fee_usd: float = 0.0

    @property
    def total(self) -> int:
        return self.gas_fee + self.protocol_fee + self.network_fee + self.bridge_fee

    def to_dict(self) -> dict:
        return {
            "gas_fee": str(self.gas_fee),
            "protocol_fee": str(self.protocol_fee),
            "network_fee": str(self.network_fee),
            "bridge_fee": str(self.bridge_fee),
            "total_fee_usd": self.total_fee_usd,
        }


@dataclass(frozen=True)
class SwapQuote:
    """A perishable price quote presented to the user for confirmation."""

    source_token: Token
    destination_token: Token
    input_amount: int
    output_amount: int
    fee: Fee
    path: tuple[str, ...]
    price_impact: float
    exchange_rate: float
    created_at: datetime = field(default_factory=utcnow)
    expires_at: Optional[datetime] = None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and utcnow() >= self.expires_at

    def to_dict(self) -> dict:
        return {
            "source_token": self.source_token.to_dict(),
            "destination_token": self.destination_token.to_dict(),
            "input_amount": str(self.input_amount),
            "output_amount": str(self.output_amount),
            "fee": self.fee.to_dict(),
            "path": list(self.path),
            "price_impact": self.price_impact,
            "exchange_rate": self.exchange_rate,
            "created_at": self.created_at.isoformat(),
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@dataclass
class Transaction:
    """Record of one successfully submitted pipeline stage.

    Only status, block_number and dest_hash change after creation.
    """

    type: StepType
    hash: str
    status: TransactionStatus
    from_address: str
    to_address: str
    source_chain: str
    dest_chain: str
    source_token: Token
    dest_token: Token
    amount: int
    value: int
    request_id: str
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    bridge_tx_id: Optional[str] = None
    dest_hash: Optional[str] = None
    gas: int = 0
    gas_price: int = 0
    block_number: int = 0
    is_compensation: bool = False
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def is_completed(self) -> bool:
        return self.status == TransactionStatus.COMPLETED

    def snapshot(self) -> "Transaction":
        """Detached copy for immutable results."""
        return replace(self)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "hash": self.hash,
            "dest_hash": self.dest_hash,
            "status": self.status.value,
            "from_address": self.from_address,
            "to_address": self.to_address,
            "source_chain": self.source_chain,
            "dest_chain": self.dest_chain,
            "source_token": self.source_token.to_dict(),
            "dest_token": self.dest_token.to_dict(),
            "amount": str(self.amount),
            "value": str(self.value),
            "gas": str(self.gas),
            "gas_price": str(self.gas_price),
            "block_number": self.block_number,
            "is_compensation": self.is_compensation,
            "timestamp": self.timestamp.isoformat(),
            "request_id": self.request_id,
        }


@dataclass(frozen=True)
class SwapResult:
    """Terminal, immutable record of one orchestration run."""

    request_id: str
    success: bool
    status: SwapStatus
    input_amount: int = 0
    output_amount: int = 0
    fee: Optional[Fee] = None
    transactions: tuple[Transaction, ...] = ()
    completion_time: datetime = field(default_factory=utcnow)
    error_message: Optional[str] = None
    error_code: Optional[str] = None

    def _first(self, *types: StepType) -> Optional[Transaction]:
        for tx in self.transactions:
            if tx.type in types and not tx.is_compensation:
                return tx
        return None

    @property
    def source_tx(self) -> Optional[Transaction]:
        """First stage transaction on the source side."""
        stage = [tx for tx in self.transactions if not tx.is_compensation]
        return stage[0] if stage else None

    @property
    def bridge_tx(self) -> Optional[Transaction]:
        return self._first(StepType.TRANSFER)

    @property
    def destination_tx(self) -> Optional[Transaction]:
        """Last stage transaction (delivers to the destination address)."""
        stage = [tx for tx in self.transactions if not tx.is_compensation]
        return stage[-1] if stage else None

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "success": self.success,
            "status": self.status.value,
            "input_amount": str(self.input_amount),
            "output_amount": str(self.output_amount),
            "fee": self.fee.to_dict() if self.fee else None,
            "source_tx": self.source_tx.to_dict() if self.source_tx else None,
            "bridge_tx": self.bridge_tx.to_dict() if self.bridge_tx else None,
            "destination_tx": self.destination_tx.to_dict() if self.destination_tx else None,
            "transactions": [tx.to_dict() for tx in self.transactions],
            "completion_time": self.completion_time.isoformat(),
            "error_message": self.error_message,
            "error_code": self.error_code,
        }


@dataclass(frozen=True)
class PendingStatus:
    """Lightweight status of a swap that has not reached a terminal state."""

    request_id: str
    status: SwapStatus
    quote: Optional[SwapQuote] = None
    transactions: tuple[Transaction, ...] = ()
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "status": self.status.value,
            "quote": self.quote.to_dict() if self.quote else None,
            "transactions": [tx.to_dict() for tx in self.transactions],
            "updated_at": self.updated_at.isoformat(),
        }
