"""Abstract interface for bridging providers.

A bridging provider wraps native assets into bridge-recognized tokens,
moves wrapped tokens across chains, swaps tokens on a single chain and
redeems wrapped tokens back to native assets. Every operation may fail
by raising :class:`~infinitydex.errors.BridgeError`.

Callers must treat operations as at-least-once: the orchestrator may
repeat a call after a timeout, so providers should not be assumed to
deduplicate.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from infinitydex.models import Fee, Token, TransactionStatus


@dataclass
class WrapRequest:
    source_token: Token
    amount: int
    source_address: str
    refund_address: Optional[str] = None


@dataclass
class WrapResult:
    wrapped_token: Token
    amount: int  # after fees
    status: TransactionStatus
    tx_hash: str
    transaction_id: str = ""
    fee: Fee = field(default_factory=Fee)


@dataclass
class UnwrapRequest:
    wrapped_token: Token
    destination_token: Token
    amount: int
    destination_address: str
    refund_address: Optional[str] = None


@dataclass
class UnwrapResult:
    native_token: Token
    amount: int  # after fees
    status: TransactionStatus
    tx_hash: str
    transaction_id: str = ""
    fee: Fee = field(default_factory=Fee)


@dataclass
class TransferRequest:
    wrapped_token: Token
    source_chain_id: int
    dest_chain_id: int
    amount: int
    source_address: str
    dest_address: str
    refund_address: Optional[str] = None


@dataclass
class TransferResult:
    amount: int  # after fees
    status: TransactionStatus
    source_tx_hash: str
    dest_tx_hash: Optional[str] = None  # destination confirmation can lag
    transaction_id: str = ""
    fee: Fee = field(default_factory=Fee)
    estimated_seconds: int = 0


@dataclass
class SwapTokensRequest:
    source_token: Token
    destination_token: Token
    amount: int
    destination_address: str
    slippage: float  # percent


@dataclass
class SwapTokensResult:
    output_amount: int  # gross fill, before slippage haircut and swap fee
    status: TransactionStatus
    tx_hash: str
    transaction_id: str = ""


@dataclass
class BridgeTransactionStatus:
    """Provider-side view of a previously submitted operation."""

    transaction_id: str
    status: TransactionStatus
    source_tx_hash: str = ""
    dest_tx_hash: Optional[str] = None
    block_number: int = 0
    error_message: Optional[str] = None


class BridgeProvider(ABC):
    """Abstract base class for bridging providers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        pass

    @abstractmethod
    async def wrap(self, request: WrapRequest) -> WrapResult:
        """Wrap a native token into its bridge-recognized form."""
        pass

    @abstractmethod
    async def unwrap(self, request: UnwrapRequest) -> UnwrapResult:
        """Redeem a wrapped token back to a native token."""
        pass

    @abstractmethod
    async def transfer(self, request: TransferRequest) -> TransferResult:
        """Move a wrapped token from one chain to another."""
        pass

    @abstractmethod
    async def swap(self, request: SwapTokensRequest) -> SwapTokensResult:
        """Swap two tokens on the same chain."""
        pass

    @abstractmethod
    async def estimate_fee(
        self,
        source_token: Token,
        destination_token: Token,
        amount: int,
    ) -> Fee:
        """
        Estimate the fees for swapping ``amount`` of ``source_token``.

        Args:
            source_token: Token being sold
            destination_token: Token being bought
            amount: Amount in source-token smallest units

        Returns:
            Fee breakdown in source-token smallest units
        """
        pass

    @abstractmethod
    async def get_transaction_status(self, transaction_id: str) -> BridgeTransactionStatus:
        """Look up the current status of a submitted operation."""
        pass
