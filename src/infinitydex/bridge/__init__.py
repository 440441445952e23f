"""Bridging providers: wrap, transfer, swap and unwrap capabilities.

Providers:
- Dry Run: simulated Universal-style bridge for development and tests
"""

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
from infinitydex.bridge.dry_run import DryRunBridge
from infinitydex.bridge.factory import create_bridge_provider

__all__ = [
    # Base classes
    "BridgeProvider",
    "BridgeTransactionStatus",
    "WrapRequest",
    "WrapResult",
    "UnwrapRequest",
    "UnwrapResult",
    "TransferRequest",
    "TransferResult",
    "SwapTokensRequest",
    "SwapTokensResult",
    # Providers
    "DryRunBridge",
    "create_bridge_provider",
]
