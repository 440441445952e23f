"""Factory for creating bridging providers.

Only the simulated provider ships with this package; live providers are
supplied by the deployment and passed to the swap service directly.
"""

import logging
from typing import Optional

from infinitydex.bridge.base import BridgeProvider
from infinitydex.bridge.dry_run import DryRunBridge
from infinitydex.config import Settings, get_settings

logger = logging.getLogger(__name__)


def create_bridge_provider(settings: Optional[Settings] = None) -> BridgeProvider:
    """Create the bridging provider described by settings.

    Raises:
        ValueError: dry run is disabled, so a live provider must be passed in
    """
    settings = settings or get_settings()

    if not settings.dry_run:
        raise ValueError(
            f"No live bridging provider registered for {settings.universal_api_url}; "
            f"pass one to SwapService or enable DRY_RUN"
        )

    logger.info("Using dry-run bridging provider")
    return DryRunBridge(
        latency=settings.bridge_latency_seconds,
        failure_rate=settings.bridge_failure_rate,
    )
