"""Pytest configuration and fixtures."""

import os

import pytest
import pytest_asyncio

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["DRY_RUN"] = "true"
os.environ["LOG_LEVEL"] = "DEBUG"

from infinitydex.bridge.dry_run import DryRunBridge
from infinitydex.chains import find_token
from infinitydex.config import Settings
from infinitydex.models import SwapRequest
from infinitydex.services.swap_service import SwapService
from infinitydex.services.transaction_store import TransactionStore
from infinitydex.workflow.activities import SwapActivities
from infinitydex.workflow.runtime import ActivityOptions, RetryPolicy

ONE_ETH = 10**18

SOURCE_ADDRESS = "0x1111111111111111111111111111111111111111"
DEST_ADDRESS = "0x2222222222222222222222222222222222222222"
REFUND_ADDRESS = "0x3333333333333333333333333333333333333333"


@pytest.fixture
def eth_mainnet():
    return find_token("ETH", 1)


@pytest.fixture
def usdc_mainnet():
    return find_token("USDC", 1)


@pytest.fixture
def usdc_polygon():
    return find_token("USDC", 137)


@pytest.fixture
def ueth_mainnet():
    return find_token("uETH", 1)


@pytest.fixture
def bridge():
    """Deterministic dry-run bridge."""
    return DryRunBridge(seed=42)


@pytest.fixture
def fast_options():
    """Activity options with no backoff delay."""
    return ActivityOptions(
        start_to_close_timeout=5.0,
        retry_policy=RetryPolicy(initial_interval=0.0, maximum_interval=0.0, maximum_attempts=3),
    )


@pytest.fixture
def store():
    return TransactionStore()


@pytest.fixture
def activities(bridge, store):
    return SwapActivities(bridge, store=store)


@pytest.fixture
def make_request(eth_mainnet, usdc_polygon):
    """Factory for swap requests (ETH on Ethereum -> USDC on Polygon by default)."""

    def _make(**overrides) -> SwapRequest:
        fields = {
            "source_token": eth_mainnet,
            "destination_token": usdc_polygon,
            "amount": ONE_ETH,
            "source_address": SOURCE_ADDRESS,
            "destination_address": DEST_ADDRESS,
        }
        fields.update(overrides)
        return SwapRequest(**fields)

    return _make


@pytest.fixture
def test_settings():
    """Settings with short timeouts and immediate retries."""
    return Settings(
        quote_timeout_seconds=2.0,
        activity_timeout_seconds=5.0,
        retry_initial_interval=0.0,
        retry_maximum_interval=0.0,
        retry_maximum_attempts=3,
    )


@pytest_asyncio.fixture
async def swap_service(bridge, test_settings):
    """Swap service running on the dry-run bridge."""
    service = SwapService(bridge=bridge, settings=test_settings)
    yield service
    await service.shutdown()
