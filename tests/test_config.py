"""Tests for settings and the bridging provider factory."""

import pytest

from infinitydex.bridge.dry_run import DryRunBridge
from infinitydex.bridge.factory import create_bridge_provider
from infinitydex.config import Settings


class TestCreateBridgeProvider:
    def test_dry_run(self):
        settings = Settings(dry_run=True, bridge_failure_rate=0.25)

        bridge = create_bridge_provider(settings)

        assert isinstance(bridge, DryRunBridge)
        assert bridge.failure_rate == 0.25

    def test_live_mode_requires_provider(self):
        settings = Settings(dry_run=False)

        with pytest.raises(ValueError, match="DRY_RUN"):
            create_bridge_provider(settings)


class TestSettings:
    def test_safe_dict_redacts_key(self):
        settings = Settings(universal_api_key="secret")

        safe = settings.get_safe_dict()

        assert safe["bridge"]["api_key"] == "***"
        assert "secret" not in str(safe)
        assert safe["orchestration"]["result_retention_seconds"] == 3600.0

    def test_activity_options(self):
        settings = Settings(activity_timeout_seconds=7.0, retry_maximum_attempts=5)

        options = settings.activity_options()

        assert options.start_to_close_timeout == 7.0
        assert options.retry_policy.maximum_attempts == 5
