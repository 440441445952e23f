"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from infinitydex.workflow.runtime import ActivityOptions, RetryPolicy


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ======================
    # Orchestration
    # ======================
    quote_timeout_seconds: float = Field(
        default=30.0, description="How long a quote waits for confirm/cancel"
    )
    activity_timeout_seconds: float = Field(
        default=30.0, description="Start-to-close timeout of a single activity attempt"
    )
    retry_initial_interval: float = Field(default=1.0, description="First retry backoff (s)")
    retry_backoff_coefficient: float = Field(default=2.0, description="Backoff multiplier")
    retry_maximum_interval: float = Field(default=10.0, description="Backoff cap (s)")
    retry_maximum_attempts: int = Field(default=3, description="Attempts per activity")
    result_retention_seconds: float = Field(
        default=3600.0, ge=0.0, description="How long finished swaps stay queryable"
    )

    # ======================
    # Swap
    # ======================
    default_slippage: float = Field(
        default=0.5, description="Default slippage tolerance in percent"
    )
    max_swap_amount: Optional[int] = Field(
        default=None, description="Largest accepted amount in smallest units (None = no cap)"
    )

    # ======================
    # Bridging provider
    # ======================
    dry_run: bool = Field(default=True, description="Use the simulated bridging provider")
    universal_api_url: str = Field(
        default="https://api.universal.xyz", description="Bridging provider API URL"
    )
    universal_api_key: str = Field(default="", description="Bridging provider API key")
    bridge_latency_seconds: float = Field(
        default=0.0, description="Simulated provider latency (dry run)"
    )
    bridge_failure_rate: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Simulated provider failure probability"
    )

    def retry_policy(self) -> RetryPolicy:
        """Build the activity retry policy from settings."""
        return RetryPolicy(
            initial_interval=self.retry_initial_interval,
            backoff_coefficient=self.retry_backoff_coefficient,
            maximum_interval=self.retry_maximum_interval,
            maximum_attempts=self.retry_maximum_attempts,
        )

    def activity_options(self) -> ActivityOptions:
        """Build the options every orchestrator activity runs with."""
        return ActivityOptions(
            start_to_close_timeout=self.activity_timeout_seconds,
            retry_policy=self.retry_policy(),
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "orchestration": {
                "quote_timeout_seconds": self.quote_timeout_seconds,
                "activity_timeout_seconds": self.activity_timeout_seconds,
                "result_retention_seconds": self.result_retention_seconds,
                "retry": {
                    "initial_interval": self.retry_initial_interval,
                    "backoff_coefficient": self.retry_backoff_coefficient,
                    "maximum_interval": self.retry_maximum_interval,
                    "maximum_attempts": self.retry_maximum_attempts,
                },
            },
            "bridge": {
                "api_url": self.universal_api_url,
                "api_key": "***" if self.universal_api_key else "(not set)",
            },
            "swap": {
                "default_slippage": self.default_slippage,
                "max_swap_amount": str(self.max_swap_amount) if self.max_swap_amount else None,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
