"""Settings and logging configuration."""

from stellar_remit.config.logging import configure_logging
from stellar_remit.config.settings import RemitSettings, RetryConfig, load_settings

__all__ = ["RemitSettings", "RetryConfig", "configure_logging", "load_settings"]
