"""Configuration classes for the Split provider."""

from dataclasses import dataclass
from typing import Any, Dict, Optional

from split_provider.vendor import FactoryBuilder


@dataclass
class ProviderConfig:
    """Configuration for SplitProvider."""

    ready_timeout_s: float = 10.0
    """Seconds the Split SDK waits before signalling timed-out (default: 10s)."""

    sdk_config: Optional[Dict[str, Any]] = None
    """Raw configuration handed to the vendor SDK."""

    factory_builder: Optional[FactoryBuilder] = None
    """Builds the vendor factory. Defaults to the splitio-client binding."""


DEFAULT_PROVIDER_CONFIG = ProviderConfig()
