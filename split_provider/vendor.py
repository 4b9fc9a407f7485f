"""
Vendor SDK collaborators consumed by the provider.

Any Split-compatible SDK can be plugged in as long as it fits these shapes;
split_provider.split_sdk binds the splitio-client package.
"""

from enum import Enum
from typing import Any, Callable, Dict, Optional, Protocol

from split_provider.results import TreatmentResult


class SdkEvent(str, Enum):
    """Vendor lifecycle signals the provider listens to."""

    READY = "ready"
    READY_FROM_CACHE = "ready-from-cache"
    UPDATED = "updated"
    TIMED_OUT = "timed-out"


class VendorClient(Protocol):
    """
    A vendor client scoped to one targeting key.

    on() must replay READY or TIMED_OUT to late subscribers when the client
    already reached that state, otherwise a re-run handshake never resolves.
    Clients may also expose off(event, callback); listeners are then removed
    once a handshake no longer needs them.
    """

    def get_treatment(self, flag_key: str, attributes: Optional[Dict[str, Any]] = None) -> str: ...

    def get_treatment_with_config(
        self, flag_key: str, attributes: Optional[Dict[str, Any]] = None
    ) -> TreatmentResult: ...

    def on(self, event: SdkEvent, callback: Callable[[], None]) -> None: ...


class VendorFactory(Protocol):
    """Builds key-scoped clients. May also expose destroy()."""

    def client(self, key: str) -> Optional[VendorClient]: ...


FactoryBuilder = Callable[[str, str, Any], VendorFactory]
"""Builds a factory from (api key, targeting key, ProviderConfig)."""
