"""
Binding for the splitio-client SDK.

splitio clients are shared by every key and publish SDK_READY and
SDK_UPDATE through client.on(), one handler per event. SplitFactoryAdapter
registers a single handler for each and fans the signals out to clients
bound to one matching key. splitio has no timed-out event, so a waiter
thread turns block_until_ready() timeouts into timed-out signals.
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from splitio import get_factory
from splitio.exceptions import TimeoutException
from splitio.models.events import SdkEvent as SplitSdkEvent

from split_provider.results import TreatmentResult
from split_provider.vendor import SdkEvent

logger = logging.getLogger("split_provider.split_sdk")


def _call(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as e:
        logger.warning(f"Error in Split SDK event callback: {e}")


class SplitClientAdapter:
    """
    A Split client bound to one matching key.

    Holds its own listeners: signals reach only the handshakes subscribed
    through this client, and off() releases them.
    """

    def __init__(self, factory: "SplitFactoryAdapter", client: Any, key: str):
        self._factory = factory
        self._client = client
        self.key = key
        self._listeners: Dict[SdkEvent, List[Callable[[], None]]] = {event: [] for event in SdkEvent}

    def get_treatment(self, flag_key: str, attributes: Optional[Dict[str, Any]] = None) -> str:
        return self._client.get_treatment(self.key, flag_key, attributes)

    def get_treatment_with_config(
        self, flag_key: str, attributes: Optional[Dict[str, Any]] = None
    ) -> TreatmentResult:
        treatment, config = self._client.get_treatment_with_config(self.key, flag_key, attributes)
        return TreatmentResult(treatment=treatment, config=config)

    def on(self, event: SdkEvent, callback: Callable[[], None]) -> None:
        """Subscribe to a signal; READY and TIMED_OUT replay when already reached."""
        with self._factory._lock:
            self._listeners[event].append(callback)
            replay = event != SdkEvent.UPDATED and self._factory.state == event
        if replay:
            _call(callback)

    def off(self, event: SdkEvent, callback: Callable[[], None]) -> None:
        """Remove a subscription."""
        with self._factory._lock:
            if callback in self._listeners[event]:
                self._listeners[event].remove(callback)

    def listener_count(self, event: SdkEvent) -> int:
        return len(self._listeners[event])


class SplitFactoryAdapter:
    """
    Wraps a splitio factory as a vendor factory.

    SDK_READY fires READY and SDK_UPDATE fires UPDATED. A daemon thread
    waits for readiness: the first timeout fires TIMED_OUT, then the wait
    goes on until the SDK is ready or destroyed. READY and TIMED_OUT are
    replayed to late subscribers.
    """

    def __init__(self, factory: Any, ready_timeout_s: float = 10.0):
        self._factory = factory
        self._ready_timeout_s = ready_timeout_s
        self._lock = threading.Lock()
        self._state: Optional[SdkEvent] = None
        self._split_client: Any = None
        self._clients: Dict[str, SplitClientAdapter] = {}
        self._destroyed = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        """Subscribe to the SDK's events and start waiting for readiness."""
        with self._lock:
            if self._thread is not None:
                return
            self._thread = threading.Thread(
                target=self._wait_until_ready,
                name="split-ready",
                daemon=True,
            )
            split_client = self._get_split_client()

        if split_client is not None:
            split_client.on(SplitSdkEvent.SDK_READY, self._on_sdk_ready)
            split_client.on(SplitSdkEvent.SDK_UPDATE, self._on_sdk_update)
        self._thread.start()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    @property
    def state(self) -> Optional[SdkEvent]:
        """READY, TIMED_OUT or None while the first wait is running."""
        return self._state

    def client(self, key: str) -> Optional[SplitClientAdapter]:
        if self._destroyed.is_set():
            return None
        with self._lock:
            adapter = self._clients.get(key)
            if adapter is None:
                split_client = self._get_split_client()
                if split_client is None:
                    return None
                adapter = SplitClientAdapter(self, split_client, key)
                self._clients[key] = adapter
            return adapter

    def destroy(self) -> None:
        """Stop waiting and destroy the underlying factory."""
        self._destroyed.set()
        with self._lock:
            for adapter in self._clients.values():
                for listeners in adapter._listeners.values():
                    listeners.clear()
            self._clients.clear()
        self._factory.destroy()

    def _get_split_client(self) -> Any:
        if self._split_client is None:
            self._split_client = self._factory.client()
        return self._split_client

    def _on_sdk_ready(self, metadata: Any = None) -> None:
        if self._destroyed.is_set():
            return
        logger.info("Split SDK ready")
        self._fire(SdkEvent.READY)

    def _on_sdk_update(self, metadata: Any = None) -> None:
        if self._destroyed.is_set():
            return
        logger.debug("Split SDK definitions updated")
        self._fire(SdkEvent.UPDATED)

    def _wait_until_ready(self) -> None:
        while not self._destroyed.is_set():
            try:
                self._factory.block_until_ready(self._ready_timeout_s)
            except TimeoutException:
                if self._destroyed.is_set():
                    return
                if self._state is None:
                    logger.warning(f"Split SDK not ready after {self._ready_timeout_s}s")
                    self._fire(SdkEvent.TIMED_OUT)
                continue
            except Exception as e:
                if not self._destroyed.is_set():
                    logger.error(f"Split SDK failed while waiting for readiness: {e}")
                return
            return

    def _fire(self, event: SdkEvent) -> None:
        with self._lock:
            if event != SdkEvent.UPDATED:
                if self._state == SdkEvent.READY or self._state == event:
                    return
                self._state = event
            listeners = [
                callback
                for adapter in self._clients.values()
                for callback in adapter._listeners[event]
            ]
        for callback in listeners:
            _call(callback)


def build_split_factory(api_key: str, targeting_key: str, config: Any) -> SplitFactoryAdapter:
    """
    Default factory builder backed by splitio.get_factory().

    Args:
        api_key: Split SDK key
        targeting_key: Key of the first client; clients for other keys share the factory
        config: ProviderConfig

    Returns:
        A started SplitFactoryAdapter
    """
    factory = get_factory(api_key, config=config.sdk_config or {})
    adapter = SplitFactoryAdapter(factory, ready_timeout_s=config.ready_timeout_s)
    adapter.start()
    logger.debug(f"Split factory built for {targeting_key!r}")
    return adapter
