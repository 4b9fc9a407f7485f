"""
Readiness handshake.

Waits for the first of the vendor's ready, ready-from-cache or timed-out
signals. Resolution is one-shot: later signals are ignored.
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from split_provider.vendor import SdkEvent, VendorClient

logger = logging.getLogger("split_provider.handshake")

READINESS_EVENTS = (SdkEvent.READY, SdkEvent.READY_FROM_CACHE, SdkEvent.TIMED_OUT)


class HandshakeState(str, Enum):
    """Handshake states."""

    IDLE = "idle"
    """Not started."""

    AWAITING_READY = "awaiting_ready"
    """Subscribed, waiting for the vendor."""

    READY = "ready"
    """Vendor is ready (possibly from cache)."""

    TIMED_OUT = "timed_out"
    """Vendor reported a readiness timeout."""


class ReadinessHandshake:
    """
    One readiness handshake against a vendor client.

    States:
    - IDLE: created, not subscribed
    - AWAITING_READY: subscribed, caller suspended
    - READY / TIMED_OUT: resolved, caller resumed

    Vendor signals may arrive on any thread and are handled there; only the
    wake-up of an async waiter is handed to its event loop. Readiness
    listeners are removed from clients exposing off() once resolved. A
    superseded handshake removes all of its listeners and ignores every
    signal.
    """

    def __init__(self, key: str):
        self.key = key
        self._state = HandshakeState.IDLE
        self._client: Optional[VendorClient] = None
        self._lock = threading.Lock()
        self._claimed = False
        self._superseded = False
        self._done = threading.Event()
        self._future: Optional[asyncio.Future] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._listeners: Dict[SdkEvent, Callable[[], None]] = {
            event: self._listener(event) for event in SdkEvent
        }
        self._callbacks: Dict[str, List[Callable]] = {
            "stale": [],
            "updated": [],
            "timed_out": [],
            "state_change": [],
        }

    def on(self, event: str, callback: Callable) -> None:
        """Register an event callback."""
        if event in self._callbacks:
            self._callbacks[event].append(callback)

    def off(self, event: str, callback: Callable) -> None:
        """Remove an event callback."""
        if event in self._callbacks and callback in self._callbacks[event]:
            self._callbacks[event].remove(callback)

    def _emit(self, event: str, *args) -> None:
        """Emit an event to all registered callbacks."""
        for callback in self._callbacks.get(event, []):
            try:
                callback(*args)
            except Exception as e:
                logger.warning(f"Error in handshake callback: {e}")

    async def wait(self, client: VendorClient) -> HandshakeState:
        """
        Subscribe to the client's signals and suspend until resolution.

        There is no timeout here; the vendor's timed-out signal bounds the
        wait. A vendor that never signals keeps the caller suspended.

        Returns:
            READY or TIMED_OUT
        """
        self._check_idle()
        self._loop = asyncio.get_running_loop()
        self._future = self._loop.create_future()
        self._subscribe(client)
        return await self._future

    def wait_blocking(self, client: VendorClient) -> HandshakeState:
        """
        Subscribe to the client's signals and block the calling thread until
        resolution. Same contract as wait().
        """
        self._check_idle()
        self._subscribe(client)
        self._done.wait()
        return self._state

    def supersede(self) -> None:
        """Detach from the vendor: every later signal is ignored."""
        self._superseded = True
        self._detach(SdkEvent)

    @property
    def state(self) -> HandshakeState:
        """Get current handshake state."""
        return self._state

    @property
    def resolved(self) -> bool:
        return self._state in (HandshakeState.READY, HandshakeState.TIMED_OUT)

    def _check_idle(self) -> None:
        if self._state != HandshakeState.IDLE:
            raise RuntimeError(f"Handshake for {self.key!r} already started")

    def _subscribe(self, client: VendorClient) -> None:
        self._client = client
        self._transition_to(HandshakeState.AWAITING_READY)

        client.on(SdkEvent.UPDATED, self._listeners[SdkEvent.UPDATED])
        for event in READINESS_EVENTS:
            # A replayed signal may resolve us while subscribing
            if self._claimed:
                break
            client.on(event, self._listeners[event])

        if self._claimed:
            self._detach(READINESS_EVENTS)

    def _detach(self, events: Iterable[SdkEvent]) -> None:
        off = getattr(self._client, "off", None)
        if not callable(off):
            return
        for event in events:
            off(event, self._listeners[event])

    def _listener(self, event: SdkEvent) -> Callable[[], None]:
        def listener() -> None:
            self._handle(event)

        return listener

    def _handle(self, event: SdkEvent) -> None:
        if self._superseded:
            return

        if event == SdkEvent.UPDATED:
            self._emit("updated")
            return

        with self._lock:
            if self._claimed:
                logger.debug(f"Ignoring {event.value} signal for {self.key!r}: already resolved")
                return
            self._claimed = True

        if event == SdkEvent.READY_FROM_CACHE:
            self._emit("stale")
        elif event == SdkEvent.TIMED_OUT:
            self._emit("timed_out")
            self._resolve(HandshakeState.TIMED_OUT)
            return

        self._resolve(HandshakeState.READY)

    def _resolve(self, state: HandshakeState) -> None:
        self._transition_to(state)
        self._detach(READINESS_EVENTS)
        self._done.set()
        if self._future is not None:
            self._wake(state)

    def _wake(self, state: HandshakeState) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._set_result(state)
            return

        try:
            self._loop.call_soon_threadsafe(self._set_result, state)
        except RuntimeError:
            logger.debug(f"Dropped {state.value} result for {self.key!r}: event loop is closed")

    def _set_result(self, state: HandshakeState) -> None:
        if not self._future.done():
            self._future.set_result(state)

    def _transition_to(self, new_state: HandshakeState) -> None:
        """Transition to a new state."""
        old_state = self._state
        self._state = new_state
        self._emit("state_change", old_state, new_state)
