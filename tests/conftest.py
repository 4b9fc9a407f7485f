"""Shared fixtures: scriptable fake vendor client and factory."""

from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import pytest
from openfeature.evaluation_context import EvaluationContext

from split_provider import ProviderConfig, SdkEvent, SplitProvider
from split_provider.results import TreatmentResult


class FakeClient:
    """
    Vendor client serving canned treatments.

    Events listed in replay fire as soon as someone subscribes to them.
    """

    def __init__(self, replay: Optional[Set[SdkEvent]] = None):
        self.treatments: Dict[str, Tuple[str, Optional[str]]] = {}
        self.replay: Set[SdkEvent] = set(replay or ())
        self.listeners: Dict[SdkEvent, List[Callable[[], None]]] = defaultdict(list)
        self.calls: List[Tuple[str, Optional[Dict[str, Any]]]] = []
        self.subscribe_count = 0

    def serve(self, flag_key: str, treatment: str, config: Optional[str] = None) -> "FakeClient":
        self.treatments[flag_key] = (treatment, config)
        return self

    def get_treatment(self, flag_key: str, attributes: Optional[Dict[str, Any]] = None) -> str:
        return self.get_treatment_with_config(flag_key, attributes).treatment

    def get_treatment_with_config(
        self, flag_key: str, attributes: Optional[Dict[str, Any]] = None
    ) -> TreatmentResult:
        self.calls.append((flag_key, attributes))
        treatment, config = self.treatments.get(flag_key, ("control", None))
        return TreatmentResult(treatment=treatment, config=config)

    def on(self, event: SdkEvent, callback: Callable[[], None]) -> None:
        self.subscribe_count += 1
        self.listeners[event].append(callback)
        if event in self.replay:
            callback()

    def off(self, event: SdkEvent, callback: Callable[[], None]) -> None:
        if callback in self.listeners[event]:
            self.listeners[event].remove(callback)

    def fire(self, event: SdkEvent) -> None:
        for callback in list(self.listeners[event]):
            callback()

    @property
    def subscriptions(self) -> int:
        """Number of live listeners."""
        return sum(len(listeners) for listeners in self.listeners.values())


class FakeFactory:
    """Vendor factory handing out one FakeClient per key."""

    def __init__(self):
        self.clients: Dict[str, Optional[FakeClient]] = {}
        self.replay: Set[SdkEvent] = {SdkEvent.READY}
        self.builds: List[Tuple[str, str]] = []
        self.destroyed = False

    def build(self, api_key: str, targeting_key: str, config: Any) -> "FakeFactory":
        self.builds.append((api_key, targeting_key))
        return self

    def client(self, key: str) -> Optional[FakeClient]:
        if key not in self.clients:
            self.clients[key] = FakeClient(replay=self.replay)
        return self.clients[key]

    def destroy(self) -> None:
        self.destroyed = True


def event_types(events):
    """Event types of recorded (event, details) pairs."""
    return [event for event, _ in events]


@pytest.fixture
def factory():
    """Create a fake vendor factory whose clients are ready on subscribe."""
    return FakeFactory()


@pytest.fixture
def config(factory):
    """Create test configuration wired to the fake factory."""
    return ProviderConfig(factory_builder=factory.build)


@pytest.fixture
def provider(config):
    """Create an uninitialized provider."""
    return SplitProvider("test-api-key", config)


def record_events(provider):
    """Attach a recorder in place of a host and return its list."""
    recorded = []
    provider.attach(lambda source, event, details: recorded.append((event, details)))
    return recorded


@pytest.fixture
def events(provider):
    """Record every event the provider emits."""
    return record_events(provider)


@pytest.fixture
def context():
    """Create a test evaluation context."""
    return EvaluationContext(targeting_key="user-123", attributes={"plan": "pro"})
