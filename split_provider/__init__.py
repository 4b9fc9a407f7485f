"""
Split provider for OpenFeature.

Usage:
    from openfeature import api
    from openfeature.evaluation_context import EvaluationContext
    from split_provider import SplitProvider

    api.set_evaluation_context(EvaluationContext(targeting_key="user-123"))
    api.set_provider(SplitProvider("your-sdk-key"))

    if api.get_client().get_boolean_value("my-feature", False):
        # Feature is on
        pass
"""

from split_provider.coercion import FlagType, coerce, parse_json_treatment
from split_provider.config import ProviderConfig
from split_provider.evaluator import Evaluator, map_attributes
from split_provider.handshake import HandshakeState, ReadinessHandshake
from split_provider.provider import CONTEXT_CHANGED, SplitProvider, context_changed
from split_provider.results import CONTROL_TREATMENT, TreatmentResult
from split_provider.split_sdk import SplitClientAdapter, SplitFactoryAdapter, build_split_factory
from split_provider.vendor import FactoryBuilder, SdkEvent, VendorClient, VendorFactory

__version__ = "0.1.0"
__all__ = [
    # Provider
    "SplitProvider",
    "ProviderConfig",
    "CONTEXT_CHANGED",
    "context_changed",
    # Evaluation
    "Evaluator",
    "map_attributes",
    "FlagType",
    "coerce",
    "parse_json_treatment",
    "TreatmentResult",
    "CONTROL_TREATMENT",
    # Handshake
    "HandshakeState",
    "ReadinessHandshake",
    # Vendor
    "SdkEvent",
    "VendorClient",
    "VendorFactory",
    "FactoryBuilder",
    "SplitClientAdapter",
    "SplitFactoryAdapter",
    "build_split_factory",
]
