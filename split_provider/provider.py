"""
Split provider: lifecycle coordination and typed evaluation.
"""

import logging
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from openfeature.evaluation_context import EvaluationContext
from openfeature.event import ProviderEventDetails
from openfeature.exception import (
    ErrorCode,
    InvalidContextError,
    OpenFeatureError,
    ProviderFatalError,
    TargetingKeyMissingError,
)
from openfeature.flag_evaluation import FlagResolutionDetails
from openfeature.provider import AbstractProvider, Metadata

from split_provider.coercion import FlagType, parse_json_treatment
from split_provider.config import DEFAULT_PROVIDER_CONFIG, ProviderConfig
from split_provider.evaluator import Evaluator
from split_provider.handshake import HandshakeState, ReadinessHandshake
from split_provider.split_sdk import build_split_factory
from split_provider.vendor import VendorClient, VendorFactory

logger = logging.getLogger("split_provider")

CONTEXT_CHANGED = "context_changed"
"""Metadata flag marking a configuration-changed event caused by a new context."""


def context_changed(
    old_context: Optional[EvaluationContext], new_context: EvaluationContext
) -> bool:
    """True when there was no context, or the targeting key or any attribute differs."""
    return old_context is None or old_context != new_context


class SplitProvider(AbstractProvider):
    """
    OpenFeature provider backed by a Split SDK client.

    Not safe for concurrent initialization on one instance: the host must
    run one initialization at a time. Evaluation failures are raised, never
    replaced by default_value.

    Example:
        ```python
        from openfeature import api

        api.set_evaluation_context(EvaluationContext(targeting_key="user-123"))
        api.set_provider(SplitProvider("your-sdk-key"))

        if api.get_client().get_boolean_value("my-feature", False):
            # Feature is on
            pass
        ```
    """

    def __init__(self, api_key: str, config: Optional[ProviderConfig] = None):
        """
        Initialize the Split provider.

        Args:
            api_key: Split SDK key
            config: Provider configuration
        """
        super().__init__()
        self._api_key = api_key
        self._config = config or DEFAULT_PROVIDER_CONFIG
        self._factory: Optional[VendorFactory] = None
        self._client: Optional[VendorClient] = None
        self._context: Optional[EvaluationContext] = None
        self._started_keys: Set[str] = set()
        self._handshakes: Dict[str, ReadinessHandshake] = {}
        self._evaluator = Evaluator()

    def get_metadata(self) -> Metadata:
        return Metadata(name="Split")

    @property
    def context(self) -> Optional[EvaluationContext]:
        """Context of the last initialization."""
        return self._context

    def is_started(self, targeting_key: str) -> bool:
        """Check whether targeting_key completed its readiness handshake."""
        return targeting_key in self._started_keys

    def _report(self, error: OpenFeatureError) -> OpenFeatureError:
        """Emit an error event for error and hand it back for raising."""
        logger.error(f"Split provider initialization failed: {error.error_message}")
        self.emit_provider_error(
            ProviderEventDetails(message=error.error_message, error_code=error.error_code)
        )
        return error

    def initialize(self, evaluation_context: EvaluationContext) -> None:
        """
        Bring the vendor client for the targeting key to a ready state,
        blocking the calling thread until the vendor signals.

        This is the hook OpenFeature runs on set_provider(); the host
        announces readiness once it returns, so no ready event is emitted
        here. Use initialize_async() from a running event loop.

        Raises:
            ProviderFatalError: If the API key is empty or no vendor client could be obtained
            InvalidContextError: If evaluation_context is None
            TargetingKeyMissingError: If the targeting key is empty
        """
        targeting_key, client = self._prepare(evaluation_context)
        if targeting_key in self._started_keys:
            return

        handshake = self._new_handshake(targeting_key)
        self._finish(targeting_key, client, handshake.wait_blocking(client))

    async def initialize_async(self, evaluation_context: EvaluationContext) -> None:
        """
        Bring the vendor client for the targeting key to a ready state.

        Returns at once when the key already completed its handshake. A
        vendor timeout is reported as an error event and returns normally;
        the next call retries the handshake. Emits a ready event once the
        vendor is ready.

        Raises:
            Same as initialize()
        """
        targeting_key, client = self._prepare(evaluation_context)
        if targeting_key in self._started_keys:
            return

        handshake = self._new_handshake(targeting_key)
        state = await handshake.wait(client)
        if self._finish(targeting_key, client, state):
            self.emit_provider_ready(ProviderEventDetails())

    async def on_context_set(
        self,
        old_context: Optional[EvaluationContext],
        new_context: EvaluationContext,
    ) -> None:
        """
        Re-initialize when the targeting key or any attribute changed, then
        emit a configuration-changed event flagged with CONTEXT_CHANGED.

        Attribute changes only take effect through this path.
        """
        if not context_changed(old_context, new_context):
            return

        await self.initialize_async(new_context)
        self.emit_provider_configuration_changed(
            ProviderEventDetails(
                message="Evaluation context changed",
                metadata={CONTEXT_CHANGED: True},
            )
        )

    def _prepare(self, context: Optional[EvaluationContext]) -> Tuple[str, VendorClient]:
        """Validate context, fetch the client and store the context."""
        if not self._api_key:
            raise self._report(ProviderFatalError("API key is missing for Split provider"))

        if context is None:
            raise self._report(
                InvalidContextError("Initialization context is missing for Split provider")
            )

        targeting_key = context.targeting_key
        if not targeting_key:
            raise self._report(
                TargetingKeyMissingError("Targeting key is missing for Split provider")
            )

        client = self._get_client(targeting_key)
        self._context = context

        if targeting_key in self._started_keys:
            self._bind(client)
        return targeting_key, client

    def _get_client(self, targeting_key: str) -> VendorClient:
        if self._factory is None:
            builder = self._config.factory_builder or build_split_factory
            try:
                self._factory = builder(self._api_key, targeting_key, self._config)
            except Exception as e:
                raise self._report(
                    ProviderFatalError(f"Split factory could not be built: {e}")
                ) from e

        try:
            client = self._factory.client(targeting_key)
        except Exception as e:
            raise self._report(
                ProviderFatalError(f"Split client could not be created: {e}")
            ) from e

        if client is None:
            raise self._report(ProviderFatalError("Split provider failed to initialize correctly"))
        return client

    def _bind(self, client: Optional[VendorClient]) -> None:
        self._client = client
        self._evaluator.set_client(client)

    def _new_handshake(self, targeting_key: str) -> ReadinessHandshake:
        previous = self._handshakes.get(targeting_key)
        if previous is not None:
            if previous.resolved:
                previous.supersede()
            else:
                logger.warning(f"Overlapping initialization for {targeting_key!r}")

        handshake = ReadinessHandshake(targeting_key)
        handshake.on("stale", lambda: self.emit_provider_stale(ProviderEventDetails()))
        handshake.on("updated", lambda: self._on_updated(targeting_key))
        handshake.on(
            "timed_out",
            lambda: self.emit_provider_error(
                ProviderEventDetails(
                    message="Split provider timed out.",
                    error_code=ErrorCode.GENERAL,
                )
            ),
        )
        self._handshakes[targeting_key] = handshake
        return handshake

    def _on_updated(self, targeting_key: str) -> None:
        # Clients of one factory share updates; report them once, for the active key
        if self._context is None or self._context.targeting_key != targeting_key:
            logger.debug(f"Ignoring update for inactive key {targeting_key!r}")
            return
        self.emit_provider_configuration_changed(ProviderEventDetails())

    def _finish(self, targeting_key: str, client: VendorClient, state: HandshakeState) -> bool:
        """Bind client after a handshake; True when the vendor is ready."""
        self._bind(client)

        if state != HandshakeState.READY:
            logger.warning(f"Split client timed out for {targeting_key!r}")
            return False

        self._started_keys.add(targeting_key)
        logger.info(f"Split client ready for {targeting_key!r}")
        return True

    def shutdown(self) -> None:
        """Destroy the vendor factory and reset provider state."""
        for handshake in self._handshakes.values():
            handshake.supersede()

        destroy = getattr(self._factory, "destroy", None)
        if callable(destroy):
            destroy()

        self._factory = None
        self._bind(None)
        self._context = None
        self._started_keys.clear()
        self._handshakes.clear()

    def _evaluation_context(
        self, context: Optional[EvaluationContext]
    ) -> Optional[EvaluationContext]:
        if self._context is None:
            return context
        return self._context.merge(context) if context is not None else self._context

    def resolve_boolean_details(
        self,
        flag_key: str,
        default_value: bool,
        evaluation_context: Optional[EvaluationContext] = None,
    ) -> FlagResolutionDetails[bool]:
        return self._evaluator.evaluate(
            flag_key, FlagType.BOOLEAN, self._evaluation_context(evaluation_context)
        )

    def resolve_string_details(
        self,
        flag_key: str,
        default_value: str,
        evaluation_context: Optional[EvaluationContext] = None,
    ) -> FlagResolutionDetails[str]:
        return self._evaluator.evaluate(
            flag_key, FlagType.STRING, self._evaluation_context(evaluation_context)
        )

    def resolve_integer_details(
        self,
        flag_key: str,
        default_value: int,
        evaluation_context: Optional[EvaluationContext] = None,
    ) -> FlagResolutionDetails[int]:
        return self._evaluator.evaluate(
            flag_key, FlagType.INTEGER, self._evaluation_context(evaluation_context)
        )

    def resolve_float_details(
        self,
        flag_key: str,
        default_value: float,
        evaluation_context: Optional[EvaluationContext] = None,
    ) -> FlagResolutionDetails[float]:
        return self._evaluator.evaluate(
            flag_key, FlagType.FLOAT, self._evaluation_context(evaluation_context)
        )

    def resolve_value_details(
        self,
        flag_key: str,
        default_value: Any,
        evaluation_context: Optional[EvaluationContext] = None,
    ) -> FlagResolutionDetails[Any]:
        """Evaluate a flag as an opaque value: the raw treatment."""
        return self._evaluator.evaluate(
            flag_key, FlagType.OBJECT, self._evaluation_context(evaluation_context)
        )

    def resolve_object_details(
        self,
        flag_key: str,
        default_value: Union[Dict[str, Any], List[Any]],
        evaluation_context: Optional[EvaluationContext] = None,
    ) -> FlagResolutionDetails[Union[Dict[str, Any], List[Any]]]:
        return self._evaluator.evaluate_object(
            flag_key, self._evaluation_context(evaluation_context), parse_json_treatment
        )
