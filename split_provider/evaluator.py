"""
Flag evaluation against a bound vendor client.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional

from openfeature.evaluation_context import EvaluationContext
from openfeature.exception import FlagNotFoundError, ProviderFatalError
from openfeature.flag_evaluation import FlagResolutionDetails, Reason

from split_provider.coercion import FlagType, coerce
from split_provider.results import TreatmentResult, config_metadata
from split_provider.vendor import VendorClient

logger = logging.getLogger("split_provider.evaluator")

_FLAT_TYPES = (str, bool, int, float)


def map_attributes(attributes: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Project context attributes onto the vendor's flat attribute model.

    Strings, booleans, integers and floats pass through. Structures (dicts,
    lists) and any other value are dropped, so the projection is lossy.

    Args:
        attributes: Context attributes, or None

    Returns:
        Vendor attributes, or None when there is no context
    """
    if attributes is None:
        return None

    result: Dict[str, Any] = {}
    for name, value in attributes.items():
        if isinstance(value, _FLAT_TYPES):
            result[name] = value
    return result


class Evaluator:
    """
    Translates typed flag requests into vendor treatments.

    Stateless per call; the only state is the bound client.
    """

    def __init__(self, client: Optional[VendorClient] = None):
        self._client = client

    @property
    def client(self) -> Optional[VendorClient]:
        return self._client

    def set_client(self, client: Optional[VendorClient]) -> None:
        self._client = client

    def evaluate(
        self,
        key: str,
        flag_type: FlagType,
        context: Optional[EvaluationContext] = None,
    ) -> FlagResolutionDetails[Any]:
        """
        Evaluate a flag and coerce its treatment into flag_type.

        Raises:
            ProviderFatalError: If no client is bound
            FlagNotFoundError: If the vendor served the control treatment
            TypeMismatchError: If coercion fails
        """
        result = self._get_treatment(key, context)
        value = coerce(result.treatment, flag_type)
        return FlagResolutionDetails(
            value=value,
            flag_metadata=config_metadata(result.config),
            variant=result.treatment,
            reason=Reason.TARGETING_MATCH,
        )

    def evaluate_object(
        self,
        key: str,
        context: Optional[EvaluationContext],
        parse: Callable[[str], Any],
    ) -> FlagResolutionDetails[Any]:
        """
        Evaluate a flag and hand its treatment to parse.

        Errors raised by parse propagate unchanged.
        """
        result = self._get_treatment(key, context)
        value = parse(result.treatment)
        return FlagResolutionDetails(
            value=value,
            flag_metadata=config_metadata(result.config),
            variant=result.treatment,
            reason=Reason.TARGETING_MATCH,
        )

    def _get_treatment(self, key: str, context: Optional[EvaluationContext]) -> TreatmentResult:
        if self._client is None:
            raise ProviderFatalError("Split client not found")

        attributes = map_attributes(context.attributes if context is not None else None)
        result = self._client.get_treatment_with_config(key, attributes)

        if result.is_control:
            logger.debug(f"Control treatment served for flag {key!r}")
            raise FlagNotFoundError(f"Flag {key!r} not found")

        return result
