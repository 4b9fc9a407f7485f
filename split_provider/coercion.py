"""
String treatment coercion.

Treatments are always strings; callers ask for a typed value. Each FlagType
has exactly one coercion function. Parsing is strict: no whitespace
trimming, no locale handling.
"""

import json
import logging
import re
from enum import Enum
from typing import Any, Callable, Dict

from openfeature.exception import ParseError, TypeMismatchError

logger = logging.getLogger("split_provider.coercion")

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

_INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
_FLOAT_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")

_TRUE_VALUES = ("true", "on")
_FALSE_VALUES = ("false", "off")


class FlagType(str, Enum):
    """Value kinds a caller can request."""

    BOOLEAN = "BOOLEAN"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    STRING = "STRING"
    OBJECT = "OBJECT"  # Opaque value, the raw treatment


def coerce_boolean(treatment: str) -> bool:
    lowered = treatment.lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise TypeMismatchError(f"Treatment {treatment!r} is not a boolean")


def coerce_integer(treatment: str) -> int:
    # int() would accept surrounding whitespace and underscores
    if not _INTEGER_PATTERN.fullmatch(treatment):
        raise TypeMismatchError(f"Treatment {treatment!r} is not an integer")
    value = int(treatment)
    if not INT64_MIN <= value <= INT64_MAX:
        raise TypeMismatchError(f"Treatment {treatment!r} is out of 64-bit range")
    return value


def coerce_float(treatment: str) -> float:
    if not _FLOAT_PATTERN.fullmatch(treatment):
        raise TypeMismatchError(f"Treatment {treatment!r} is not a number")
    return float(treatment)


def coerce_string(treatment: str) -> str:
    return treatment


def coerce_object(treatment: str) -> Any:
    return treatment


COERCERS: Dict[FlagType, Callable[[str], Any]] = {
    FlagType.BOOLEAN: coerce_boolean,
    FlagType.INTEGER: coerce_integer,
    FlagType.FLOAT: coerce_float,
    FlagType.STRING: coerce_string,
    FlagType.OBJECT: coerce_object,
}


def coerce(treatment: str, flag_type: FlagType) -> Any:
    """
    Coerce a treatment into the requested type.

    Args:
        treatment: Raw treatment string
        flag_type: Requested value kind

    Returns:
        The typed value

    Raises:
        TypeMismatchError: If the treatment does not fit the type
    """
    try:
        return COERCERS[flag_type](treatment)
    except TypeMismatchError as e:
        logger.debug(f"Coercion to {flag_type.value} failed: {e.error_message}")
        raise


def parse_json_treatment(treatment: str) -> Dict[str, Any]:
    """
    Parse a treatment holding a JSON object.

    Raises:
        ParseError: If the treatment is not valid JSON or not an object
    """
    try:
        value = json.loads(treatment)
    except ValueError:
        raise ParseError("Failed to parse JSON treatment") from None

    if not isinstance(value, dict):
        raise ParseError("Treatment must be a JSON object")

    return value
