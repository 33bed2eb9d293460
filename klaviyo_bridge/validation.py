from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional

from jsonschema import Draft7Validator
from jsonschema.exceptions import ValidationError, best_match

from .errors import InvalidArguments
from .methods import Method

logger = logging.getLogger(__name__)

_SCALARS = (str, int, float, bool)

_validators: Dict[str, Draft7Validator] = {}


def _validator_for(method: Method) -> Draft7Validator:
    validator = _validators.get(method.name)
    if validator is None:
        validator = Draft7Validator(method.input_schema)
        _validators[method.name] = validator
    return validator


def _error_field(error: ValidationError) -> Optional[str]:
    if error.validator == "required" and isinstance(error.instance, Mapping):
        for key in error.validator_value:
            if key not in error.instance:
                return str(key)
    if error.path:
        return str(error.path[0])
    return None


def decode_arguments(method: Method, arguments: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Validate raw channel arguments against the method schema.

    Returns a plain dict copy; raises InvalidArguments naming the first
    offending field.
    """
    instance: Any = dict(arguments) if isinstance(arguments, Mapping) else arguments
    error = best_match(_validator_for(method).iter_errors(instance))
    if error is not None:
        field_name = _error_field(error)
        raise InvalidArguments(
            method.message_for(field_name),
            field=field_name,
            reason=error.message,
        )
    return instance if isinstance(instance, dict) else {}


def _is_serializable(value: Any) -> bool:
    if value is None or isinstance(value, _SCALARS):
        return True
    if isinstance(value, (list, tuple)):
        return all(_is_serializable(item) for item in value)
    if isinstance(value, Mapping):
        return all(isinstance(k, str) and _is_serializable(v) for k, v in value.items())
    return False


def serializable_properties(values: Mapping[Any, Any]) -> Dict[str, Any]:
    """Keep JSON-like entries only; anything else is dropped, not rejected."""
    converted: Dict[str, Any] = {}
    for key, value in values.items():
        if not isinstance(key, str) or not _is_serializable(value):
            logger.debug("dropping non-serializable property %r", key)
            continue
        converted[key] = value
    return converted


def coerce_coordinate(value: Any, field_name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidArguments(f"{field_name} must be a number or numeric String", field=field_name)
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(str(value).strip())
    except ValueError:
        raise InvalidArguments(
            f"{field_name} must be a number or numeric String",
            field=field_name,
            reason=f"could not parse {value!r}",
        ) from None
