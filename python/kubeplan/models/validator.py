"""
kubeplan/models/validator.py

Validates loosely-typed data (e.g. objects parsed from a manifest template)
against a pydantic-based type using TypeAdapter.
"""

from typing import Any, Type, TypeVar
from pydantic import ValidationError, TypeAdapter

from kubeplan.errors import ConfigurationError

T = TypeVar("T")


def validate_type(obj: Any, expected_type: Type[T]) -> T:
    """
    Validates that a given Python object conforms to the expected pydantic-based type.

    Args:
        obj (Any): The object to validate.
        expected_type (Type[T]): The type (pydantic or otherwise) to validate against.

    Returns:
        T: The validated object, cast to the expected type.

    Raises:
        ConfigurationError: If validation fails.
    """
    try:
        adapter = TypeAdapter(expected_type)
        return adapter.validate_python(obj)
    except ValidationError as e:
        raise ConfigurationError(
            f"Validation failed for type {getattr(expected_type, '__name__', expected_type)}: {e}"
        ) from e
