"""
Errors raised by the data mocker.

Every failure is surfaced to the caller as one of the kinds below; the
mocker never hands back a value that breaks a declared constraint.
"""

from typing import Any, Dict, Optional


class OpenApiDataMockerError(Exception):
    """Base exception for all mocking errors."""

    def __init__(
            self,
            message: str,
            details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidArgument(OpenApiDataMockerError, ValueError):
    """
    Structurally wrong input.

    Examples:
    - Unknown data type or a format that belongs to another type
    - Schema without a `type`
    - Required property that is neither declared nor allowed as additional
    """


class InvalidRange(OpenApiDataMockerError, ValueError):
    """
    Contradictory numeric, length or size bounds.

    Examples:
    - maximum < minimum
    - minimum == maximum with both bounds exclusive
    - minProperties larger than the properties available
    """


class UnsatisfiableConstraint(OpenApiDataMockerError):
    """
    Bounds that are valid one by one but cannot be met together
    within the bounded search.

    Examples:
    - pattern that never yields a string inside [minLength, maxLength]
    - uniqueItems over a value space smaller than minItems
    """
