"""Exception hierarchy for the price guard.

Errors fall into three groups:
    - transport: a single endpoint failing (recovered by fallback) or every
      endpoint failing (surfaced to the caller)
    - parse: malformed numeric input or missing reference data
    - policy: a value violating a configured bound or deviation limit

Policy violations carry a JSON-RPC error code and a structured ``data``
payload so that the decision can be reconstructed by the caller.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class PriceGuardError(Exception):
    """Base exception for all price guard errors."""

    pass


class NotANumberError(PriceGuardError, ValueError):
    """Raised when a value cannot be parsed into a decimal number.

    :ivar value: The rejected input.
    """

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Not a number: {value!r}")


class ValueIsNaNError(PriceGuardError, ValueError):
    """Raised when a value passed to a validator is not a number.

    :ivar field: Name of the validated field.
    :ivar value: The rejected input.
    """

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f'Value of "{field}" is NaN: {value!r}')


class MissingReferenceValueError(PriceGuardError, LookupError):
    """Raised when no source provides a value for a field at a reference block.

    :ivar field: Name of the field without a value.
    :ivar block_number: Reference block the value was expected for.
    """

    def __init__(self, field: str, block_number: int):
        self.field = field
        self.block_number = block_number
        super().__init__(
            f'Reference value of "{field}" for block {block_number} was not provided'
        )


class ValidationErrorKind(IntEnum):
    """Kinds of policy violations. Values are the JSON-RPC error codes."""

    VALUE_TOO_HIGH = -40001
    VALUE_TOO_LOW = -40002
    MAX_DEVIATION_EXCEEDED = -40003


class PriceValidationError(PriceGuardError):
    """A value violated a configured safety rule.

    :cvar kind: Which rule was violated.
    :ivar field: Name of the validated field.
    :ivar message: Human readable description.
    :ivar data: Structured payload describing the decision.
    """

    kind: ValidationErrorKind

    def __init__(self, field: str, message: str, data: dict[str, Any]):
        self.field = field
        self.message = message
        self.data = {"field": field, **data}
        super().__init__(message)

    @property
    def code(self) -> int:
        """JSON-RPC error code of this violation."""
        return int(self.kind)

    def to_dict(self) -> dict[str, Any]:
        """Render as a JSON-RPC error object."""
        return {"code": self.code, "message": self.message, "data": self.data}


class ValueTooHighError(PriceValidationError):
    kind = ValidationErrorKind.VALUE_TOO_HIGH

    def __init__(self, field: str, max_value: Any, current_value: Any):
        super().__init__(
            field,
            f'Unsafe Price: value of "{field}" too high',
            {"maxValue": str(max_value), "currentValue": str(current_value)},
        )


class ValueTooLowError(PriceValidationError):
    kind = ValidationErrorKind.VALUE_TOO_LOW

    def __init__(self, field: str, min_value: Any, current_value: Any):
        super().__init__(
            field,
            f'Unsafe Price: value of "{field}" too low',
            {"minValue": str(min_value), "currentValue": str(current_value)},
        )


class MaxDeviationError(PriceValidationError):
    kind = ValidationErrorKind.MAX_DEVIATION_EXCEEDED

    def __init__(
        self,
        field: str,
        current_deviation: Any,
        max_deviation: Any,
        current_block: int,
        current_value: Any,
        reference_block: int,
        reference_value: Any,
    ):
        super().__init__(
            field,
            f'Unsafe Price: Max deviation of "{field}" exceeded',
            {
                "maxDeviation": str(max_deviation),
                "currentDeviation": str(current_deviation),
                "currentValue": {"block": current_block, "value": str(current_value)},
                "referenceValue": {
                    "block": reference_block,
                    "value": str(reference_value),
                },
            },
        )


class RpcError(PriceGuardError):
    """Base exception for JSON-RPC transport errors."""

    pass


class EndpointError(RpcError):
    """A single endpoint failed to produce a usable result.

    :ivar url: Endpoint URL.
    :ivar reason: Short description of the failure.
    :ivar status_code: HTTP status code, if a response was received.
    """

    def __init__(self, url: str, reason: str, status_code: int | None = None):
        self.url = url
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"RPC endpoint {url} failed: {reason}")


class NoEndpointsConfiguredError(RpcError):
    """Raised when a request is made with an empty endpoint list."""

    def __init__(self) -> None:
        super().__init__("No RPC endpoints configured")


class AllEndpointsFailedError(RpcError):
    """Raised when every endpoint failed for one request.

    :ivar endpoints: Endpoints attempted, in order.
    :ivar failures: Failure recorded for each endpoint.
    """

    def __init__(self, endpoints: list[str], failures: list[EndpointError]):
        self.endpoints = endpoints
        self.failures = failures
        super().__init__(f"All RPC endpoints failed: {', '.join(endpoints)}")
