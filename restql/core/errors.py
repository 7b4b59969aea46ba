"""Exception hierarchy for restql.

Every error raised by the parsers, the validator and the engine derives
from RestQLError so callers can catch the whole family at once.
"""

from typing import Any


class RestQLError(Exception):
    """Base exception for all restql errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class NetworkError(RestQLError):
    """Raised when a REST call fails or returns a non-2xx status.

    A status_code of 0 means the request never got a response.
    """

    def __init__(self, message: str, status_code: int = 0, url: str | None = None):
        self.status_code = status_code
        self.url = url
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self.status_code == 0 or self.status_code >= 500


class ValidationError(RestQLError):
    """Raised for bad variables, malformed operations and failed coercion."""


class ParseError(ValidationError):
    """Raised when an operation string contains an unexpected token."""

    def __init__(self, message: str, position: int = -1):
        self.position = position
        super().__init__(message)


class UnexpectedEndOfInputError(ParseError):
    """Raised when an operation string ends while a token was still expected."""


class UnsupportedOperationError(ValidationError):
    """Raised for operation types or mutation prefixes restql cannot run."""


class MissingVariableError(ValidationError):
    """Raised when a required variable was not supplied."""

    def __init__(self, message: str, variable: str):
        self.variable = variable
        super().__init__(message)


class SchemaError(RestQLError):
    """Raised when the SDL is invalid or references unknown types/transforms.

    Parse failures carry a short excerpt of the SDL around the failing
    position in `context`.
    """

    def __init__(self, message: str, context: str | None = None, position: int | None = None):
        self.context = context
        self.position = position
        super().__init__(message)


class ConfigurationError(RestQLError):
    """Raised when a query does not match the configured schema or base URLs."""


class UnknownResourceError(ConfigurationError):
    """Raised when a query names a resource missing from the schema."""

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(f'Resource "{resource}" not found in schema.')


class MissingEndpointError(ConfigurationError):
    """Raised when a resource has no endpoint for the required HTTP method."""

    def __init__(self, resource: str, method: Any):
        self.resource = resource
        self.method = str(method)
        super().__init__(f'{self.method} endpoint not found for resource "{resource}".')


class BatchCancelledError(RestQLError):
    """Raised on queued operations whose batch key was cancelled."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Batch for key {key!r} was cancelled")
