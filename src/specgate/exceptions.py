"""Exception hierarchy for specgate.

All exceptions inherit from :class:`SpecgateError`, which carries an
``exit_code`` (see :mod:`specgate.exit_codes`) for the command line and a
``status_code`` that framework adapters can use when rendering a response.
Nothing in the validation core catches these; they propagate to the caller
that owns the request.

Subclass hierarchy::

    SpecgateError
    +-- RequestValidationError       (exit 1, HTTP 400)
    |   +-- ContentTypeError         (exit 1, HTTP 415)
    |   +-- PathParameterError       (exit 1, HTTP 400)
    |   +-- OperationNotFoundError   (exit 1, HTTP 404)
    +-- BodyParseError               (exit 1, HTTP 400, also ValueError)
    +-- SpecNotFoundError            (exit 7, also FileNotFoundError)
    +-- SpecParseError               (exit 7)
    +-- ReferenceNotFoundError       (exit 7, also LookupError)
    +-- SchemaResolutionError        (exit 7)
    +-- ConfigError                  (exit 2)
"""

from __future__ import annotations

from typing import Any, Optional

from specgate.exit_codes import (
    EXIT_INVALID_USAGE,
    EXIT_SPEC_ERROR,
    EXIT_VALIDATION_FAILURE,
)


class SpecgateError(Exception):
    """Base exception for all specgate errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_VALIDATION_FAILURE
    status_code: int = 500

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class RequestValidationError(SpecgateError):
    """Raised when a request violates the OpenAPI document.

    When raised by the before-handler hook after body validation, the
    individual :class:`~specgate.models.SchemaViolation` dicts are kept on
    :attr:`violations`.
    """

    status_code = 400

    def __init__(
        self,
        message: str,
        violations: Optional[list[dict[str, Any]]] = None,
        exit_code: int | None = None,
    ):
        super().__init__(message, exit_code=exit_code)
        self.violations = list(violations or [])


class ContentTypeError(RequestValidationError):
    """Raised when a request with a body is not sent as ``application/json``."""

    status_code = 415


class PathParameterError(RequestValidationError):
    """Raised when a path parameter does not satisfy its referenced schema."""


class OperationNotFoundError(RequestValidationError):
    """Raised when no operation exists for the request's method and path."""

    status_code = 404


class BodyParseError(SpecgateError, ValueError):
    """Raised when the request body is empty or not valid JSON."""

    status_code = 400


class SpecNotFoundError(SpecgateError, FileNotFoundError):
    """Raised when the configured OpenAPI file does not exist."""

    exit_code = EXIT_SPEC_ERROR


class SpecParseError(SpecgateError):
    """Raised when the OpenAPI document cannot be fetched or parsed."""

    exit_code = EXIT_SPEC_ERROR


class ReferenceNotFoundError(SpecgateError, LookupError):
    """Raised when a JSON Pointer does not address a node in the document."""

    exit_code = EXIT_SPEC_ERROR


class SchemaResolutionError(SpecgateError):
    """Raised when a ``$ref`` nested inside a schema cannot be resolved."""

    exit_code = EXIT_SPEC_ERROR


class ConfigError(SpecgateError):
    """Raised for configuration problems (invalid project file, bad values)."""

    exit_code = EXIT_INVALID_USAGE
