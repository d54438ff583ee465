"""Before-handler integration for web frameworks.

:func:`validate_request` is the lifecycle call a framework runs before
dispatching to a handler: it casts and validates parameters, then validates
the body, and raises one :class:`~specgate.exceptions.RequestValidationError`
summarising every body violation.

:class:`OpenAPIValidationMixin` packages the same call for class-based
handlers::

    class UsersHandler(OpenAPIValidationMixin, BaseHandler):
        openapi_spec_location = "openapi.yml"

        def dispatch(self):
            self.validate_from_openapi()
            ...
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from specgate.exceptions import RequestValidationError
from specgate.models import RequestLike
from specgate.validator import OpenAPIValidator

BODY_ERROR_SEPARATOR = "; "


def validate_request(
    request: RequestLike,
    spec_location: Optional[str] = None,
    *,
    validator: Optional[OpenAPIValidator] = None,
    **options: Any,
) -> dict[str, Any]:
    """Cast parameters, then validate the body of *request*.

    Args:
        request: The incoming request.
        spec_location: OpenAPI document location, when no *validator* is given.
        validator: A validator already bound to *request*.
        **options: Extra keyword arguments for :class:`OpenAPIValidator`.

    Returns:
        The parameter writes applied to ``request.params``.

    Raises:
        RequestValidationError: If the body violates its schema (message is
            every violation's ``error`` joined with ``"; "``), or a subclass
            for content-type, path-parameter and unknown-operation failures.
        BodyParseError: If the body is not valid JSON.
    """
    if validator is None:
        validator = OpenAPIValidator(request, spec_location, **options)

    updates = validator.apply_parameters()

    violations = list(validator.validate_body() or ())
    if violations:
        raise RequestValidationError(
            BODY_ERROR_SEPARATOR.join(v["error"] for v in violations),
            violations=violations,
        )
    return updates


class OpenAPIValidationMixin:
    """Adds :meth:`validate_from_openapi` to a class-based request handler.

    The host class must expose the current request as ``self.request``.
    """

    openapi_spec_location: Optional[str] = None

    request: RequestLike

    def validate_from_openapi(self) -> dict[str, Any]:
        """Run :func:`validate_request` for ``self.request``."""
        return validate_request(self.request, validator=self.openapi_validator)

    @property
    def openapi_validator(self) -> OpenAPIValidator:
        """The validator for ``self.request``, created on first access."""
        validator: Optional[OpenAPIValidator] = getattr(self, "_openapi_validator", None)
        if validator is None or validator.request is not self.request:
            validator = OpenAPIValidator(
                self.request,
                self.openapi_spec_location,
                ref_resolver=self.resolve_openapi_ref,
            )
            self._openapi_validator = validator
        return validator

    def resolve_openapi_ref(self, uri: str) -> Optional[Mapping[str, Any]]:
        """Return the document behind an external ``$ref`` URI.

        Override to serve schema components that live outside the spec
        file. The default knows no external documents.
        """
        return None
