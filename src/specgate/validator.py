"""Validate one HTTP request against an OpenAPI document.

:class:`OpenAPIValidator` is bound to a single request.  It locates the
operation the request targets (see :mod:`specgate.matcher`) and offers two
checks:

* :meth:`OpenAPIValidator.validate_body` -- enforce ``application/json`` and
  validate the decoded body against the operation's request-body schema,
  returning a lazy iterator of violations.
* :meth:`OpenAPIValidator.cast_parameters` /
  :meth:`OpenAPIValidator.apply_parameters` -- cast query parameters to
  their declared types and validate ``$ref``-typed path parameters, then
  write the results into the request's parameter store.

The OpenAPI document is loaded on first use and cached for the lifetime of
the validator.  Changing :attr:`OpenAPIValidator.spec_location` or calling
:meth:`OpenAPIValidator.invalidate` drops the cached copy.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Callable, Iterator, Optional

from pydantic import ValidationError

from specgate.casting import cast_query_value
from specgate.config import resolve_config
from specgate.exceptions import (
    BodyParseError,
    ContentTypeError,
    OperationNotFoundError,
    PathParameterError,
    ReferenceNotFoundError,
    SpecParseError,
)
from specgate.matcher import operation_locator
from specgate.models import (
    HTTPMethod,
    ParameterLocation,
    ParameterSpec,
    RequestLike,
    SchemaViolation,
    ValidatorConfig,
)
from specgate.schema import RefResolver, SpecDocument, load_document

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"
CONTENT_TYPE_MESSAGE = '"Content-Type" request header must be set to "application/json".'

_HTTP_METHODS = frozenset(m.value for m in HTTPMethod)

# Marks a parameter that produced no write.
_SKIP = object()


class OpenAPIValidator:
    """Validates a request against the operation it targets.

    Args:
        request: The request to validate (see :class:`~specgate.models.RequestLike`).
        spec_location: File path or URL of the OpenAPI document.  Overrides
            the location from *config*.
        ref_resolver: Optional hook supplying documents for external
            ``$ref`` URIs.
        config: Resolved settings.  When omitted,
            :func:`~specgate.config.resolve_config` is consulted.
        document: A pre-loaded document to use instead of loading one.
            It is only read, so one instance may back many validators.

    Example::

        validator = OpenAPIValidator(request, "openapi.yml")
        validator.apply_parameters()
        errors = list(validator.validate_body() or [])
    """

    def __init__(
        self,
        request: RequestLike,
        spec_location: Optional[str] = None,
        *,
        ref_resolver: Optional[RefResolver] = None,
        config: Optional[ValidatorConfig] = None,
        document: Optional[SpecDocument] = None,
    ) -> None:
        if config is None:
            config = resolve_config(spec_location)
        elif spec_location is not None:
            config = config.model_copy(update={"spec_location": spec_location})

        self._request = request
        self._config = config
        self._spec_location = config.spec_location
        self._ref_resolver = ref_resolver
        self._document = document
        self._handlers: dict[ParameterLocation, Callable[[ParameterSpec], Any]] = {
            ParameterLocation.QUERY: self._cast_query_parameter,
            ParameterLocation.PATH: self._cast_path_parameter,
        }

    @property
    def request(self) -> RequestLike:
        """The request this validator is bound to."""
        return self._request

    @property
    def spec_location(self) -> str:
        """Where the OpenAPI document is loaded from."""
        return self._spec_location

    @spec_location.setter
    def spec_location(self, value: str) -> None:
        if value != self._spec_location:
            self._spec_location = value
            self.invalidate()

    @property
    def document(self) -> SpecDocument:
        """The OpenAPI document, loaded on first access.

        Raises:
            SpecNotFoundError: If the configured file does not exist.
            SpecParseError: If the document cannot be parsed.
        """
        if self._document is None:
            self._document = load_document(self._spec_location, ref_resolver=self._ref_resolver)
        return self._document

    def invalidate(self) -> None:
        """Drop the cached document so the next access reloads it."""
        if self._document is not None:
            logger.debug("Dropping cached OpenAPI document for %s", self._spec_location)
        self._document = None

    @property
    def operation_locator(self) -> str:
        """Pointer of the targeted operation, e.g. ``paths/~1users~1{id}/get``."""
        method = self._request.method.lower()
        paths = self.document.raw.get("paths")
        path_keys = None
        if isinstance(paths, dict):
            path_keys = [k for k, item in paths.items() if isinstance(item, dict) and method in item]
        return operation_locator(self._request, self._config.routing_keys, path_keys)

    def operation(self) -> dict[str, Any]:
        """Return the operation object the request targets.

        Raises:
            OperationNotFoundError: If the document declares no operation for
                the request's method and path.
        """
        method = self._request.method.lower()
        locator = self.operation_locator
        if method not in _HTTP_METHODS:
            raise OperationNotFoundError(self._not_found_message())
        try:
            node = self.document.ref(locator)
        except ReferenceNotFoundError as exc:
            raise OperationNotFoundError(self._not_found_message()) from exc
        if not isinstance(node.value, dict):
            raise OperationNotFoundError(self._not_found_message())
        return node.value

    def parameter_specs(self) -> list[ParameterSpec]:
        """Declared parameters of the operation, path-level ones merged in.

        Operation-level parameters override path-level ones with the same
        ``name`` and ``in``.  Parameters in unsupported locations are kept;
        the caller decides what to do with them.

        Raises:
            OperationNotFoundError: If the operation does not exist.
            SpecParseError: If a parameter object is malformed.
        """
        operation = self.operation()
        path_item = self.document.ref(self.operation_locator.rsplit("/", 1)[0]).value

        path_params = self._resolve_parameters(path_item.get("parameters"))
        op_params = self._resolve_parameters(operation.get("parameters"))
        merged = _merge_parameters(path_params, op_params)

        specs: list[ParameterSpec] = []
        for raw in merged:
            try:
                location = ParameterLocation(raw.get("in"))
            except ValueError:
                logger.debug("Skipping parameter %r in unknown location %r", raw.get("name"), raw.get("in"))
                continue
            try:
                specs.append(ParameterSpec.model_validate({**raw, "in": location}))
            except ValidationError as exc:
                raise SpecParseError(f"Invalid parameter in {self.operation_locator}: {exc}") from exc
        return specs

    # ------------------------------------------------------------------ #
    # Body
    # ------------------------------------------------------------------ #

    def validate_body(self) -> Optional[Iterator[SchemaViolation]]:
        """Validate the request body against the operation's JSON schema.

        Returns:
            ``None`` for methods that carry no body (GET, DELETE); an empty
            iterator when the operation declares no ``requestBody``;
            otherwise a lazy iterator of violations, empty when the body
            conforms.

        Raises:
            OperationNotFoundError: If no operation matches the request.
            ContentTypeError: If the media type is not ``application/json``.
            BodyParseError: If the body is empty or not valid JSON.
            ReferenceNotFoundError: If the request body declares no
                ``application/json`` schema.
        """
        bodyless = {m.lower() for m in self._config.bodyless_methods}
        if self._request.method.lower() in bodyless:
            return None

        operation = self.operation()
        if "requestBody" not in operation:
            logger.debug("%s declares no requestBody; skipping body validation", self.operation_locator)
            return iter(())

        if self._request.content_type != JSON_CONTENT_TYPE:
            raise ContentTypeError(CONTENT_TYPE_MESSAGE)

        instance = self._read_json_body()
        schema = self.document.ref(
            f"{self.operation_locator}/requestBody/content/application~1json/schema"
        )
        return schema.validate(instance)

    def _read_json_body(self) -> Any:
        raw = self._request.body.read()
        try:
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8")
            return json.loads(raw)
        except UnicodeDecodeError as exc:
            raise BodyParseError(f"Request body is not valid UTF-8: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise BodyParseError(f"Request body is not valid JSON: {exc}") from exc

    # ------------------------------------------------------------------ #
    # Parameters
    # ------------------------------------------------------------------ #

    def cast_parameters(self) -> dict[str, Any]:
        """Compute the parameter writes for this request without applying them.

        Query parameters are cast to their declared type; path parameters
        with a ``$ref`` schema are validated.  Parameters the request does
        not carry produce no entry.

        Returns:
            A mapping of parameter name to the value to store.

        Raises:
            OperationNotFoundError: If no operation matches the request.
            PathParameterError: If a path parameter violates its schema.
        """
        updates: dict[str, Any] = {}
        for spec in self.parameter_specs():
            handler = self._handlers.get(spec.location)
            if handler is None:
                logger.debug("Ignoring %s parameter %s", spec.location.value, spec.name)
                continue
            value = handler(spec)
            if value is not _SKIP:
                updates[spec.name] = value
        return updates

    def apply_parameters(self) -> dict[str, Any]:
        """Cast and validate parameters, then write them into ``request.params``.

        Returns:
            The writes that were applied (see :meth:`cast_parameters`).
        """
        updates = self.cast_parameters()
        for name, value in updates.items():
            self._request.params[name] = value
        return updates

    def _cast_query_parameter(self, spec: ParameterSpec) -> Any:
        value = self._request.query_parameters.get(spec.name)
        if value is None:
            return _SKIP
        current = self._request.params.get(spec.name)
        if current is None or current is False:
            return _SKIP
        cast = cast_query_value(value, spec.schema_type)
        logger.debug("Query parameter %s: %r -> %r", spec.name, value, cast)
        return cast

    def _cast_path_parameter(self, spec: ParameterSpec) -> Any:
        value = self._request.path_parameters.get(spec.name)
        ref = spec.schema_ref
        if ref is not None:
            instance = None if value is None else str(value)
            violations = list(self.document.validate_reference(ref, instance))
            if violations:
                raise PathParameterError(
                    ", ".join(v["error"] for v in violations),
                    violations=violations,
                )
        return value

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #

    def _resolve_parameters(self, params: Any) -> list[dict[str, Any]]:
        """Resolve ``$ref`` parameter entries into parameter objects."""
        resolved: list[dict[str, Any]] = []
        for param in self.document.resolve(params) or []:
            param = self.document.resolve(param)
            if isinstance(param, dict):
                resolved.append(param)
        return resolved

    def _not_found_message(self) -> str:
        return (
            f"No operation is defined for {self._request.method.upper()} "
            f"{self._request.path}"
        )


def _merge_parameters(
    path_params: list[dict[str, Any]],
    op_params: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Merge path-level and operation-level parameters.

    Operation-level parameters override path-level parameters with the same
    name and location (``in`` field), per the OpenAPI specification.
    Declared order is kept: surviving path-level entries first.
    """
    op_keys = {(p.get("name", ""), p.get("in", "")) for p in op_params}
    merged = [p for p in path_params if (p.get("name", ""), p.get("in", "")) not in op_keys]
    merged.extend(op_params)
    return merged
