"""specgate -- validate HTTP requests against OpenAPI 3.0 documents.

Given an incoming request, specgate finds the operation it targets in an
OpenAPI document, validates the JSON body and ``$ref``-typed path parameters
against their schemas, and casts boolean query parameters from strings.

Typical use from a framework's before-handler::

    from specgate import validate_request

    validate_request(request, "openapi.yml")

Modules:
    validator: :class:`OpenAPIValidator`, the per-request validation engine.
    controller: :func:`validate_request` and :class:`OpenAPIValidationMixin`.
    matcher: Concrete request path to templated OpenAPI path key.
    schema: :class:`SpecDocument`, JSON Schema validation of document nodes.
    casting: Query-string type coercion.
    parser: Document loading and JSON Pointer resolution.
    config: Configuration precedence resolution.
    exceptions: Exception hierarchy with exit and HTTP status codes.
    app: The ``specgate`` command line.
"""

__version__ = "0.1.0"

from specgate.controller import OpenAPIValidationMixin, validate_request  # noqa: E402
from specgate.exceptions import RequestValidationError  # noqa: E402
from specgate.models import RequestData  # noqa: E402
from specgate.schema import SpecDocument, load_document  # noqa: E402
from specgate.validator import OpenAPIValidator  # noqa: E402

__all__ = [
    "OpenAPIValidationMixin",
    "OpenAPIValidator",
    "RequestData",
    "RequestValidationError",
    "SpecDocument",
    "load_document",
    "validate_request",
    "__version__",
]
