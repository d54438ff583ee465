"""OpenAPI document parser -- load documents and resolve JSON Pointers.

Typical usage::

    from specgate.parser import load_spec, resolve_pointer, validate_openapi_version

    raw = load_spec("openapi.yml")
    version = validate_openapi_version(raw)
    operation = resolve_pointer(raw, "#/paths/~1users/post")

Sub-modules:

* :mod:`~specgate.parser.loader` -- reads a file or URL, decodes JSON or YAML,
  and checks the OpenAPI version.
* :mod:`~specgate.parser.resolver` -- RFC 6901 escaping and pointer
  resolution with internal ``$ref`` following.
"""

from specgate.parser.loader import load_spec, parse_document, validate_openapi_version
from specgate.parser.resolver import escape_segment, resolve_pointer, unescape_segment

__all__ = [
    "load_spec",
    "parse_document",
    "validate_openapi_version",
    "escape_segment",
    "unescape_segment",
    "resolve_pointer",
]
