"""JSON Schema validation against fragments of an OpenAPI document.

:class:`SpecDocument` wraps a parsed OpenAPI dictionary and exposes it the way
the validators need it:

* :meth:`SpecDocument.ref` resolves a JSON Pointer to a :class:`SchemaNode`
  (raising :class:`~specgate.exceptions.ReferenceNotFoundError` when the
  pointer is absent).
* :meth:`SchemaNode.validate` returns a lazy iterator of
  :class:`~specgate.models.SchemaViolation` dicts.  Non-conforming instances
  never raise; only resolver failures do.

Validation is delegated to :mod:`jsonschema`.  The whole document is
registered in a :class:`referencing.Registry` under :data:`DOCUMENT_URI` and
each node is validated through a ``{"$ref": "<uri>#<pointer>"}`` wrapper, so
``#/components/schemas/...`` references inside the node resolve against the
document rather than against the node itself.

The JSON Schema dialect follows the ``openapi`` version: Draft 4 (plus the
``nullable`` keyword) for 3.0.x, Draft 2020-12 for 3.1.x.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping, Optional
from urllib.parse import quote

from jsonschema import Draft4Validator, Draft202012Validator, validators
from jsonschema.exceptions import ValidationError
from referencing import Registry, Resource
from referencing.exceptions import NoSuchResource, Unresolvable
from referencing.jsonschema import DRAFT4, DRAFT202012

from specgate.exceptions import SchemaResolutionError
from specgate.models import HTTPMethod, SchemaViolation
from specgate.parser.loader import load_spec, validate_openapi_version
from specgate.parser.resolver import locate, resolve_local_ref

logger = logging.getLogger(__name__)

DOCUMENT_URI = "urn:specgate:openapi"
"""Base URI under which the loaded document is registered."""

RefResolver = Callable[[str], Optional[Mapping[str, Any]]]
"""Hook returning the document behind an external ``$ref`` URI."""


def _nullable(type_validator: Callable[..., Any]) -> Callable[..., Any]:
    """Wrap the ``type`` keyword so ``nullable: true`` admits ``None``."""

    def _type(validator: Any, types: Any, instance: Any, schema: dict[str, Any]) -> Any:
        if instance is None and schema.get("nullable") is True:
            return
        yield from type_validator(validator, types, instance, schema)

    return _type


OpenAPI30Validator = validators.extend(
    Draft4Validator,
    {"type": _nullable(Draft4Validator.VALIDATORS["type"])},
)


@dataclass(frozen=True)
class SchemaNode:
    """A node of a :class:`SpecDocument`, addressed by its canonical pointer."""

    document: SpecDocument
    pointer: str
    value: Any

    def validate(self, instance: Any) -> Iterator[SchemaViolation]:
        """Validate *instance* against this node. See :meth:`SpecDocument.validate`."""
        return self.document.validate(self, instance)


class SpecDocument:
    """An immutable, validation-ready OpenAPI document.

    The wrapped dictionary is never modified, so one instance can be shared
    read-only between validators once it has been built.

    Args:
        raw: The parsed OpenAPI dictionary.
        ref_resolver: Optional callable mapping an external ``$ref`` URI
            (without fragment) to the document it names.  Used for schema
            components that live outside the spec file.
        uri: Base URI the document is registered under.

    Raises:
        SpecParseError: If *raw* is not an OpenAPI 3.x document.
    """

    def __init__(
        self,
        raw: dict[str, Any],
        ref_resolver: Optional[RefResolver] = None,
        uri: str = DOCUMENT_URI,
    ) -> None:
        self._raw = raw
        self._uri = uri
        self.openapi_version = validate_openapi_version(raw)

        if self.openapi_version.startswith("3.0."):
            self._validator_cls = OpenAPI30Validator
            self._dialect = DRAFT4
        else:
            self._validator_cls = Draft202012Validator
            self._dialect = DRAFT202012

        if ref_resolver is not None:
            registry: Registry = Registry(retrieve=self._retriever(ref_resolver))
        else:
            registry = Registry()
        self._registry = registry.with_resource(
            uri, self._dialect.create_resource(raw)
        )

    @property
    def raw(self) -> dict[str, Any]:
        """The underlying document. Treat as read-only."""
        return self._raw

    def ref(self, pointer: str) -> SchemaNode:
        """Resolve *pointer* to a :class:`SchemaNode`.

        Raises:
            ReferenceNotFoundError: If the pointer does not exist.
        """
        value, canonical = locate(self._raw, pointer)
        return SchemaNode(document=self, pointer=canonical, value=value)

    def resolve(self, node: Any) -> Any:
        """Return the target of *node* when it is an internal ``$ref`` object."""
        return resolve_local_ref(self._raw, node)

    def validate(self, node: SchemaNode | str, instance: Any) -> Iterator[SchemaViolation]:
        """Validate *instance* against *node*, lazily.

        Args:
            node: A :class:`SchemaNode` or a pointer into this document.
            instance: The decoded value to check.

        Returns:
            An iterator of violations; empty when *instance* conforms.  A
            ``$ref`` that cannot be resolved raises
            :class:`~specgate.exceptions.SchemaResolutionError` while the
            iterator is consumed.
        """
        if isinstance(node, str):
            node = self.ref(node)
        return self._iter_violations(node.pointer, instance)

    def validate_reference(self, ref: str, instance: Any) -> Iterator[SchemaViolation]:
        """Validate *instance* against the schema a ``$ref`` string names.

        Internal references (``#/components/schemas/...``) are resolved
        eagerly, so a dangling one raises
        :class:`~specgate.exceptions.ReferenceNotFoundError` right away.
        External references are fetched through the ``ref_resolver`` hook
        while the iterator is consumed.
        """
        if ref.startswith("#"):
            return self.validate(ref, instance)
        return self._iter_errors({"$ref": ref}, ref, instance)

    def operations(self) -> Iterator[tuple[str, HTTPMethod, dict[str, Any]]]:
        """Yield ``(path, method, operation)`` for every declared operation."""
        paths = self._raw.get("paths") or {}
        for path, path_item in paths.items():
            path_item = self.resolve(path_item)
            if not isinstance(path_item, dict):
                continue
            for method in HTTPMethod:
                operation = path_item.get(method.value)
                if isinstance(operation, dict):
                    yield path, method, operation

    def _iter_violations(self, pointer: str, instance: Any) -> Iterator[SchemaViolation]:
        fragment = quote(pointer[1:], safe="/~")
        return self._iter_errors({"$ref": f"{self._uri}#{fragment}"}, pointer, instance)

    def _iter_errors(
        self, schema: dict[str, Any], pointer: str, instance: Any
    ) -> Iterator[SchemaViolation]:
        validator = self._validator_cls(
            schema,
            registry=self._registry,
            format_checker=self._validator_cls.FORMAT_CHECKER,
        )
        try:
            for error in validator.iter_errors(instance):
                yield _to_violation(error, pointer)
        except Unresolvable as exc:
            raise SchemaResolutionError(
                f"Cannot resolve $ref while validating against {pointer}: {exc}"
            ) from exc

    def _retriever(self, ref_resolver: RefResolver) -> Callable[[str], Resource]:
        dialect = self._dialect

        def retrieve(uri: str) -> Resource:
            contents = ref_resolver(uri)
            if contents is None:
                raise NoSuchResource(ref=uri)
            logger.debug("Retrieved external schema document %s", uri)
            return dialect.create_resource(contents)

        return retrieve


def load_document(
    location: str,
    ref_resolver: Optional[RefResolver] = None,
) -> SpecDocument:
    """Load *location* and wrap it in a :class:`SpecDocument`.

    Build the document once with this helper to share it between validator
    instances.

    Raises:
        SpecNotFoundError: If *location* is a missing file.
        SpecParseError: If the document cannot be fetched or parsed.
    """
    return SpecDocument(load_spec(location), ref_resolver=ref_resolver)


def _to_violation(error: ValidationError, pointer: str) -> SchemaViolation:
    """Shape a :mod:`jsonschema` error into a :class:`SchemaViolation`."""
    data_path = "".join(f"/{part}" for part in error.absolute_path)
    schema_path = "".join(f"/{part}" for part in error.relative_schema_path)
    return SchemaViolation(
        type=str(error.validator),
        error=error.message,
        data=error.instance,
        data_pointer=data_path,
        schema=error.schema,
        schema_pointer=f"{pointer}{schema_path}",
    )
