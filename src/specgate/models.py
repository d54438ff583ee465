"""Canonical data shapes shared across specgate modules.

The models fall into three groups:

**Configuration** -- :class:`ValidatorConfig`, resolved by
:func:`~specgate.config.resolve_config`.

**OpenAPI fragments** -- :class:`HTTPMethod`, :class:`ParameterLocation` and
:class:`ParameterSpec`, parsed from the raw document on demand.

**Request and result shapes** -- the :class:`RequestLike` protocol that the
HTTP layer must satisfy, the plain :class:`RequestData` implementation of it,
and the :class:`SchemaViolation` dict emitted by schema validation.
"""

from __future__ import annotations

import enum
import io
from dataclasses import dataclass, field
from typing import IO, Any, Mapping, MutableMapping, Optional, Protocol, TypedDict

from pydantic import BaseModel, ConfigDict, Field


# --- Configuration ---


class ValidatorConfig(BaseModel):
    """Settings that control how requests are matched and validated."""

    spec_location: str = Field(
        default="openapi.yml", description="File path or URL of the OpenAPI document"
    )
    routing_keys: list[str] = Field(
        default_factory=lambda: ["controller", "action"],
        description="Path-parameter keys that identify the handler, not URL members",
    )
    bodyless_methods: list[str] = Field(
        default_factory=lambda: ["get", "delete"],
        description="Methods whose bodies are never validated",
    )


# --- OpenAPI fragments ---


class HTTPMethod(str, enum.Enum):
    """HTTP methods recognised by OpenAPI 3.x path-item objects."""

    GET = "get"
    POST = "post"
    PUT = "put"
    PATCH = "patch"
    DELETE = "delete"
    HEAD = "head"
    OPTIONS = "options"
    TRACE = "trace"


class ParameterLocation(str, enum.Enum):
    """Locations where an API parameter can appear, per OpenAPI ``in`` field."""

    QUERY = "query"
    HEADER = "header"
    PATH = "path"
    COOKIE = "cookie"


class ParameterSpec(BaseModel):
    """A single OpenAPI *Parameter Object*, read-only.

    Only the fields the validator consults are modelled; anything else in the
    source object is kept in ``model_extra``.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True, frozen=True)

    name: str
    location: ParameterLocation = Field(alias="in")
    required: bool = False
    schema_: dict[str, Any] = Field(default_factory=dict, alias="schema")

    @property
    def schema_type(self) -> Optional[str]:
        """The declared ``schema.type``, or ``None`` when absent."""
        value = self.schema_.get("type")
        return value if isinstance(value, str) else None

    @property
    def schema_ref(self) -> Optional[str]:
        """The declared ``schema.$ref``, or ``None`` for inline schemas."""
        value = self.schema_.get("$ref")
        return value if isinstance(value, str) else None


# --- Requests and results ---


class SchemaViolation(TypedDict):
    """One JSON Schema failure, shaped for rendering to API clients.

    ``type`` is the keyword that failed (``"required"``, ``"pattern"``...) and
    ``error`` the human-readable message. The remaining keys locate the
    failure in the instance and in the schema.
    """

    type: str
    error: str
    data: Any
    data_pointer: str
    schema: Any
    schema_pointer: str


class RequestLike(Protocol):
    """What the HTTP layer must expose for a request to be validated.

    ``path_parameters`` may contain routing keys such as ``controller`` and
    ``action``; they are ignored when matching the path. ``params`` is the
    general parameter store the validator writes cast values into.
    """

    method: str
    path: str
    path_parameters: Mapping[str, Any]
    query_parameters: Mapping[str, Any]
    params: MutableMapping[str, Any]
    content_type: Optional[str]
    body: IO[bytes]


@dataclass
class RequestData:
    """Plain in-memory request satisfying :class:`RequestLike`.

    Useful for framework adapters that already hold the decoded pieces, and
    for the ``specgate check`` command.
    """

    method: str
    path: str
    path_parameters: dict[str, Any] = field(default_factory=dict)
    query_parameters: dict[str, Any] = field(default_factory=dict)
    params: dict[str, Any] = field(default_factory=dict)
    content_type: Optional[str] = None
    body: IO[bytes] = field(default_factory=io.BytesIO)

    @classmethod
    def build(
        cls,
        method: str,
        path: str,
        path_parameters: Optional[Mapping[str, Any]] = None,
        query_parameters: Optional[Mapping[str, Any]] = None,
        body: bytes | str | None = None,
        content_type: Optional[str] = None,
    ) -> RequestData:
        """Build a request whose ``params`` merges path and query parameters.

        Mirrors what web frameworks do: query values first, then path values
        (routing keys included) on top.
        """
        path_params = dict(path_parameters or {})
        query_params = dict(query_parameters or {})
        if isinstance(body, str):
            body = body.encode("utf-8")
        return cls(
            method=method,
            path=path,
            path_parameters=path_params,
            query_parameters=query_params,
            params={**query_params, **path_params},
            content_type=content_type,
            body=io.BytesIO(body or b""),
        )
