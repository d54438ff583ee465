"""JSON Pointer handling for OpenAPI documents.

Request validation addresses the document through JSON Pointers such as
``paths/~1users~1{id}/get/parameters``.  Concrete request paths contain
literal slashes, so they have to be embedded as a *single* pointer segment
using RFC 6901 escaping (``~`` as ``~0``, ``/`` as ``~1``).

Public helpers:

* :func:`escape_segment` / :func:`unescape_segment` -- RFC 6901 escaping.
* :func:`resolve_pointer` -- walk the document to the addressed node,
  following internal ``$ref`` objects met on the way.
* :func:`locate` -- same walk, but also returns the *canonical* pointer of
  the node (the location after every ``$ref`` hop), which is what the JSON
  Schema engine needs to validate against it.

Only **internal** references (those starting with ``#``) are followed here.
External references are left to the JSON Schema engine and the optional
``ref_resolver`` hook (see :mod:`specgate.schema`).
"""

from __future__ import annotations

from typing import Any

from specgate.exceptions import ReferenceNotFoundError

# Upper bound on chained $ref hops before a chain is treated as circular.
_MAX_REF_HOPS = 32


def escape_segment(segment: str) -> str:
    """Escape *segment* for use as one JSON Pointer token.

    Example::

        >>> escape_segment("/users/{id}")
        '~1users~1{id}'
    """
    return segment.replace("~", "~0").replace("/", "~1")


def unescape_segment(segment: str) -> str:
    """Reverse :func:`escape_segment`."""
    return segment.replace("~1", "/").replace("~0", "~")


def split_pointer(pointer: str) -> list[str]:
    """Split a pointer into unescaped tokens.

    ``#/a/b``, ``/a/b`` and ``a/b`` are all accepted and yield ``["a", "b"]``.
    The empty pointer (``""`` or ``"#"``) addresses the whole document.
    """
    path = pointer
    if path.startswith("#"):
        path = path[1:]
    if path.startswith("/"):
        path = path[1:]
    if not path:
        return []
    return [unescape_segment(token) for token in path.split("/")]


def join_pointer(tokens: list[str]) -> str:
    """Build a ``#/``-prefixed pointer from unescaped tokens."""
    if not tokens:
        return "#"
    return "#/" + "/".join(escape_segment(token) for token in tokens)


def resolve_pointer(document: dict[str, Any], pointer: str) -> Any:
    """Resolve *pointer* against *document* and return the addressed node.

    Internal ``$ref`` objects met while walking are followed, so a pointer
    through a referenced ``requestBody`` or parameter reaches the target.
    The final node is returned as-is, even when it is itself a ``$ref``.

    Args:
        document: The root OpenAPI dictionary.
        pointer: A JSON Pointer, with or without the leading ``#/``.

    Returns:
        The node found at the pointer.

    Raises:
        ReferenceNotFoundError: If any segment does not exist in the document.
    """
    node, _ = locate(document, pointer)
    return node


def locate(document: dict[str, Any], pointer: str) -> tuple[Any, str]:
    """Resolve *pointer* and return ``(node, canonical_pointer)``.

    The canonical pointer addresses the same node without passing through
    any ``$ref`` object, e.g. ``#/paths/~1users/post/requestBody/content``
    becomes ``#/components/requestBodies/User/content`` when the request body
    is a reference.

    Raises:
        ReferenceNotFoundError: If any segment does not exist in the document.
    """
    current: Any = document
    tokens: list[str] = []
    for token in split_pointer(pointer):
        current, tokens = _follow_local_ref(document, current, tokens, pointer)

        if isinstance(current, dict):
            if token not in current:
                raise ReferenceNotFoundError(
                    f"Cannot resolve '{pointer}': key '{token}' not found"
                )
            current = current[token]
        elif isinstance(current, list):
            try:
                current = current[int(token)]
            except (ValueError, IndexError) as exc:
                raise ReferenceNotFoundError(
                    f"Cannot resolve '{pointer}': invalid array index '{token}'"
                ) from exc
        else:
            raise ReferenceNotFoundError(
                f"Cannot resolve '{pointer}': "
                f"cannot navigate into {type(current).__name__}"
            )
        tokens = [*tokens, token]

    return current, join_pointer(tokens)


def resolve_local_ref(document: dict[str, Any], node: Any) -> Any:
    """Return the target of *node* if it is an internal ``$ref`` object.

    Non-reference nodes and external references are returned unchanged.
    """
    target, _ = _follow_local_ref(document, node, [], "")
    return target


def _follow_local_ref(
    document: dict[str, Any],
    node: Any,
    tokens: list[str],
    pointer: str,
) -> tuple[Any, list[str]]:
    """Follow ``{"$ref": "#/..."}`` objects until a concrete node is reached."""
    hops = 0
    while isinstance(node, dict) and isinstance(node.get("$ref"), str):
        ref = node["$ref"]
        if not ref.startswith("#"):
            break
        hops += 1
        if hops > _MAX_REF_HOPS:
            raise ReferenceNotFoundError(
                f"Cannot resolve '{pointer or ref}': circular $ref at '{ref}'"
            )
        tokens = split_pointer(ref)
        node = _walk(document, tokens, ref)
    return node, tokens


def _walk(document: dict[str, Any], tokens: list[str], ref: str) -> Any:
    """Walk *tokens* literally (no ``$ref`` following) for a ``$ref`` target."""
    current: Any = document
    for token in tokens:
        if isinstance(current, dict) and token in current:
            current = current[token]
        elif isinstance(current, list) and token.isdigit() and int(token) < len(current):
            current = current[int(token)]
        else:
            raise ReferenceNotFoundError(f"Cannot resolve $ref '{ref}'")
    return current
