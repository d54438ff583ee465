"""Map concrete request paths onto templated OpenAPI path keys.

The routing layer has already matched ``/users/123`` to a handler and knows
that ``id == "123"``; this module turns that knowledge back into the OpenAPI
path key ``/users/{id}`` and then into the pointer the document is queried
with::

    >>> template_path("/users/123", {"controller": "users", "id": "123"})
    '/users/{id}'
    >>> operation_locator(RequestData.build("GET", "/users/123", {"id": "123"}))
    'paths/~1users~1{id}/get'

There is no fuzzy matching: a segment that is not a parameter value stays
literal and must equal the document's path key exactly.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, Optional
from urllib.parse import unquote_plus

from specgate.models import RequestLike
from specgate.parser.resolver import escape_segment

logger = logging.getLogger(__name__)

DEFAULT_ROUTING_KEYS: tuple[str, ...] = ("controller", "action")

_PLACEHOLDER = re.compile(r"\{([^{}/]+)\}")


def decode_path(path: str) -> str:
    """URL-decode *path*, spelling spaces as ``+``.

    Both ``%20`` and ``+`` decode to a space first, and every space is then
    written as ``+``, which is how path keys with spaces appear in documents
    served by form-encoding routers.
    """
    return unquote_plus(path).replace(" ", "+")


def template_path(
    path: str,
    path_parameters: Mapping[str, Any],
    routing_keys: Iterable[str] = DEFAULT_ROUTING_KEYS,
    path_keys: Optional[Iterable[str]] = None,
) -> str:
    """Replace path-parameter values in *path* with ``{name}`` placeholders.

    Parameters are substituted in the mapping's order, once each, and only
    inside the literal parts of the path: a placeholder inserted for one
    parameter is never rewritten by a later one.  A value filling a whole
    path segment wins over the same text embedded in a longer segment, so
    ``id="1"`` turns ``/v1/users/1`` into ``/v1/users/{id}``; when no whole
    segment matches, the first plain occurrence is used.

    Mapping order says nothing about where each parameter sits in the path,
    so two parameters sharing a value can land in each other's slots.  When
    *path_keys* is given and the substituted path is not one of them, the
    first key that reproduces the request path once its placeholders are
    filled from *path_parameters* is returned instead.

    Args:
        path: The request path, raw or already decoded.
        path_parameters: Routing parameters, routing keys included.
        routing_keys: Keys that name the handler rather than URL members.
        path_keys: The templated paths the document declares, in order.

    Returns:
        The templated path, still unescaped.
    """
    excluded = set(routing_keys)
    decoded = decode_path(path)

    values: dict[str, str] = {}
    for name, value in path_parameters.items():
        if name in excluded or value is None or not str(value):
            continue
        values[str(name)] = str(value)

    templated = _substitute(decoded, values, path)
    if path_keys is None:
        return templated

    keys = list(path_keys)
    if templated in keys:
        return templated
    for key in keys:
        if _fill_placeholders(key, values) == decoded:
            logger.debug("Path %s matches declared key %s rather than %s", path, key, templated)
            return key
    return templated


def _substitute(decoded: str, values: Mapping[str, str], path: str) -> str:
    # (text, is_placeholder) pieces; only literal pieces are searched.
    pieces: list[tuple[str, bool]] = [(decoded, False)]
    for name, literal in values.items():
        placeholder = "{" + name + "}"
        replaced = _replace_first(pieces, literal, placeholder, whole_segment=True)
        if replaced is None:
            replaced = _replace_first(pieces, literal, placeholder, whole_segment=False)
        if replaced is None:
            logger.debug("Path parameter %s=%r does not occur in %s", name, literal, path)
            continue
        pieces = replaced
    return "".join(text for text, _ in pieces)


def _replace_first(
    pieces: list[tuple[str, bool]],
    literal: str,
    placeholder: str,
    whole_segment: bool,
) -> Optional[list[tuple[str, bool]]]:
    last = len(pieces) - 1
    for index, (text, is_placeholder) in enumerate(pieces):
        if is_placeholder:
            continue
        if whole_segment:
            # A segment may only end at the path's end in the final piece.
            end = r"(?=/|$)" if index == last else r"(?=/)"
            match = re.search(r"(?<=/)" + re.escape(literal) + end, text)
        else:
            match = re.search(re.escape(literal), text)
        if match is None:
            continue
        around = [
            (text[: match.start()], False),
            (placeholder, True),
            (text[match.end():], False),
        ]
        return pieces[:index] + [p for p in around if p[1] or p[0]] + pieces[index + 1:]
    return None


def _fill_placeholders(key: str, values: Mapping[str, str]) -> Optional[str]:
    """Fill ``{name}`` placeholders in *key*; ``None`` if one has no value."""
    names = _PLACEHOLDER.findall(key)
    if any(name not in values for name in names):
        return None
    return _PLACEHOLDER.sub(lambda m: values[m.group(1)], key)


def operation_locator(
    request: RequestLike,
    routing_keys: Iterable[str] = DEFAULT_ROUTING_KEYS,
    path_keys: Optional[Iterable[str]] = None,
) -> str:
    """Return the pointer of the operation *request* targets.

    The result has the form ``paths/<escaped templated path>/<verb>``.
    *path_keys* is passed through to :func:`template_path`.
    """
    templated = template_path(
        request.path, request.path_parameters, routing_keys, path_keys=path_keys
    )
    locator = f"paths/{escape_segment(templated)}/{request.method.lower()}"
    logger.debug("Request %s %s maps to %s", request.method, request.path, locator)
    return locator
