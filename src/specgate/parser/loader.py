"""Read an OpenAPI document into a plain dictionary.

A location is either an ``http(s)://`` URL, fetched with :mod:`httpx`, or a
local path.  The format comes from the file suffix or the response
content type; when neither says, the text is tried as JSON and then as YAML.
Either way the top level must be a mapping.

:func:`validate_openapi_version` is kept separate so callers holding an
already-parsed dictionary (see :class:`~specgate.schema.SpecDocument`) can
run the same check.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import yaml

from specgate.exceptions import SpecNotFoundError, SpecParseError

logger = logging.getLogger(__name__)

FETCH_TIMEOUT = 30.0

_SUFFIX_FORMATS = {".json": "json", ".yaml": "yaml", ".yml": "yaml"}

_DECODERS: dict[str, tuple[Callable[[str], Any], type[Exception]]] = {
    "json": (json.loads, json.JSONDecodeError),
    "yaml": (yaml.safe_load, yaml.YAMLError),
}


def load_spec(location: str | Path) -> dict[str, Any]:
    """Load the OpenAPI document at *location*.

    Args:
        location: An ``http://``/``https://`` URL or a local file path.

    Returns:
        The parsed document.

    Raises:
        SpecNotFoundError: If a local path does not name a file.
        SpecParseError: If fetching, reading or parsing fails.
    """
    source = str(location)
    if source.startswith(("http://", "https://")):
        text, fmt = _fetch(source)
    else:
        text, fmt = _read(source)
    document = parse_document(text, fmt, source=source)
    logger.info("Loaded OpenAPI document from %s", source)
    return document


def _fetch(url: str) -> tuple[str, Optional[str]]:
    try:
        response = httpx.get(url, timeout=FETCH_TIMEOUT, follow_redirects=True)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise SpecParseError(f"HTTP {exc.response.status_code} while fetching {url}") from exc
    except httpx.RequestError as exc:
        raise SpecParseError(f"Could not fetch {url}: {exc}") from exc

    media_type = response.headers.get("content-type", "").lower()
    fmt = None
    if "json" in media_type:
        fmt = "json"
    elif "yaml" in media_type or "yml" in media_type:
        fmt = "yaml"
    return response.text, fmt


def _read(path: str) -> tuple[str, Optional[str]]:
    file_path = Path(path)
    if not file_path.is_file():
        raise SpecNotFoundError(f"Spec file not found: {path}")
    try:
        text = file_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecParseError(f"Could not read {path}: {exc}") from exc
    if not text.strip():
        raise SpecParseError(f"{path} is empty")
    return text, _SUFFIX_FORMATS.get(file_path.suffix.lower())


def parse_document(
    text: str,
    fmt: Optional[str] = None,
    source: str = "<document>",
) -> dict[str, Any]:
    """Decode *text* as an OpenAPI document.

    Args:
        text: Raw document text.
        fmt: ``"json"`` or ``"yaml"`` to use one decoder only; ``None`` tries
            JSON first, then YAML.
        source: Where *text* came from, for error messages.

    Raises:
        SpecParseError: If no decoder accepts *text*, or the result is not a
            mapping.
    """
    formats = [fmt] if fmt else ["json", "yaml"]
    failures: list[str] = []
    for name in formats:
        decode, error_type = _DECODERS[name]
        try:
            document = decode(text)
        except error_type as exc:
            failures.append(f"{name.upper()}: {exc}")
            continue
        if not isinstance(document, dict):
            kind = "an empty document" if document is None else type(document).__name__
            raise SpecParseError(f"{source} must hold a mapping at the top level, not {kind}")
        return document

    raise SpecParseError(f"{source} is not valid {' or '.join(f.upper() for f in formats)}:\n  " + "\n  ".join(failures))


def validate_openapi_version(spec: dict[str, Any]) -> str:
    """Return the document's ``openapi`` version, which must be ``3.x``.

    Raises:
        SpecParseError: For Swagger 2 documents, a missing ``openapi`` field
            or any other major version.
    """
    if "swagger" in spec:
        raise SpecParseError(
            f"Swagger {spec['swagger']} is not supported; request validation needs OpenAPI 3.x"
        )
    if "openapi" not in spec:
        raise SpecParseError("Missing 'openapi' field; is this an OpenAPI 3.x document?")

    version = str(spec["openapi"])
    if not version.startswith("3."):
        raise SpecParseError(f"Unsupported OpenAPI version {version}; only 3.x is supported")
    return version
