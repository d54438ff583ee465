"""Shared test fixtures for specgate.

Provides the OpenAPI fixture document, request builders, and isolation of
the global output state and of the environment variables the configuration
layer reads.  These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import pytest

from specgate.models import RequestData
from specgate.output import reset_output
from specgate.parser.loader import load_spec
from specgate.schema import SpecDocument


FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale.
    Resetting forces a fresh manager to be created on next use.
    """
    yield
    reset_output()


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep ``SPECGATE_SPEC`` and any ``specgate.json`` in the cwd out of tests."""
    monkeypatch.delenv("SPECGATE_SPEC", raising=False)
    monkeypatch.chdir(tmp_path)


# ---------------------------------------------------------------------------
# Spec fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def openapi_path() -> str:
    """Absolute path of the fixture OpenAPI 3.0 document."""
    return str(FIXTURES_DIR / "openapi.yml")


@pytest.fixture
def openapi_raw(openapi_path: str) -> dict[str, Any]:
    """The fixture document as a plain dict."""
    return load_spec(openapi_path)


@pytest.fixture
def document(openapi_raw: dict[str, Any]) -> SpecDocument:
    """The fixture document wrapped for validation."""
    return SpecDocument(openapi_raw)


# ---------------------------------------------------------------------------
# Request fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_request() -> Callable[..., RequestData]:
    """Factory for :class:`RequestData` with Rails-style routing keys added."""

    def _make(
        method: str,
        path: str,
        path_parameters: dict[str, Any] | None = None,
        query_parameters: dict[str, Any] | None = None,
        body: bytes | str | None = None,
        content_type: str | None = "application/json",
    ) -> RequestData:
        routed = {"controller": "api", "action": method.lower()}
        routed.update(path_parameters or {})
        return RequestData.build(
            method,
            path,
            path_parameters=routed,
            query_parameters=query_parameters,
            body=body,
            content_type=content_type,
        )

    return _make
