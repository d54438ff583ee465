"""Tests for specgate.parser.loader."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import httpx
import pytest

from specgate.exceptions import SpecNotFoundError, SpecParseError
from specgate.parser.loader import FETCH_TIMEOUT, load_spec, parse_document, validate_openapi_version

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"

REMOTE_YAML = """\
openapi: "3.0.0"
info:
  title: Remote users API
  version: "1.0"
paths: {}
"""


def _response(url: str, status_code: int = 200, **kwargs: object) -> httpx.Response:
    return httpx.Response(status_code=status_code, request=httpx.Request("GET", url), **kwargs)


# ---------------------------------------------------------------------------
# Local files
# ---------------------------------------------------------------------------


class TestLoadFile:
    """Documents read from disk."""

    def test_fixture_document(self) -> None:
        document = load_spec(FIXTURES_DIR / "openapi.yml")
        assert document["openapi"] == "3.0.3"
        assert "/users/{id}" in document["paths"]

    def test_json_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "openapi.json"
        path.write_text('{"openapi": "3.0.3", "paths": {}}', encoding="utf-8")
        assert load_spec(str(path)) == {"openapi": "3.0.3", "paths": {}}

    def test_json_suffix_does_not_fall_back_to_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "openapi.json"
        path.write_text("openapi: 3.0.3\n", encoding="utf-8")
        with pytest.raises(SpecParseError, match="is not valid JSON:"):
            load_spec(path)

    def test_unknown_suffix_tries_both_formats(self, tmp_path: Path) -> None:
        path = tmp_path / "openapi.txt"
        path.write_text("openapi: 3.0.3\npaths: {}\n", encoding="utf-8")
        assert load_spec(path)["openapi"] == "3.0.3"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecNotFoundError, match="Spec file not found") as exc_info:
            load_spec(tmp_path / "openapi.yml")
        assert isinstance(exc_info.value, FileNotFoundError)

    def test_directory_is_not_a_document(self, tmp_path: Path) -> None:
        with pytest.raises(SpecNotFoundError):
            load_spec(tmp_path)

    def test_blank_file(self, tmp_path: Path) -> None:
        path = tmp_path / "openapi.yml"
        path.write_text("  \n", encoding="utf-8")
        with pytest.raises(SpecParseError, match="is empty"):
            load_spec(path)


# ---------------------------------------------------------------------------
# URLs
# ---------------------------------------------------------------------------


class TestLoadUrl:
    """Documents fetched over HTTP."""

    def test_json_response(self) -> None:
        url = "https://api.example.com/openapi.json"
        response = _response(url, json={"openapi": "3.0.3", "paths": {}})
        with patch("specgate.parser.loader.httpx.get", return_value=response) as get:
            assert load_spec(url) == {"openapi": "3.0.3", "paths": {}}
        get.assert_called_once_with(url, timeout=FETCH_TIMEOUT, follow_redirects=True)

    def test_yaml_content_type(self) -> None:
        url = "https://api.example.com/openapi"
        response = _response(url, text=REMOTE_YAML, headers={"content-type": "application/x-yaml"})
        with patch("specgate.parser.loader.httpx.get", return_value=response):
            assert load_spec(url)["info"]["title"] == "Remote users API"

    def test_http_error(self) -> None:
        url = "https://api.example.com/missing.json"
        with patch("specgate.parser.loader.httpx.get", return_value=_response(url, 404)):
            with pytest.raises(SpecParseError, match="HTTP 404 while fetching"):
                load_spec(url)

    def test_transport_error(self) -> None:
        with patch(
            "specgate.parser.loader.httpx.get",
            side_effect=httpx.ConnectError("Connection refused"),
        ):
            with pytest.raises(SpecParseError, match="Could not fetch .*Connection refused"):
                load_spec("https://unreachable.example.com/openapi.yml")


# ---------------------------------------------------------------------------
# parse_document
# ---------------------------------------------------------------------------


class TestParseDocument:
    """Decoding text into a mapping."""

    def test_json_then_yaml(self) -> None:
        assert parse_document('{"openapi": "3.0.3"}') == {"openapi": "3.0.3"}
        assert parse_document("openapi: 3.0.3\npaths: {}") == {"openapi": "3.0.3", "paths": {}}

    def test_both_failures_reported(self) -> None:
        with pytest.raises(SpecParseError) as exc_info:
            parse_document("}{: [", source="broken.txt")
        message = str(exc_info.value)
        assert message.startswith("broken.txt is not valid JSON or YAML:")
        assert "\n  JSON: " in message
        assert "\n  YAML: " in message

    @pytest.mark.parametrize(
        "text, fmt, kind",
        [('"users"', None, "str"), ("- a\n- b\n", "yaml", "list"), ("---\n", "yaml", "an empty document")],
    )
    def test_top_level_must_be_mapping(self, text: str, fmt: str | None, kind: str) -> None:
        with pytest.raises(SpecParseError, match=f"must hold a mapping at the top level, not {kind}"):
            parse_document(text, fmt)


# ---------------------------------------------------------------------------
# validate_openapi_version
# ---------------------------------------------------------------------------


class TestValidateOpenapiVersion:
    """Only OpenAPI 3.x documents are accepted."""

    @pytest.mark.parametrize("version, expected", [("3.0.3", "3.0.3"), ("3.1.0", "3.1.0"), (3.0, "3.0")])
    def test_accepts_3x(self, version: object, expected: str) -> None:
        assert validate_openapi_version({"openapi": version}) == expected

    def test_rejects_swagger(self) -> None:
        with pytest.raises(SpecParseError, match="Swagger 2.0 is not supported"):
            validate_openapi_version({"swagger": "2.0"})

    def test_rejects_missing_field(self) -> None:
        with pytest.raises(SpecParseError, match="Missing 'openapi' field"):
            validate_openapi_version({"info": {}})

    def test_rejects_other_major_version(self) -> None:
        with pytest.raises(SpecParseError, match="Unsupported OpenAPI version 4.0.0"):
            validate_openapi_version({"openapi": "4.0.0"})
