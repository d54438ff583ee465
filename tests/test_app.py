"""Tests for the ``specgate`` command line."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from specgate import __version__
from specgate.app import app, main
from specgate.exceptions import SpecParseError
from specgate.exit_codes import (
    EXIT_INVALID_USAGE,
    EXIT_SPEC_ERROR,
    EXIT_SUCCESS,
    EXIT_VALIDATION_FAILURE,
)


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def base_args(openapi_path: str) -> list[str]:
    """Global flags pointing at the fixture document, colour off."""
    return ["--spec", openapi_path, "--no-color"]


@pytest.fixture
def user_body(tmp_path: Path) -> Path:
    path = tmp_path / "user.json"
    path.write_text(json.dumps({"name": "Ada", "email": "ada@example.com"}))
    return path


# ---------------------------------------------------------------------------
# Global options
# ---------------------------------------------------------------------------


class TestGlobalOptions:
    """Test root callback behaviour."""

    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == EXIT_SUCCESS
        assert f"specgate {__version__}" in result.output

    def test_missing_spec_exits_with_spec_error(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["--spec", str(tmp_path / "nope.yml"), "--no-color", "operations"]
        )
        assert result.exit_code == EXIT_SPEC_ERROR
        assert "Spec file not found" in result.output

    def test_env_spec_location(
        self, runner: CliRunner, openapi_path: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SPECGATE_SPEC", openapi_path)
        result = runner.invoke(app, ["--plain", "locate", "POST", "/workflows"])
        assert result.exit_code == EXIT_SUCCESS
        assert "paths/~1workflows/post" in result.stdout


# ---------------------------------------------------------------------------
# locate
# ---------------------------------------------------------------------------


class TestLocate:
    """Test ``specgate locate``."""

    def test_prints_locator(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(app, [*base_args, "locate", "GET", "/users/123", "-P", "id=123"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert result.stdout.splitlines()[0] == "paths/~1users~1{id}/get"

    def test_json_output(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(
            app, [*base_args, "--json", "locate", "DELETE", "/users/5", "-P", "id=5"]
        )
        assert result.exit_code == EXIT_SUCCESS
        assert json.loads(result.stdout) == {
            "locator": "paths/~1users~1{id}/delete",
            "resolves": True,
        }

    def test_unknown_operation_exits_1(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(app, [*base_args, "--json", "locate", "HEAD", "/users"])
        assert result.exit_code == EXIT_VALIDATION_FAILURE
        assert json.loads(result.stdout)["resolves"] is False

    def test_bad_pair_is_usage_error(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(app, [*base_args, "locate", "GET", "/users/1", "-P", "id"])
        assert result.exit_code == EXIT_INVALID_USAGE


# ---------------------------------------------------------------------------
# operations
# ---------------------------------------------------------------------------


class TestOperations:
    """Test ``specgate operations``."""

    def test_plain_table(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(app, [*base_args, "--plain", "operations"])
        assert result.exit_code == EXIT_SUCCESS, result.output
        lines = result.stdout.splitlines()
        assert lines[0] == "Method\tPath\tLocator\tBody\tParameters"
        assert "POST\t/users\tpaths/~1users/post\tyes\tnotify, source, X-Trace-Id" in lines

    def test_json_records(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(app, [*base_args, "--json", "operations"])
        records = json.loads(result.stdout)
        assert len(records) == 8
        workflow = next(r for r in records if r["Locator"] == "paths/~1workflows/post")
        assert workflow["Body"] == ""
        assert workflow["Parameters"] == ""


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------


class TestCheck:
    """Test ``specgate check``."""

    def test_valid_request(
        self, runner: CliRunner, base_args: list[str], user_body: Path
    ) -> None:
        result = runner.invoke(
            app,
            [*base_args, "--json", "check", "POST", "/users",
             "-Q", "notify=false", "--body", str(user_body)],
        )
        assert result.exit_code == EXIT_SUCCESS, result.output
        assert json.loads(result.stdout) == {"valid": True, "parameters": {"notify": False}}

    def test_valid_request_plain(
        self, runner: CliRunner, base_args: list[str], user_body: Path
    ) -> None:
        result = runner.invoke(
            app, [*base_args, "--plain", "check", "POST", "/users", "--body", str(user_body)]
        )
        assert result.exit_code == EXIT_SUCCESS
        assert "POST /users is valid." in result.output

    def test_body_from_stdin(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(
            app,
            [*base_args, "--json", "check", "POST", "/users", "--body", "-"],
            input='{"name": "Ada"}',
        )
        assert result.exit_code == EXIT_VALIDATION_FAILURE
        payload = json.loads(result.stdout)
        assert payload["valid"] is False
        assert payload["error"] == "'email' is a required property"
        assert payload["violations"][0]["type"] == "required"

    def test_violations_table(self, runner: CliRunner, base_args: list[str], tmp_path: Path) -> None:
        body = tmp_path / "bad.json"
        body.write_text(json.dumps({"name": "Ada", "email": "ada@example.com", "age": "x"}))
        result = runner.invoke(
            app, [*base_args, "--plain", "check", "POST", "/users", "--body", str(body)]
        )
        assert result.exit_code == EXIT_VALIDATION_FAILURE
        assert "type\t'x' is not of type 'integer'\t/age" in result.stdout

    def test_path_parameter_failure(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(app, [*base_args, "check", "GET", "/users/abc", "-P", "id=abc"])
        assert result.exit_code == EXIT_VALIDATION_FAILURE
        assert "does not match" in result.output

    def test_wrong_content_type(
        self, runner: CliRunner, base_args: list[str], user_body: Path
    ) -> None:
        result = runner.invoke(
            app,
            [*base_args, "check", "POST", "/users", "--body", str(user_body),
             "--content-type", "text/plain"],
        )
        assert result.exit_code == EXIT_VALIDATION_FAILURE
        assert '"Content-Type" request header must be set to "application/json".' in result.output

    def test_missing_body(self, runner: CliRunner, base_args: list[str]) -> None:
        result = runner.invoke(app, [*base_args, "check", "POST", "/users"])
        assert result.exit_code == EXIT_VALIDATION_FAILURE
        assert "not valid JSON" in result.output

    def test_body_file_not_found(self, runner: CliRunner, base_args: list[str], tmp_path: Path) -> None:
        result = runner.invoke(
            app, [*base_args, "check", "POST", "/users", "--body", str(tmp_path / "none.json")]
        )
        assert result.exit_code == EXIT_INVALID_USAGE
        assert "Body file not found" in result.output

    def test_unresolvable_reference_is_spec_error(
        self, runner: CliRunner, base_args: list[str]
    ) -> None:
        result = runner.invoke(app, [*base_args, "check", "POST", "/frogs", "--body", "-"], input="{}")
        assert result.exit_code == EXIT_SPEC_ERROR


# ---------------------------------------------------------------------------
# main
# ---------------------------------------------------------------------------


class TestMain:
    """Test the console-script entry point."""

    def test_specgate_error_maps_to_exit_code(self) -> None:
        with patch("specgate.app._setup_signal_handlers"), patch(
            "specgate.app.app", side_effect=SpecParseError("broken document")
        ):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == EXIT_SPEC_ERROR
