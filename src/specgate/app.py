"""Typer application and CLI entry point for specgate.

The ``specgate`` command exposes the validation core for inspecting an
OpenAPI document and trying requests against it without a web framework:

* ``specgate locate`` -- print the operation locator a request maps to.
* ``specgate operations`` -- list every operation the document declares.
* ``specgate check`` -- run the full before-handler against a synthetic
  request and report the cast parameters or the violations.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``.

See Also:
    :mod:`specgate.config`: Spec location resolution for ``--spec``.
    :mod:`specgate.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from pathlib import Path
from typing import Any, Optional

import typer

from specgate import __version__
from specgate.exit_codes import EXIT_INVALID_USAGE, EXIT_VALIDATION_FAILURE
from specgate.output import OutputFormat, error, get_output, success, warning


app = typer.Typer(
    name="specgate",
    help="Validate HTTP requests against OpenAPI 3.0 documents.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"specgate {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    spec: Optional[str] = typer.Option(
        None, "--spec", "-s", help="OpenAPI document path or URL."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~specgate.output.OutputManager` from
    CLI flags and stores the ``--spec`` override in ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        spec: Document location override (highest precedence).
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output and library logging.
    """
    from specgate.output import OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )

    ctx.ensure_object(dict)
    ctx.obj["spec"] = spec
    ctx.obj["verbose"] = verbose


# ------------------------------------------------------------------ #
# Helpers
# ------------------------------------------------------------------ #


def _parse_pairs(values: Optional[list[str]], option: str) -> dict[str, str]:
    """Parse repeated ``name=value`` options into an ordered dict.

    Raises:
        typer.BadParameter: If an entry has no ``=``.
    """
    pairs: dict[str, str] = {}
    for item in values or []:
        name, sep, value = item.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got '{item}'", param_hint=option)
        pairs[name] = value
    return pairs


def _read_body(source: Optional[str]) -> Optional[bytes]:
    """Read the request body from a file, or from stdin for ``-``."""
    if source is None:
        return None
    if source == "-":
        return typer.get_binary_stream("stdin").read()
    path = Path(source)
    if not path.is_file():
        error(f"Body file not found: {source}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)
    return path.read_bytes()


def _load(ctx: typer.Context):  # noqa: ANN202
    """Resolve the configuration and load the document it points to.

    Returns:
        A ``(ValidatorConfig, SpecDocument)`` tuple.

    Raises:
        typer.Exit: With the error's exit code when either step fails.
    """
    from specgate.config import resolve_config
    from specgate.exceptions import SpecgateError
    from specgate.schema import load_document

    spec = (ctx.obj or {}).get("spec")
    try:
        config = resolve_config(spec)
        document = load_document(config.spec_location)
    except SpecgateError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    get_output().debug(f"Loaded {config.spec_location} (OpenAPI {document.openapi_version})")
    return config, document


# ------------------------------------------------------------------ #
# Commands
# ------------------------------------------------------------------ #


@app.command("locate")
def locate_command(
    ctx: typer.Context,
    method: str = typer.Argument(..., help="HTTP method, e.g. GET."),
    path: str = typer.Argument(..., help="Concrete request path, e.g. /users/123."),
    path_params: Optional[list[str]] = typer.Option(
        None, "--path-param", "-P", help="Routed path parameter as name=value. Repeatable."
    ),
) -> None:
    """Print the operation locator for a request.

    Exits with code 1 when the locator does not resolve to an operation.

    Example::

        specgate locate GET /users/123 -P id=123
    """
    from specgate.exceptions import OperationNotFoundError
    from specgate.models import RequestData
    from specgate.validator import OpenAPIValidator

    config, document = _load(ctx)
    request = RequestData.build(method, path, _parse_pairs(path_params, "--path-param"))
    validator = OpenAPIValidator(request, config=config, document=document)

    locator = validator.operation_locator
    try:
        validator.operation()
        resolves = True
    except OperationNotFoundError:
        resolves = False

    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json({"locator": locator, "resolves": resolves})
    else:
        output.print_data(locator)
        if resolves:
            success("Resolves to an operation.")
        else:
            warning(f"No operation is defined for {method.upper()} {path}")

    if not resolves:
        raise typer.Exit(code=EXIT_VALIDATION_FAILURE)


@app.command("operations")
def operations_command(ctx: typer.Context) -> None:
    """List every operation declared in the document.

    Example::

        specgate --spec openapi.yml operations
    """
    from specgate.parser.resolver import escape_segment

    _, document = _load(ctx)

    headers = ["Method", "Path", "Locator", "Body", "Parameters"]
    rows: list[list[str]] = []
    for path, method, operation in document.operations():
        params = [document.resolve(p) for p in operation.get("parameters") or []]
        names = [str(p.get("name", "?")) for p in params if isinstance(p, dict)]
        rows.append([
            method.value.upper(),
            path,
            f"paths/{escape_segment(path)}/{method.value}",
            "yes" if "requestBody" in operation else "",
            ", ".join(names),
        ])

    get_output().print_table(headers, rows, title=f"Operations ({len(rows)})")


@app.command("check")
def check_command(
    ctx: typer.Context,
    method: str = typer.Argument(..., help="HTTP method, e.g. POST."),
    path: str = typer.Argument(..., help="Concrete request path, e.g. /users."),
    path_params: Optional[list[str]] = typer.Option(
        None, "--path-param", "-P", help="Routed path parameter as name=value. Repeatable."
    ),
    query_params: Optional[list[str]] = typer.Option(
        None, "--query", "-Q", help="Query parameter as name=value. Repeatable."
    ),
    body: Optional[str] = typer.Option(
        None, "--body", "-b", help="File holding the JSON body, or '-' for stdin."
    ),
    content_type: str = typer.Option(
        "application/json", "--content-type", "-t", help="Content-Type of the body."
    ),
) -> None:
    """Validate a synthetic request against the document.

    Casts query parameters, validates ``$ref``-typed path parameters and
    the JSON body.  Prints the parameter writes on success.  Exits with 1
    when the request is invalid and 7 when the document is broken.

    Example::

        specgate check POST /users -Q notify=false --body user.json
        echo '{"name": "x"}' | specgate check POST /users --body -
    """
    from specgate.controller import validate_request
    from specgate.exceptions import RequestValidationError, SpecgateError
    from specgate.models import RequestData
    from specgate.validator import OpenAPIValidator

    config, document = _load(ctx)
    request = RequestData.build(
        method,
        path,
        path_parameters=_parse_pairs(path_params, "--path-param"),
        query_parameters=_parse_pairs(query_params, "--query"),
        body=_read_body(body),
        content_type=content_type,
    )
    validator = OpenAPIValidator(request, config=config, document=document)
    output = get_output()

    try:
        updates = validate_request(request, validator=validator)
    except RequestValidationError as exc:
        _report_failure(exc)
        raise typer.Exit(code=exc.exit_code) from None
    except SpecgateError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    if output.format == OutputFormat.JSON:
        output.print_json({"valid": True, "parameters": updates})
        return
    if updates:
        output.print_table(
            ["Parameter", "Value"],
            [[name, repr(value)] for name, value in updates.items()],
            title="Parameters",
        )
    success(f"{method.upper()} {path} is valid.")


def _report_failure(exc: Any) -> None:
    """Render a :class:`~specgate.exceptions.RequestValidationError`."""
    output = get_output()
    if output.format == OutputFormat.JSON:
        output.print_json({
            "valid": False,
            "error": str(exc),
            "violations": exc.violations,
        })
        return
    error(str(exc))
    output.print_violations(exc.violations)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def main() -> None:
    """CLI entry point invoked by the ``specgate`` console script.

    Unhandled :class:`~specgate.exceptions.SpecgateError` instances
    cause a clean exit with the error's ``exit_code``.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from specgate.exceptions import SpecgateError

        if isinstance(exc, SpecgateError):
            error(str(exc))
            sys.exit(exc.exit_code)
        raise
