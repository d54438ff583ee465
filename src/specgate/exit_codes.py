"""Numeric process exit codes used by the ``specgate`` command line.

Each constant maps to an error category and is referenced by the
corresponding :class:`~specgate.exceptions.SpecgateError` subclass, so shell
scripts and CI jobs can tell a rejected request apart from a broken spec
without parsing stderr.

Example::

    $ specgate check POST /users --body user.json
    $ echo $?
    1   # EXIT_VALIDATION_FAILURE -- the request violates the contract
"""

EXIT_SUCCESS = 0
"""The request satisfied the OpenAPI document."""

EXIT_VALIDATION_FAILURE = 1
"""The request was rejected (bad body, parameter, content type or route)."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or configuration."""

EXIT_SPEC_ERROR = 7
"""The OpenAPI document could not be loaded, parsed or resolved."""
