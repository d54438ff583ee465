"""Type coercion for query-string values.

Query parameters always arrive as strings.  :func:`cast_query_value` narrows
them to the type the OpenAPI schema declares.  Only ``boolean`` has a
coercion rule; every other declared type keeps the original string.

The boolean rule matches the form-value semantics Rails applications use
(``ActiveModel::Type::Boolean``), so services migrating between stacks see
identical results:

* blank string → ``None``
* ``"0"``, ``"f"``, ``"F"``, ``"false"``, ``"FALSE"``, ``"off"``, ``"OFF"``
  (and ``False`` / ``0``) → ``False``
* anything else, including ``"true"``, ``"1"`` and ``"yes"`` → ``True``
"""

from __future__ import annotations

from typing import Any, Callable, Optional

FALSE_VALUES = frozenset(
    {False, 0, "0", "f", "F", "false", "FALSE", "off", "OFF"}
)


def cast_boolean(value: Any) -> Optional[bool]:
    """Cast a form value to ``bool``, or ``None`` for a blank string.

    Example::

        >>> cast_boolean("1"), cast_boolean("false"), cast_boolean("")
        (True, False, None)
    """
    if value is None or value == "":
        return None
    if isinstance(value, (str, int)) and value in FALSE_VALUES:
        return False
    return True


_CASTERS: dict[str, Callable[[Any], Any]] = {
    "boolean": cast_boolean,
}


def cast_query_value(value: Any, schema_type: Optional[str]) -> Any:
    """Cast *value* according to the declared *schema_type*.

    Types without a coercion rule return *value* unchanged.
    """
    caster = _CASTERS.get(schema_type or "")
    if caster is None:
        return value
    return caster(value)
