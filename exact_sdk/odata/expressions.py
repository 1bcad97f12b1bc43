"""
exact_sdk.odata.expressions - Typed OData expressions
=====================================================

A small expression tree for building filter, select and order values
without writing OData syntax by hand:

- Field: a property reference, translates to the property name
- MethodCall: ``methodname(target, arg1, ...)``
- Constant: a literal value

Examples
--------
>>> translate(Field("Name"))
'Name'
>>> translate(Field("Code").call("substringof", "AB"))
"substringof(Code,'AB')"
>>> format_literal(uuid.UUID("0f8fad5b-d9cb-469f-a165-70867728950e"))
"guid'0f8fad5b-d9cb-469f-a165-70867728950e'"
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Tuple, Union

from exact_sdk.core.errors import ExactValidationError, UnsupportedExpressionError


class Operator(str, enum.Enum):
    """Comparison operators for typed predicates."""
    EQ = "eq"
    NE = "ne"
    GT = "gt"
    GE = "ge"
    LT = "lt"
    LE = "le"


def escape_odata_literal(value: str) -> str:
    """
    Escape a string value for use in OData $filter expressions.

    Examples
    --------
    >>> escape_odata_literal("O'Brien")
    "O''Brien"
    """
    return value.replace("'", "''")


def format_literal(value: Any) -> str:
    """
    Format a Python value as an OData literal.

    Parameters
    ----------
    value : any
        str, UUID, datetime/date, bool, None or any other value

    Returns
    -------
    str
        Quoted string, ``guid'...'``, ``datetime'...'``, ``true``/``false``,
        ``null``, or ``str(value)`` for everything else
    """
    if value is None:
        return "null"
    # str-based enums render their value unquoted
    if isinstance(value, enum.Enum):
        return str(value.value)
    if isinstance(value, str):
        return f"'{escape_odata_literal(value)}'"
    if isinstance(value, uuid.UUID):
        return f"guid'{value}'"
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return f"datetime'{value.replace(tzinfo=None, microsecond=0).isoformat()}'"
    if isinstance(value, date):
        return f"datetime'{value.isoformat()}T00:00:00'"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Expression:
    """Base class of expression nodes."""

    def call(self, method: str, *args: Any) -> "MethodCall":
        """Apply an OData function with this node as its target."""
        return MethodCall(method, self, tuple(args))

    def tolower(self) -> "MethodCall":
        return self.call("tolower")

    def toupper(self) -> "MethodCall":
        return self.call("toupper")

    def trim(self) -> "MethodCall":
        return self.call("trim")

    def length(self) -> "MethodCall":
        return self.call("length")

    def startswith(self, prefix: str) -> "MethodCall":
        return self.call("startswith", prefix)

    def endswith(self, suffix: str) -> "MethodCall":
        return self.call("endswith", suffix)

    def substring(self, start: int, length: Union[int, None] = None) -> "MethodCall":
        if length is None:
            return self.call("substring", start)
        return self.call("substring", start, length)


@dataclass(frozen=True)
class Field(Expression):
    """Reference to a property of the entity."""
    name: str


@dataclass(frozen=True)
class Constant(Expression):
    """Literal value used as a method argument."""
    value: Any


@dataclass(frozen=True)
class MethodCall(Expression):
    """``method(target, *args)``; the method name is lowercased on output."""
    method: str
    target: Expression
    args: Tuple[Any, ...] = ()


def translate(expr: Any) -> str:
    """
    Translate an expression node to OData syntax.

    Raises
    ------
    UnsupportedExpressionError
        If ``expr`` is not a Field or a MethodCall
    """
    if isinstance(expr, Field):
        return expr.name
    if isinstance(expr, MethodCall):
        parts = [translate(expr.target)]
        parts.extend(_argument(a) for a in expr.args)
        return f"{expr.method.lower()}({','.join(parts)})"
    raise UnsupportedExpressionError(
        f"Invalid expression '{expr!r}' ({type(expr).__name__}): expression should "
        "resolve a property, with optional method calls."
    )


def _argument(arg: Any) -> str:
    if isinstance(arg, Constant):
        return format_literal(arg.value)
    if isinstance(arg, Expression):
        return translate(arg)
    return format_literal(arg)


def field_name(value: Union[str, Expression]) -> str:
    """Raw strings pass through; expression nodes are translated."""
    if isinstance(value, str):
        return value
    return translate(value)


def comparison(
    target: Union[str, Expression],
    value: Any,
    operator: Union[Operator, str] = Operator.EQ,
) -> str:
    """
    Build ``<target> <op> <literal>``.

    Examples
    --------
    >>> comparison("Name", "Acme")
    "Name eq 'Acme'"
    """
    try:
        op = Operator(operator.lower() if isinstance(operator, str) else operator)
    except ValueError as exc:
        raise ExactValidationError(f"Unknown comparison operator: {operator!r}") from exc
    return f"{field_name(target)} {op.value} {format_literal(value)}"
