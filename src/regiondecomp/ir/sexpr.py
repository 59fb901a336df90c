"""
S-expression reader for expressions and function definitions.

Syntax::

    expr     := INT | DECIMAL | true | false | SYMBOL
              | (if expr expr expr)
              | (SYMBOL expr*)
    define   := (define SYMBOL (param*) option* [expr])
    param    := SYMBOL | (SYMBOL SORT)
    option   := :opaque | :returns SORT

Examples::

    >>> parse_expr("(if (> x 0) 1 -1)")
    >>> parse_function("(define f ((x Int) (y Int)) (+ x y))")
    >>> parse_function("(define g ((x Int)) :returns Int :opaque)")
"""
import math
import re
from fractions import Fraction
from typing import Any, List, Union

import sexpdata

from ..errors import ExpressionSyntaxError
from .expr import (
    Call,
    Conditional,
    Expr,
    FunctionDef,
    FunctionKind,
    Literal,
    Param,
    Sort,
    Variable,
)

_RATIO_RE = re.compile(r"-?\d+/\d+")

SExpr = Union[str, int, float, bool, List["SExpr"]]


def read_sexpr(text: str) -> SExpr:
    """Read exactly one S-expression from ``text``.

    Symbols come back as ``str``, numbers and ``true``/``false`` as Python
    values, lists as lists.
    """
    try:
        forms = sexpdata.parse(text, nil=None, true="true", false="false")
    except Exception as e:
        raise ExpressionSyntaxError(f"Failed to parse S-expression: {e}") from e
    if not forms:
        raise ExpressionSyntaxError("Empty expression")
    if len(forms) > 1:
        raise ExpressionSyntaxError(
            f"Trailing input after expression: {sexpdata.dumps(forms[1:])}")
    return _normalise(forms[0])


def _normalise(obj: Any) -> SExpr:
    if isinstance(obj, list):
        return [_normalise(x) for x in obj]
    if isinstance(obj, sexpdata.Symbol):
        return str(obj)
    if isinstance(obj, (bool, int, float)):
        return obj
    if isinstance(obj, str):
        raise ExpressionSyntaxError(f"String literals are not supported: {obj!r}")
    raise ExpressionSyntaxError(f"Unsupported S-expression form: {sexpdata.dumps(obj)}")


def parse_expr(text: str) -> Expr:
    """Parse an expression from S-expression text."""
    return to_expr(read_sexpr(text))


def to_expr(sexpr: SExpr) -> Expr:
    if not isinstance(sexpr, list):
        return _atom(sexpr)
    if not sexpr:
        raise ExpressionSyntaxError("Empty application '()'")
    head = sexpr[0]
    if not isinstance(head, str):
        raise ExpressionSyntaxError(f"Function position must be a symbol: {head!r}")
    if head == "if":
        if len(sexpr) != 4:
            raise ExpressionSyntaxError("'if' takes exactly three arguments")
        return Conditional(to_expr(sexpr[1]), to_expr(sexpr[2]), to_expr(sexpr[3]))
    if head == "define":
        raise ExpressionSyntaxError("'define' is not an expression; use parse_function")
    return Call(head, tuple(to_expr(a) for a in sexpr[1:]))


def _atom(value) -> Expr:
    if isinstance(value, bool):
        return Literal(value)
    if isinstance(value, int):
        return Literal(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ExpressionSyntaxError(f"Not a finite number: {value}")
        return Literal(Fraction(repr(value)))
    if _RATIO_RE.fullmatch(value):
        return Literal(Fraction(value))
    if value.startswith(":"):
        raise ExpressionSyntaxError(f"Unexpected keyword: {value}")
    return Variable(value)


def parse_function(text: str) -> FunctionDef:
    """Parse a ``(define ...)`` form into a FunctionDef."""
    sexpr = read_sexpr(text)
    if not isinstance(sexpr, list) or len(sexpr) < 3 or sexpr[0] != "define":
        raise ExpressionSyntaxError("Expected (define NAME (PARAMS...) [OPTIONS...] BODY)")
    name = sexpr[1]
    if not isinstance(name, str):
        raise ExpressionSyntaxError("Function name must be a symbol")
    if not isinstance(sexpr[2], list):
        raise ExpressionSyntaxError(f"Parameter list of '{name}' must be a list")
    params = tuple(_param(p) for p in sexpr[2])

    kind = FunctionKind.ANALYZABLE
    returns = None
    body = None
    rest = sexpr[3:]
    i = 0
    while i < len(rest):
        item = rest[i]
        if item == ":opaque":
            kind = FunctionKind.OPAQUE
        elif item == ":returns":
            if i + 1 >= len(rest) or not isinstance(rest[i + 1], str):
                raise ExpressionSyntaxError(":returns needs a sort")
            returns = _sort(rest[i + 1])
            i += 1
        elif body is None:
            body = to_expr(item)
        else:
            raise ExpressionSyntaxError(f"Function '{name}' has more than one body")
        i += 1

    if body is None and kind is FunctionKind.ANALYZABLE:
        raise ExpressionSyntaxError(f"Function '{name}' has no body")
    return FunctionDef(name=name, params=params, body=body, returns=returns, kind=kind)


def _param(sexpr: SExpr) -> Param:
    if isinstance(sexpr, str):
        return Param(sexpr)
    if isinstance(sexpr, list) and len(sexpr) == 2 and all(isinstance(s, str) for s in sexpr):
        return Param(sexpr[0], _sort(sexpr[1]))
    raise ExpressionSyntaxError(f"Bad parameter: {sexpr!r}")


def _sort(name: str) -> Sort:
    try:
        return Sort.parse(name)
    except ValueError as e:
        raise ExpressionSyntaxError(str(e)) from e
