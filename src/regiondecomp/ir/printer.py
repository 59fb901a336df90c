"""
Infix rendering of expressions.
"""
from fractions import Fraction

from .expr import Call, Conditional, Expr, Literal, Variable

# Binding strength; higher binds tighter
_PRECEDENCE = {
    "=>": 1,
    "or": 2,
    "and": 3,
    "not": 4,
    "<": 5, "<=": 5, ">": 5, ">=": 5, "=": 5, "<>": 5,
    "+": 6, "-": 6,
    "*": 7, "/": 7, "div": 7, "mod": 7,
}
_SYMBOL = {"and": "&&", "or": "||", "=>": "==>"}
_ASSOCIATIVE = frozenset(["and", "or", "+", "*"])
_ATOM = 100


def format_expr(expr: Expr) -> str:
    text, _ = _fmt(expr)
    return text


def _fmt(expr: Expr):
    if isinstance(expr, Literal):
        return _literal(expr.value), _ATOM
    if isinstance(expr, Variable):
        return expr.name, _ATOM
    if isinstance(expr, Conditional):
        text = (f"if {format_expr(expr.test)} then {format_expr(expr.then_branch)}"
                f" else {format_expr(expr.else_branch)}")
        return text, 0
    if isinstance(expr, Call):
        return _call(expr)
    return repr(expr), _ATOM


def _literal(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Fraction):
        return str(value) if value.denominator != 1 else f"{value.numerator}.0"
    return str(value)


def _call(expr: Call):
    name = expr.function_name
    args = expr.arguments
    prec = _PRECEDENCE.get(name)

    if name == "not" and len(args) == 1:
        inner, inner_prec = _fmt(args[0])
        if inner_prec < _ATOM:
            inner = f"({inner})"
        return f"not {inner}", prec
    if name == "-" and len(args) == 1:
        inner, inner_prec = _fmt(args[0])
        if inner_prec < _ATOM:
            inner = f"({inner})"
        return f"-{inner}", _ATOM - 1
    if prec is not None and len(args) >= 2:
        parts = []
        for i, a in enumerate(args):
            text, child_prec = _fmt(a)
            same_assoc = (isinstance(a, Call) and a.function_name == name
                          and name in _ASSOCIATIVE)
            if child_prec < prec or (child_prec == prec and i > 0 and not same_assoc):
                text = f"({text})"
            parts.append(text)
        return f" {_SYMBOL.get(name, name)} ".join(parts), prec

    return f"{name}({', '.join(format_expr(a) for a in args)})", _ATOM
