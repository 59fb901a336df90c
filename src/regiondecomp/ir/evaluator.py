"""
Concrete evaluation of expressions.

Integer division and modulus follow SMT-LIB semantics (the remainder is
never negative), so that a concrete evaluation agrees with the solver on
which region an input falls in.
"""
from fractions import Fraction
from typing import Any, Callable, Dict, Mapping, Optional

from ..errors import EvaluationError
from .expr import Call, Conditional, Definitions, Expr, Literal, Variable


def _int_div(a, b):
    if b == 0:
        raise EvaluationError("Division by zero")
    if isinstance(a, int) and isinstance(b, int):
        return a // b if b > 0 else -(a // -b)
    return Fraction(a) / Fraction(b)


def _int_mod(a, b):
    if b == 0:
        raise EvaluationError("Modulus by zero")
    return a - b * _int_div(a, b)


def _minus(*args):
    if len(args) == 1:
        return -args[0]
    result = args[0]
    for a in args[1:]:
        result -= a
    return result


def _plus(*args):
    result = 0
    for a in args:
        result += a
    return result


def _times(*args):
    result = 1
    for a in args:
        result *= a
    return result


_PRIMITIVE_IMPLS: Dict[str, Callable[..., Any]] = {
    "+": _plus,
    "-": _minus,
    "*": _times,
    "/": _int_div,
    "div": _int_div,
    "mod": _int_mod,
    "abs": abs,
    "<": lambda a, b: a < b,
    "<=": lambda a, b: a <= b,
    ">": lambda a, b: a > b,
    ">=": lambda a, b: a >= b,
    "=": lambda a, b: a == b,
    "<>": lambda a, b: a != b,
    "not": lambda a: not a,
    "=>": lambda a, b: (not a) or b,
}


def apply_primitive(name: str, values) -> Any:
    """Apply primitive ``name`` to already-evaluated arguments."""
    values = list(values)
    if name == "and":
        return all(values)
    if name == "or":
        return any(values)
    try:
        impl = _PRIMITIVE_IMPLS[name]
    except KeyError:
        raise EvaluationError(f"Unknown primitive: {name}")
    try:
        return impl(*values)
    except TypeError as e:
        raise EvaluationError(f"Bad arguments for '{name}': {values!r}") from e


def evaluate(expr: Expr,
             env: Mapping[str, Any],
             definitions: Optional[Definitions] = None,
             max_depth: int = 1000) -> Any:
    """Evaluate ``expr`` on concrete inputs.

    Args:
        expr: Expression to evaluate
        env: Values for the free variables
        definitions: Functions that may be called (evaluated by their body)
        max_depth: Bound on nested user-function calls

    Returns:
        The concrete value (bool, int or Fraction)

    Raises:
        EvaluationError: If a variable is unbound, a function is opaque or
            undefined, or the call depth bound is exceeded
    """
    return _Evaluator(definitions or {}, max_depth).eval(expr, env, 0)


class _Evaluator:

    def __init__(self, definitions: Definitions, max_depth: int):
        self.definitions = definitions
        self.max_depth = max_depth

    def eval(self, expr: Expr, env: Mapping[str, Any], depth: int) -> Any:
        if isinstance(expr, Literal):
            return expr.value
        elif isinstance(expr, Variable):
            if expr.name not in env:
                raise EvaluationError(f"Unbound variable: {expr.name}")
            return env[expr.name]
        elif isinstance(expr, Conditional):
            if self.eval(expr.test, env, depth):
                return self.eval(expr.then_branch, env, depth)
            return self.eval(expr.else_branch, env, depth)
        elif isinstance(expr, Call):
            return self.eval_call(expr, env, depth)
        raise EvaluationError(f"Unsupported expression: {expr!r}")

    def eval_call(self, expr: Call, env: Mapping[str, Any], depth: int) -> Any:
        name = expr.function_name
        # Short-circuit the connectives so guards protect their operands
        if name == "and":
            return all(self.eval(a, env, depth) for a in expr.arguments)
        if name == "or":
            return any(self.eval(a, env, depth) for a in expr.arguments)
        if name == "=>":
            lhs, rhs = expr.arguments
            return (not self.eval(lhs, env, depth)) or bool(self.eval(rhs, env, depth))

        values = [self.eval(a, env, depth) for a in expr.arguments]
        if expr.is_primitive:
            return apply_primitive(name, values)

        fn = self.definitions.get(name)
        if fn is None:
            raise EvaluationError(f"Undefined function: {name}")
        if fn.is_opaque or fn.body is None:
            raise EvaluationError(f"Cannot evaluate opaque function: {name}")
        if depth >= self.max_depth:
            raise EvaluationError(f"Call depth limit reached in '{name}'")
        if len(values) != len(fn.params):
            raise EvaluationError(
                f"Function '{name}' expects {len(fn.params)} arguments, got {len(values)}")
        return self.eval(fn.body, dict(zip(fn.param_names, values)), depth + 1)
