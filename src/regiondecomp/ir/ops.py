"""
Structural operations on expressions: substitution, negation, boolean
connectives, constant folding and sort inference.
"""
from typing import Dict, FrozenSet, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from ..errors import EvaluationError
from .evaluator import apply_primitive
from .expr import (
    ARITHMETIC_OPS,
    BOOLEAN_OPS,
    COMPARISON_OPS,
    FALSE,
    TRUE,
    Call,
    Conditional,
    Definitions,
    Expr,
    Literal,
    Sort,
    Variable,
)

_COMPARISON_NEGATION: Dict[str, str] = {
    "<": ">=",
    "<=": ">",
    ">": "<=",
    ">=": "<",
    "=": "<>",
    "<>": "=",
}


def substitute(expr: Expr, mapping: Mapping[str, Expr]) -> Expr:
    """Replace variables by expressions, simultaneously."""
    if not mapping:
        return expr
    if isinstance(expr, Variable):
        return mapping.get(expr.name, expr)
    if isinstance(expr, Conditional):
        return Conditional(
            substitute(expr.test, mapping),
            substitute(expr.then_branch, mapping),
            substitute(expr.else_branch, mapping),
        )
    if isinstance(expr, Call):
        return Call(expr.function_name, tuple(substitute(a, mapping) for a in expr.arguments))
    return expr


def negate(constraint: Expr) -> Expr:
    """Logical negation, flipping comparisons instead of wrapping them.

    ``not (x > 0)`` becomes ``x <= 0``; double negations cancel.
    """
    if isinstance(constraint, Literal) and constraint.sort is Sort.BOOL:
        return FALSE if constraint.value else TRUE
    if isinstance(constraint, Call):
        name = constraint.function_name
        if name == "not":
            return constraint.arguments[0]
        if name in _COMPARISON_NEGATION and len(constraint.arguments) == 2:
            return Call(_COMPARISON_NEGATION[name], constraint.arguments)
    return Call("not", (constraint,))


def conjoin(constraints: Iterable[Expr]) -> Expr:
    """Conjunction of ``constraints``; ``true`` when empty."""
    items = [c for c in constraints if c != TRUE]
    if any(c == FALSE for c in items):
        return FALSE
    if not items:
        return TRUE
    if len(items) == 1:
        return items[0]
    return Call("and", tuple(items))


def disjoin(constraints: Iterable[Expr]) -> Expr:
    """Disjunction of ``constraints``; ``false`` when empty."""
    items = [c for c in constraints if c != FALSE]
    if any(c == TRUE for c in items):
        return TRUE
    if not items:
        return FALSE
    if len(items) == 1:
        return items[0]
    return Call("or", tuple(items))


def conjuncts(expr: Expr) -> Tuple[Expr, ...]:
    """Split a (possibly nested) conjunction into its members."""
    if isinstance(expr, Call) and expr.function_name == "and":
        out: List[Expr] = []
        for a in expr.arguments:
            out.extend(conjuncts(a))
        return tuple(out)
    if expr == TRUE:
        return ()
    return (expr,)


def is_literal_bool(expr: Expr, value: bool) -> bool:
    return isinstance(expr, Literal) and expr.sort is Sort.BOOL and expr.value is value


def fold_constants(expr: Expr) -> Expr:
    """Evaluate primitive calls whose arguments are all literals.

    Also picks the branch of a conditional with a literal test and applies
    the unit laws of ``and``/``or``.
    """
    if isinstance(expr, Conditional):
        test = fold_constants(expr.test)
        if is_literal_bool(test, True):
            return fold_constants(expr.then_branch)
        if is_literal_bool(test, False):
            return fold_constants(expr.else_branch)
        return Conditional(test, fold_constants(expr.then_branch), fold_constants(expr.else_branch))
    if not isinstance(expr, Call):
        return expr

    args = tuple(fold_constants(a) for a in expr.arguments)
    name = expr.function_name
    if name == "and":
        return conjoin(args)
    if name == "or":
        return disjoin(args)
    if name == "not" and len(args) == 1 and isinstance(args[0], Literal):
        return negate(args[0])
    if expr.is_primitive and args and all(isinstance(a, Literal) for a in args):
        try:
            value = apply_primitive(name, [a.value for a in args])
        except EvaluationError:
            # Division by zero and friends stay symbolic
            return Call(name, args)
        return Literal(value)
    return Call(name, args)


def iter_subexprs(expr: Expr) -> Iterator[Expr]:
    """Pre-order iteration over ``expr`` and all of its sub-expressions."""
    yield expr
    if isinstance(expr, Conditional):
        yield from iter_subexprs(expr.test)
        yield from iter_subexprs(expr.then_branch)
        yield from iter_subexprs(expr.else_branch)
    elif isinstance(expr, Call):
        for a in expr.arguments:
            yield from iter_subexprs(a)


def called_functions(expr: Expr) -> FrozenSet[str]:
    """Names of the user (non-primitive) functions called in ``expr``."""
    return frozenset(
        e.function_name for e in iter_subexprs(expr)
        if isinstance(e, Call) and not e.is_primitive
    )


def free_variables(expr: Expr) -> FrozenSet[str]:
    return frozenset(e.name for e in iter_subexprs(expr) if isinstance(e, Variable))


def infer_sort(expr: Expr,
               scope: Mapping[str, Sort],
               definitions: Optional[Definitions] = None,
               _seen: Optional[Set[str]] = None) -> Sort:
    """Infer the sort of ``expr``.

    Args:
        expr: Expression to inspect
        scope: Sorts of the variables in scope (unknown variables are Int)
        definitions: Function definitions, consulted for user calls

    Returns:
        The inferred sort
    """
    definitions = definitions or {}
    if isinstance(expr, Literal):
        return expr.sort
    if isinstance(expr, Variable):
        return scope.get(expr.name, Sort.INT)
    if isinstance(expr, Conditional):
        then_sort = infer_sort(expr.then_branch, scope, definitions, _seen)
        else_sort = infer_sort(expr.else_branch, scope, definitions, _seen)
        return _join_sorts(then_sort, else_sort)
    if isinstance(expr, Call):
        name = expr.function_name
        if name in COMPARISON_OPS or name in BOOLEAN_OPS:
            return Sort.BOOL
        if name in ARITHMETIC_OPS:
            sorts = [infer_sort(a, scope, definitions, _seen) for a in expr.arguments]
            return Sort.REAL if Sort.REAL in sorts else Sort.INT
        fn = definitions.get(name)
        if fn is None:
            return Sort.INT
        if fn.returns is not None:
            return fn.returns
        seen = set(_seen or ())
        if fn.body is None or name in seen:
            return Sort.INT
        seen.add(name)
        return infer_sort(fn.body, fn.scope, definitions, seen)
    raise TypeError(f"Not an expression: {expr!r}")


def _join_sorts(a: Sort, b: Sort) -> Sort:
    if a == b:
        return a
    if {a, b} == {Sort.INT, Sort.REAL}:
        return Sort.REAL
    return a
