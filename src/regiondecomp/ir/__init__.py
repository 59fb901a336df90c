"""
Expression data model, reader, printer and evaluator.
"""

from .expr import (
    Expr,
    Literal,
    Variable,
    Conditional,
    Call,
    Sort,
    Param,
    FunctionDef,
    FunctionKind,
    Definitions,
    TRUE,
    FALSE,
    PRIMITIVES,
    lit,
    var,
    call,
    ite,
    make_definitions,
)
from .ops import (
    substitute,
    negate,
    conjoin,
    disjoin,
    conjuncts,
    fold_constants,
    called_functions,
    free_variables,
    infer_sort,
)
from .sexpr import parse_expr, parse_function
from .printer import format_expr
from .evaluator import evaluate

__all__ = [
    "Expr",
    "Literal",
    "Variable",
    "Conditional",
    "Call",
    "Sort",
    "Param",
    "FunctionDef",
    "FunctionKind",
    "Definitions",
    "TRUE",
    "FALSE",
    "PRIMITIVES",
    "lit",
    "var",
    "call",
    "ite",
    "make_definitions",
    "substitute",
    "negate",
    "conjoin",
    "disjoin",
    "conjuncts",
    "fold_constants",
    "called_functions",
    "free_variables",
    "infer_sort",
    "parse_expr",
    "parse_function",
    "format_expr",
    "evaluate",
]
