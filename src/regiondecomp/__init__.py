"""
Region decomposition for finite-branching decision functions.

This package partitions the input domain of a decision function into
symbolic regions, each carrying its path constraints and the value the
function computes there, using an SMT solver to decide feasibility.
"""

__version__ = "0.1.0"

from .errors import (
    DecompositionError,
    MalformedFunction,
    InvalidSideCondition,
    InvalidOptions,
    RegionLimitExceeded,
    ExpressionSyntaxError,
    EvaluationError,
)
from .ir import (
    Expr,
    Literal,
    Variable,
    Conditional,
    Call,
    Sort,
    Param,
    FunctionDef,
    FunctionKind,
    parse_expr,
    parse_function,
    format_expr,
    evaluate,
)
from .solver import (
    FeasibilityOracle,
    Feasibility,
    SolverResult,
    Z3Solver,
    Z3Oracle,
)
from .decomp import (
    DecompositionOptions,
    Region,
    RegionDecomposer,
    format_region,
    describe_regions,
)
from .analysis import region_probabilities, uniform_sampler
from .api import decompose, refine

__all__ = [
    "DecompositionError",
    "MalformedFunction",
    "InvalidSideCondition",
    "InvalidOptions",
    "RegionLimitExceeded",
    "ExpressionSyntaxError",
    "EvaluationError",
    "Expr",
    "Literal",
    "Variable",
    "Conditional",
    "Call",
    "Sort",
    "Param",
    "FunctionDef",
    "FunctionKind",
    "parse_expr",
    "parse_function",
    "format_expr",
    "evaluate",
    "FeasibilityOracle",
    "Feasibility",
    "SolverResult",
    "Z3Solver",
    "Z3Oracle",
    "DecompositionOptions",
    "Region",
    "RegionDecomposer",
    "format_region",
    "describe_regions",
    "region_probabilities",
    "uniform_sampler",
    "decompose",
    "refine",
]
