"""
Main decomposition API.

Provides high-level functions for decomposing a function into regions and
for refining the regions afterwards.
"""
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from .decomp.decomposer import RegionDecomposer
from .decomp.options import DecompositionOptions
from .decomp.region import Region, refine as _refine
from .ir.expr import Expr, FunctionDef
from .ir.sexpr import parse_expr, parse_function
from .solver.base import FeasibilityOracle

FunctionLike = Union[FunctionDef, str]


def decompose(function: FunctionLike,
              options: Optional[DecompositionOptions] = None,
              *,
              definitions: Union[None, Mapping[str, FunctionLike], Iterable[FunctionLike]] = None,
              oracle: Optional[FeasibilityOracle] = None,
              **flags: Any) -> List[Region]:
    """Partition a function's input domain into regions.

    Args:
        function: FunctionDef, or ``(define ...)`` text
        options: Decomposition settings (defaults to DecompositionOptions())
        definitions: Other functions the body may call, as FunctionDefs or
            ``(define ...)`` texts
        oracle: Feasibility oracle (defaults to Z3)
        **flags: Individual option overrides, e.g. ``compound=True``

    Returns:
        Regions in depth-first discovery order

    Raises:
        MalformedFunction: Unguarded recursion outside the basis
        InvalidSideCondition: Side-condition signature mismatch
        InvalidOptions: Unusable option combination

    Example:
        >>> regions = decompose("(define f ((x Int)) (if (> x 0) 1 -1))")
        >>> [str(r.invariant) for r in regions]
        ['1', '-1']
    """
    target = _as_function(function)
    options = options or DecompositionOptions()
    if flags:
        options = options.with_changes(**flags)
    decomposer = RegionDecomposer(
        target,
        options,
        definitions=_as_definitions(definitions),
        oracle=oracle,
    )
    return decomposer.decompose()


def refine(region: Region,
           extra_constraints: Iterable[Union[Expr, str]],
           oracle: Optional[FeasibilityOracle] = None) -> Optional[Region]:
    """Add constraints to a region's path condition.

    Args:
        region: Region to refine; it is not modified
        extra_constraints: Expressions or S-expression texts
        oracle: Oracle to use instead of the region's own

    Returns:
        A new Region, or None if the refined region is infeasible
    """
    extra = [parse_expr(c) if isinstance(c, str) else c for c in extra_constraints]
    return _refine(region, extra, oracle)


def _as_function(function: FunctionLike) -> FunctionDef:
    if isinstance(function, FunctionDef):
        return function
    if isinstance(function, str):
        return parse_function(function)
    raise TypeError(f"Expected FunctionDef or (define ...) text, got {type(function).__name__}")


def _as_definitions(definitions) -> Dict[str, FunctionDef]:
    if definitions is None:
        return {}
    items = definitions.values() if isinstance(definitions, Mapping) else definitions
    functions = [_as_function(fn) for fn in items]
    return {fn.name: fn for fn in functions}
