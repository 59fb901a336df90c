"""
Abstract interface for feasibility oracles.
"""
from typing import Protocol, Any, Optional, Dict, Sequence

from ..ir.expr import Expr
from .result import Feasibility


class FeasibilityOracle(Protocol):
    """Protocol defining the interface the decomposer reasons through.

    This allows pluggable oracle implementations (Z3, an external prover,
    a test double) while keeping the decomposer solver-agnostic. Every
    query must terminate; an oracle that cannot decide returns UNKNOWN.
    """

    def is_satisfiable(self, constraints: Sequence[Expr]) -> Feasibility:
        """Decide satisfiability of the conjunction of ``constraints``.

        Args:
            constraints: Boolean expressions, possibly containing opaque calls

        Returns:
            FEASIBLE, INFEASIBLE or UNKNOWN
        """
        ...

    def evaluate_equal_under(self, side_condition: Optional[Expr],
                             a: Expr, b: Expr) -> bool:
        """Return True if ``a`` and ``b`` are provably equal assuming the side-condition."""
        ...

    def is_entailed(self, side_condition: Optional[Expr], constraint: Expr) -> bool:
        """Return True if the side-condition provably implies ``constraint``."""
        ...

    def get_model(self, constraints: Sequence[Expr]) -> Optional[Dict[str, Any]]:
        """Get variable assignments satisfying ``constraints``.

        Returns:
            Dictionary mapping variable names to values, or None if no
            model could be found
        """
        ...

    def fork(self) -> "FeasibilityOracle":
        """Return an independent oracle that may be used from another thread."""
        ...
