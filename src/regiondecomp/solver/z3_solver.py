"""
Z3 SMT solver backend implementation.
"""
import logging
import time
from fractions import Fraction
from typing import Any, Optional, Dict, Iterable

import z3

from .result import CheckResult, SolverResult

logger = logging.getLogger(__name__)


class Z3Solver:
    """Z3 solver backend wrapper.

    Provides a clean interface to Z3 solver functionality. Each wrapper may
    be bound to its own ``z3.Context`` so that independent solvers can be
    driven from different threads.
    """

    def __init__(self, ctx: Optional[z3.Context] = None, timeout_ms: Optional[int] = None):
        """Initialize Z3 solver instance.

        Args:
            ctx: Z3 context (defaults to the global context)
            timeout_ms: Per-check timeout; an expired check reports UNKNOWN
        """
        self.ctx = ctx
        self.solver = z3.Solver(ctx=ctx)
        if timeout_ms:
            self.solver.set("timeout", int(timeout_ms))
        self._variables: Dict[str, Any] = {}
        self._last: Optional[z3.CheckSatResult] = None

    def add_constraint(self, constraint: Any) -> None:
        """Add a Z3 constraint to the solver.

        Args:
            constraint: Z3 boolean expression
        """
        self.solver.add(constraint)
        self._last = None

    def check_sat(self) -> CheckResult:
        """Check satisfiability of constraints.

        Returns:
            CheckResult with status and, when satisfiable, a model
        """
        start_time = time.time()
        result = self.solver.check()
        elapsed_ms = (time.time() - start_time) * 1000
        self._last = result

        if result == z3.sat:
            return CheckResult(
                result=SolverResult.SAT,
                model=self.get_model(complete_for=list(self._variables)),
                solver_time_ms=elapsed_ms,
                solver_name="z3",
            )
        elif result == z3.unsat:
            return CheckResult(
                result=SolverResult.UNSAT,
                solver_time_ms=elapsed_ms,
                solver_name="z3",
            )
        else:
            reason = self.solver.reason_unknown()
            logger.debug("z3 returned unknown: %s", reason)
            return CheckResult(
                result=SolverResult.UNKNOWN,
                solver_time_ms=elapsed_ms,
                solver_name="z3",
                reason=reason,
            )

    def get_model(self, complete_for: Iterable[str] = ()) -> Optional[Dict[str, Any]]:
        """Extract model from the last satisfiable check.

        Args:
            complete_for: Registered variable names to include even when
                the model leaves them unconstrained

        Returns:
            Dictionary mapping variable names to their values
        """
        if self._last is None:
            self._last = self.solver.check()
        if self._last != z3.sat:
            return None

        model = self.solver.model()
        result = {}

        for decl in model.decls():
            if decl.arity() > 0:
                # Interpretations of uninterpreted functions are not inputs
                continue
            result[decl.name()] = to_python_value(model[decl])

        for name in complete_for:
            var = self._variables.get(name)
            if name not in result and var is not None:
                result[name] = to_python_value(model.eval(var, model_completion=True))

        return result

    def push(self) -> None:
        """Push a new assertion scope."""
        self.solver.push()

    def pop(self) -> None:
        """Pop the most recent assertion scope."""
        self.solver.pop()
        self._last = None

    def register_variable(self, name: str, var: Any) -> None:
        """Register a Z3 variable for later reference.

        Args:
            name: Variable name
            var: Z3 variable object
        """
        self._variables[name] = var


def to_python_value(value: Any) -> Any:
    """Convert a Z3 value to the matching Python type."""
    if z3.is_int_value(value):
        return value.as_long()
    elif z3.is_rational_value(value):
        return Fraction(value.numerator_as_long(), value.denominator_as_long())
    elif z3.is_bv_value(value):
        return value.as_long()
    elif z3.is_true(value):
        return True
    elif z3.is_false(value):
        return False
    else:
        return str(value)
