"""
Solver and feasibility result types.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any


class SolverResult(Enum):
    """Result from SMT solver check."""
    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"


class Feasibility(Enum):
    """Whether a region's path condition is satisfiable."""
    FEASIBLE = "feasible"
    INFEASIBLE = "infeasible"
    UNKNOWN = "unknown"

    @classmethod
    def from_solver_result(cls, result: SolverResult) -> "Feasibility":
        return {
            SolverResult.SAT: cls.FEASIBLE,
            SolverResult.UNSAT: cls.INFEASIBLE,
        }.get(result, cls.UNKNOWN)


@dataclass
class CheckResult:
    """Result of a satisfiability check.

    Attributes:
        result: Raw solver result (SAT/UNSAT/UNKNOWN)
        model: Variable assignments when satisfiable
        solver_time_ms: Time taken by solver in milliseconds
        solver_name: Name of the solver backend used
        reason: Solver's explanation for an UNKNOWN result
    """
    result: SolverResult = SolverResult.UNKNOWN
    model: Optional[Dict[str, Any]] = None
    solver_time_ms: float = 0.0
    solver_name: str = "unknown"
    reason: Optional[str] = None

    @property
    def feasibility(self) -> Feasibility:
        return Feasibility.from_solver_result(self.result)

    def __str__(self) -> str:
        if self.result == SolverResult.SAT:
            model_str = ", ".join(f"{k}={v}" for k, v in (self.model or {}).items())
            return f"sat: {model_str} ({self.solver_name}, {self.solver_time_ms:.2f}ms)"
        elif self.result == SolverResult.UNSAT:
            return f"unsat ({self.solver_name}, {self.solver_time_ms:.2f}ms)"
        else:
            return f"unknown: {self.reason} ({self.solver_name}, {self.solver_time_ms:.2f}ms)"
