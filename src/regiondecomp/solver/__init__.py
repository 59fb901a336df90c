"""Solver abstraction layer for feasibility checking."""

from .base import FeasibilityOracle
from .result import CheckResult, Feasibility, SolverResult
from .z3_solver import Z3Solver
from .z3_oracle import Z3Oracle

__all__ = [
    "FeasibilityOracle",
    "CheckResult",
    "Feasibility",
    "SolverResult",
    "Z3Solver",
    "Z3Oracle",
]
