"""
Feasibility oracle backed by Z3.
"""
import logging
import threading
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple

import z3

from ..ir.expr import Call, Expr, FunctionDef, Sort
from ..ir.ops import is_literal_bool, negate
from ..translator import ExprTranslator, TranslationContext
from .result import CheckResult, Feasibility, SolverResult
from .z3_solver import Z3Solver

logger = logging.getLogger(__name__)


class Z3Oracle:
    """Decides region feasibility by translating constraints to Z3.

    Results are memoized per constraint list. Queries on one oracle are
    serialized, since its Z3 context is not thread-safe; use ``fork`` to
    obtain an independent oracle that checks in parallel.
    """

    def __init__(self,
                 context: TranslationContext,
                 timeout_ms: Optional[int] = None,
                 lemmas: Iterable[FunctionDef] = ()):
        """Initialize the oracle.

        Args:
            context: Translation context (variable sorts, definitions, modes)
            timeout_ms: Per-query solver timeout
            lemmas: Boolean facts, universally quantified over their
                parameters, assumed when ``context.aggressive_rec`` is set
        """
        self.context = context
        self.timeout_ms = timeout_ms
        self.lemmas: Tuple[FunctionDef, ...] = tuple(lemmas)
        self.translator = ExprTranslator()
        self._solver: Optional[Z3Solver] = None
        self._cache: Dict[Tuple[Expr, ...], CheckResult] = {}
        self._lock = threading.Lock()

    def check(self, constraints: Sequence[Expr]) -> CheckResult:
        """Run a satisfiability check on the conjunction of ``constraints``."""
        with self._lock:
            return self._check(tuple(constraints))

    def _check(self, key: Tuple[Expr, ...]) -> CheckResult:
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        if any(is_literal_bool(c, False) for c in key):
            result = CheckResult(result=SolverResult.UNSAT, solver_name="z3")
        else:
            try:
                result = self._solve(key)
            except z3.Z3Exception as e:
                logger.warning("z3 failed on %d constraint(s): %s", len(key), e)
                result = CheckResult(result=SolverResult.UNKNOWN, solver_name="z3", reason=str(e))
        logger.debug("check %d constraint(s): %s", len(key), result.result.value)
        self._cache[key] = result
        return result

    def is_satisfiable(self, constraints: Sequence[Expr]) -> Feasibility:
        return self.check(constraints).feasibility

    def evaluate_equal_under(self, side_condition: Optional[Expr],
                             a: Expr, b: Expr) -> bool:
        if a == b:
            return True
        query = [Call("<>", (a, b))]
        if side_condition is not None:
            query.insert(0, side_condition)
        return self.check(query).result == SolverResult.UNSAT

    def is_entailed(self, side_condition: Optional[Expr], constraint: Expr) -> bool:
        query = [negate(constraint)]
        if side_condition is not None:
            query.insert(0, side_condition)
        return self.check(query).result == SolverResult.UNSAT

    def get_model(self, constraints: Sequence[Expr]) -> Optional[Dict[str, Any]]:
        result = self.check(constraints)
        if result.result != SolverResult.SAT:
            return None
        return dict(result.model or {})

    def fork(self) -> "Z3Oracle":
        return Z3Oracle(self.context.fork(), timeout_ms=self.timeout_ms, lemmas=self.lemmas)

    def _solve(self, key: Tuple[Expr, ...]) -> CheckResult:
        # Each query runs in its own scope on top of the shared base solver
        solver = self._base_solver()
        solver.push()
        try:
            for c in key:
                if not is_literal_bool(c, True):
                    solver.add_constraint(
                        self.translator.translate(c, self.context, expected=Sort.BOOL))
            return solver.check_sat()
        finally:
            solver.pop()

    def _base_solver(self) -> Z3Solver:
        if self._solver is None:
            self._solver = self._new_solver()
        return self._solver

    def _new_solver(self) -> Z3Solver:
        solver = Z3Solver(ctx=self.context.z3_ctx, timeout_ms=self.timeout_ms)
        for name in self.context.scope:
            solver.register_variable(name, self.context.get_variable(name))
        if self.context.aggressive_rec:
            for lemma in self.lemmas:
                solver.add_constraint(self._lemma_term(lemma))
        return solver

    def _lemma_term(self, lemma: FunctionDef) -> Any:
        bound = [
            z3.Const(f"{lemma.name}!{p.name}", self.context.z3_sort(p.sort))
            for p in lemma.params
        ]
        body = self.translator.translate(
            lemma.body, self.context, dict(zip(lemma.param_names, bound)), Sort.BOOL)
        return z3.ForAll(bound, body) if bound else body
