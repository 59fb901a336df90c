"""
Region decomposition of decision functions.

The decomposer walks a function body depth-first, forking at every
conditional (then-branch first) and inlining calls to analyzable
functions. Each leaf of the walk is a candidate region: the accumulated
branch constraints paired with the expression computed along that path.
Candidates are then optionally merged (``compound``), checked for
feasibility against the side-condition (``assuming``/``prune``), and
merged again modulo the side-condition (``reduce_symmetry``).

Calls to basis functions, opaque functions and functions already being
expanded (recursion) are kept as atomic terms.
"""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
import logging
import threading
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from ..analysis.recursion_analyzer import RecursionAnalyzer, recursive_functions
from ..analysis.validation import validate_options, validate_side_condition, validate_target
from ..errors import InvalidSideCondition, RegionLimitExceeded
from ..ir.expr import Call, Conditional, Definitions, Expr, FunctionDef, Literal, Variable
from ..ir.ops import conjoin, conjuncts, disjoin, fold_constants, is_literal_bool, negate
from ..ir.sexpr import parse_function
from ..solver.base import FeasibilityOracle
from ..solver.result import Feasibility
from ..solver.z3_oracle import Z3Oracle
from ..translator import TranslationContext
from .options import DecompositionOptions
from .region import Region

logger = logging.getLogger(__name__)

Path = Tuple[Expr, ...]


@dataclass
class _Candidate:
    index: int
    constraints: Path
    invariant: Expr
    feasibility: Feasibility = Feasibility.UNKNOWN


class RegionDecomposer:
    """Decomposes one function into regions.

    A decomposer is built for a single request and used once.

    Args:
        target: Function to decompose
        options: Decomposition settings
        definitions: Functions that calls in the body may refer to
        side_condition: Resolved side-condition (overrides ``options.assuming``)
        oracle: Feasibility oracle (defaults to a Z3Oracle for the request)
    """

    def __init__(self,
                 target: FunctionDef,
                 options: Optional[DecompositionOptions] = None,
                 definitions: Optional[Definitions] = None,
                 side_condition: Optional[FunctionDef] = None,
                 oracle: Optional[FeasibilityOracle] = None):
        self.target = target
        self.options = options or DecompositionOptions()
        self.definitions: Dict[str, FunctionDef] = dict(definitions or {})
        self.definitions.setdefault(target.name, target)
        if side_condition is None:
            side_condition = resolve_side_condition(self.options.assuming, self.definitions)
        self.side_condition = side_condition
        if side_condition is not None:
            self.definitions.setdefault(side_condition.name, side_condition)
        self.recursive = recursive_functions(self.definitions)
        self.oracle = oracle or self._default_oracle()
        self._candidates = 0

    def _default_oracle(self) -> Z3Oracle:
        context = TranslationContext(
            scope=self.target.scope,
            definitions=self.definitions,
            basis=self.options.basis,
            interpret_basis=self.options.interpret_basis,
            aggressive_rec=self.options.aggressive_rec,
            recursive=self.recursive,
        )
        return Z3Oracle(context, timeout_ms=self.options.timeout_ms, lemmas=self.options.lemmas)

    @property
    def side_expr(self) -> Optional[Expr]:
        if self.side_condition is None:
            return None
        # Parameters coincide with the target's, so the body applies as-is
        return fold_constants(self.side_condition.body)

    def validate(self) -> None:
        """Check the request; raises a DecompositionError subclass on failure."""
        validate_target(self.target)
        validate_options(self.options, self.definitions, self.recursive)
        validate_side_condition(self.target, self.side_condition, self.definitions)
        RecursionAnalyzer(self.definitions, self.options.basis).check(self.target)

    def decompose(self) -> List[Region]:
        """Run the decomposition.

        Returns:
            Regions in discovery order
        """
        self.validate()
        opts = self.options

        candidates = [
            _Candidate(index, path, invariant)
            for index, (path, invariant) in enumerate(self._traverse())
        ]
        logger.debug("'%s': %d leaf path(s)", self.target.name, len(candidates))

        if opts.compound:
            candidates = self._merge_identical(candidates)

        candidates = self._check_feasibility(candidates)

        side = self.side_expr
        drop_infeasible = opts.prune or opts.aggressive_rec or side is not None
        if drop_infeasible:
            kept = [c for c in candidates if c.feasibility is not Feasibility.INFEASIBLE]
            logger.debug("pruned %d infeasible region(s)", len(candidates) - len(kept))
            candidates = kept

        if opts.reduce_symmetry and side is not None:
            candidates = self._reduce_symmetry(candidates, side)

        regions = [
            Region(
                constraints=c.constraints,
                invariant=c.invariant,
                feasibility=c.feasibility,
                index=c.index,
                side_condition=side,
                oracle=self.oracle,
                definitions=self.definitions,
            )
            for c in candidates
        ]
        logger.info("decomposed '%s' into %d region(s)", self.target.name, len(regions))
        return regions

    # -- traversal -------------------------------------------------------

    def _traverse(self) -> Iterator[Tuple[Path, Expr]]:
        self._candidates = 0
        for path, expr in self._explore(self.target.body, (), (self.target.name,)):
            self._candidates += 1
            if self._candidates > self.options.max_regions:
                raise RegionLimitExceeded(self.options.max_regions)
            yield path, fold_constants(expr)

    def _explore(self, expr: Expr, path: Path,
                 stack: Tuple[str, ...]) -> Iterator[Tuple[Path, Expr]]:
        """Yield (path, conditional-free expression) pairs depth-first."""
        if isinstance(expr, (Literal, Variable)):
            yield path, expr
        elif isinstance(expr, Conditional):
            for test_path, test in self._explore(expr.test, path, stack):
                test = fold_constants(test)
                for case in split_test(test, True):
                    yield from self._explore(expr.then_branch, _extend(test_path, case), stack)
                for case in split_test(test, False):
                    yield from self._explore(expr.else_branch, _extend(test_path, case), stack)
        elif isinstance(expr, Call):
            yield from self._explore_call(expr, path, stack)
        else:
            raise TypeError(f"Not an expression: {expr!r}")

    def _explore_call(self, expr: Call, path: Path,
                      stack: Tuple[str, ...]) -> Iterator[Tuple[Path, Expr]]:
        name = expr.function_name
        if name in self.options.basis:
            # Basis calls are atomic, arguments included
            yield path, expr
            return
        fn = self.definitions.get(name)
        inline = (not expr.is_primitive and fn is not None and not fn.is_opaque
                  and name not in stack)
        for arg_path, args in self._explore_all(expr.arguments, path, stack):
            if inline:
                yield from self._explore(fn.apply(args), arg_path, stack + (name,))
            else:
                yield arg_path, fold_constants(Call(name, args))

    def _explore_all(self, exprs: Sequence[Expr], path: Path,
                     stack: Tuple[str, ...]) -> Iterator[Tuple[Path, Tuple[Expr, ...]]]:
        if not exprs:
            yield path, ()
            return
        for head_path, head in self._explore(exprs[0], path, stack):
            for tail_path, tail in self._explore_all(exprs[1:], head_path, stack):
                yield tail_path, (head,) + tail

    # -- merging ---------------------------------------------------------

    def _merge_identical(self, candidates: List[_Candidate]) -> List[_Candidate]:
        groups: Dict[Expr, List[_Candidate]] = {}
        for c in candidates:
            groups.setdefault(c.invariant, []).append(c)
        merged = []
        for members in groups.values():
            first = members[0]
            merged.append(_Candidate(
                index=first.index,
                constraints=merge_paths([m.constraints for m in members]),
                invariant=first.invariant,
            ))
        merged.sort(key=lambda c: c.index)
        logger.debug("compound merge: %d -> %d region(s)", len(candidates), len(merged))
        return merged

    def _reduce_symmetry(self, candidates: List[_Candidate], side: Expr) -> List[_Candidate]:
        groups: List[List[_Candidate]] = []
        for c in candidates:
            for group in groups:
                if self.oracle.evaluate_equal_under(side, group[0].invariant, c.invariant):
                    group.append(c)
                    break
            else:
                groups.append([c])

        reduced = []
        for members in groups:
            path = merge_paths([m.constraints for m in members])
            reduced.append(_Candidate(
                index=members[0].index,
                constraints=self._drop_entailed(path, side),
                invariant=members[0].invariant,
                feasibility=_combined_feasibility(m.feasibility for m in members),
            ))
        logger.debug("symmetry reduction: %d -> %d region(s)", len(candidates), len(reduced))
        return reduced

    def _drop_entailed(self, path: Path, side: Expr) -> Path:
        if not path or self.oracle.is_entailed(side, conjoin(path)):
            return ()
        kept: List[Expr] = []
        for c in path:
            if isinstance(c, Call) and c.function_name == "or":
                disjuncts = []
                for d in c.arguments:
                    rest = [x for x in conjuncts(d) if not self.oracle.is_entailed(side, x)]
                    disjuncts.append(conjoin(rest))
                c = disjoin(disjuncts)
                if is_literal_bool(c, True):
                    continue
            elif self.oracle.is_entailed(side, c):
                continue
            kept.append(c)
        return tuple(kept)

    # -- feasibility -----------------------------------------------------

    def _check_feasibility(self, candidates: List[_Candidate]) -> List[_Candidate]:
        side = self.side_expr

        def query(c: _Candidate) -> List[Expr]:
            items = list(c.constraints)
            if side is not None:
                items.insert(0, side)
            return items

        workers = self.options.workers
        fork = getattr(self.oracle, "fork", None)
        if workers > 1 and len(candidates) > 1 and fork is not None:
            local = threading.local()

            def check(c: _Candidate) -> Tuple[int, Feasibility]:
                oracle = getattr(local, "oracle", None)
                if oracle is None:
                    oracle = local.oracle = fork()
                return c.index, oracle.is_satisfiable(query(c))

            with ThreadPoolExecutor(max_workers=workers) as pool:
                results = dict(pool.map(check, candidates))
            for c in candidates:
                c.feasibility = results[c.index]
        else:
            for c in candidates:
                c.feasibility = self.oracle.is_satisfiable(query(c))

        for c in candidates:
            logger.debug("region %d: %s", c.index, c.feasibility.value)
        candidates.sort(key=lambda c: c.index)
        return candidates


def resolve_side_condition(assuming: Union[None, FunctionDef, str],
                           definitions: Mapping[str, FunctionDef]) -> Optional[FunctionDef]:
    """Turn an ``assuming`` option into a FunctionDef.

    Accepts a FunctionDef, ``(define ...)`` text, or the name of a function
    in ``definitions``.

    Raises:
        InvalidSideCondition: If a name matches no definition
    """
    if assuming is None or isinstance(assuming, FunctionDef):
        return assuming
    text = assuming.strip()
    if text.startswith("("):
        return parse_function(text)
    if text in definitions:
        return definitions[text]
    raise InvalidSideCondition(f"Unknown side-condition function: {assuming}")


def split_test(test: Expr, positive: bool) -> List[Path]:
    """Split a branch test into mutually exclusive constraint lists.

    The disjunction of the returned conjunctions is equivalent to ``test``
    (or to its negation when ``positive`` is False). ``a or b`` splits into
    ``[a]`` and ``[not a, b]``; atomic tests become a single constraint.
    """
    if isinstance(test, Literal) and isinstance(test.value, bool):
        return [()] if test.value == positive else []
    if isinstance(test, Call):
        name, args = test.function_name, test.arguments
        if name == "not" and len(args) == 1:
            return split_test(args[0], not positive)
        if name == "=>" and len(args) == 2:
            return split_test(Call("or", (Call("not", (args[0],)), args[1])), positive)
        if name in ("and", "or") and args:
            # A conjunction holds, or a disjunction fails, on a single product case
            if (name == "and") == positive:
                cases: List[Path] = [()]
                for a in args:
                    cases = [c + s for c in cases for s in split_test(a, positive)]
                return cases
            # Otherwise: the first operand that decides the outcome
            out: List[Path] = []
            prefixes: List[Path] = [()]
            for a in args:
                out.extend(p + s for p in prefixes for s in split_test(a, positive))
                prefixes = [p + s for p in prefixes for s in split_test(a, not positive)]
            return out
    return [(test,) if positive else (negate(test),)]


def _extend(path: Path, case: Path) -> Path:
    out = list(path)
    for c in case:
        if c not in out:
            out.append(c)
    return tuple(out)


def merge_paths(paths: Sequence[Path]) -> Path:
    """Path condition covering the union of ``paths``.

    Constraints shared by every path are kept in front; the remainders are
    joined with a disjunction.
    """
    if len(paths) == 1:
        return paths[0]
    common = [c for c in paths[0] if all(c in p for p in paths[1:])]
    rests = [tuple(c for c in p if c not in common) for p in paths]
    if any(not rest for rest in rests):
        return tuple(common)
    return tuple(common) + (disjoin(conjoin(rest) for rest in rests),)


def _combined_feasibility(values) -> Feasibility:
    values = list(values)
    if Feasibility.FEASIBLE in values:
        return Feasibility.FEASIBLE
    if values and all(v is Feasibility.INFEASIBLE for v in values):
        return Feasibility.INFEASIBLE
    return Feasibility.UNKNOWN
