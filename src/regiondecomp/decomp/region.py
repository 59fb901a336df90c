"""
Regions produced by decomposition.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..ir.evaluator import evaluate
from ..ir.expr import Expr, FunctionDef
from ..ir.ops import conjoin, fold_constants, is_literal_bool
from ..ir.printer import format_expr
from ..solver.base import FeasibilityOracle
from ..solver.result import Feasibility


@dataclass(frozen=True)
class Region:
    """A symbolic partition of a function's input domain.

    Attributes:
        constraints: Path condition, as an ordered conjunction
        invariant: Output of the function for every input in the region
        feasibility: Whether the path condition (with the side-condition)
            is satisfiable
        index: Discovery position in the depth-first traversal
        side_condition: Side-condition the region was computed under
        oracle: Oracle used for feasibility checks by ``refine``/``sample``
        definitions: Definitions used to evaluate constraints concretely
    """
    constraints: Tuple[Expr, ...]
    invariant: Expr
    feasibility: Feasibility = Feasibility.UNKNOWN
    index: int = 0
    side_condition: Optional[Expr] = None
    oracle: Optional[FeasibilityOracle] = field(default=None, compare=False, repr=False)
    definitions: Mapping[str, FunctionDef] = field(default_factory=dict, compare=False, repr=False)

    @property
    def path_condition(self) -> Expr:
        """The constraints as a single conjunction (``true`` when empty)."""
        return conjoin(self.constraints)

    def query(self, extra: Iterable[Expr] = ()) -> List[Expr]:
        """Constraints handed to the oracle for this region."""
        items = list(self.constraints) + list(extra)
        if self.side_condition is not None:
            items.insert(0, self.side_condition)
        return items

    def contains(self, env: Mapping[str, Any]) -> bool:
        """Return True if the concrete input ``env`` satisfies the path condition."""
        return all(evaluate(c, env, self.definitions) for c in self.constraints)

    def sample(self) -> Optional[Dict[str, Any]]:
        """A concrete input inside the region, or None if none was found."""
        return self._require_oracle().get_model(self.query())

    def refine(self, extra_constraints: Iterable[Expr]) -> Optional[Region]:
        return refine(self, extra_constraints)

    def _require_oracle(self) -> FeasibilityOracle:
        if self.oracle is None:
            raise ValueError("Region has no feasibility oracle attached")
        return self.oracle

    def __str__(self) -> str:
        return format_region(self)


def refine(region: Region,
           extra_constraints: Iterable[Expr],
           oracle: Optional[FeasibilityOracle] = None) -> Optional[Region]:
    """Narrow a region by additional constraints.

    Args:
        region: Region to refine (not modified)
        extra_constraints: Constraints to conjoin to the path condition
        oracle: Oracle to use instead of the region's own

    Returns:
        A new Region with recomputed feasibility, or None if the refined
        path condition is infeasible
    """
    oracle = oracle or region._require_oracle()
    extra = []
    for c in extra_constraints:
        c = fold_constants(c)
        if is_literal_bool(c, True) or c in region.constraints or c in extra:
            continue
        extra.append(c)
    feasibility = oracle.is_satisfiable(region.query(extra))
    if feasibility is Feasibility.INFEASIBLE:
        return None
    return replace(
        region,
        constraints=region.constraints + tuple(extra),
        feasibility=feasibility,
        oracle=oracle,
    )


def format_region(region: Region) -> str:
    """Render a region as a constraint listing followed by its invariant."""
    lines = ["Constraints:"]
    if region.constraints:
        lines.extend(f"  - {format_expr(c)}" for c in region.constraints)
    else:
        lines.append("  (none)")
    lines.append(f"Invariant: {format_expr(region.invariant)}")
    if region.feasibility is not Feasibility.FEASIBLE:
        lines.append(f"Feasibility: {region.feasibility.value}")
    return "\n".join(lines)


def describe_regions(regions: Iterable[Region]) -> str:
    """Render a numbered listing of regions."""
    blocks = []
    for n, region in enumerate(regions, start=1):
        body = "\n".join("  " + line for line in format_region(region).splitlines())
        blocks.append(f"Region {n}:\n{body}")
    return "\n\n".join(blocks) if blocks else "No regions"
