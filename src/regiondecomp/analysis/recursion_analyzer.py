"""
Recursion analysis for function definitions.

Finds recursive functions and rejects recursion that is not guarded by a
conditional branch. A call is guarded when it sits inside the then- or
else-branch of some conditional; calls in a conditional's test or on the
unconditional spine of a body are unguarded.
"""
import logging
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set

from ..errors import MalformedFunction
from ..ir.expr import Call, Conditional, Expr, FunctionDef
from ..ir.ops import called_functions

logger = logging.getLogger(__name__)


def call_graph(definitions: Mapping[str, FunctionDef]) -> Dict[str, FrozenSet[str]]:
    """Map each function name to the user functions its body calls."""
    return {
        name: called_functions(fn.body) if fn.body is not None else frozenset()
        for name, fn in definitions.items()
    }


def recursive_functions(definitions: Mapping[str, FunctionDef]) -> FrozenSet[str]:
    """Names of functions that can reach themselves through calls."""
    graph = call_graph(definitions)
    return frozenset(name for name in graph if _reaches(graph, name, name))


def unguarded_calls(expr: Expr) -> FrozenSet[str]:
    """User functions called outside every conditional branch of ``expr``."""
    if isinstance(expr, Conditional):
        return unguarded_calls(expr.test)
    if isinstance(expr, Call):
        out: Set[str] = set()
        if not expr.is_primitive:
            out.add(expr.function_name)
        for a in expr.arguments:
            out |= unguarded_calls(a)
        return frozenset(out)
    return frozenset()


def _reaches(graph: Mapping[str, Iterable[str]], start: str, goal: str) -> bool:
    seen: Set[str] = set()
    stack = list(graph.get(start, ()))
    while stack:
        name = stack.pop()
        if name == goal:
            return True
        if name in seen:
            continue
        seen.add(name)
        stack.extend(graph.get(name, ()))
    return False


class RecursionAnalyzer:
    """Checks that every function a decomposition would expand recurses safely.

    Functions in the basis and opaque functions are never expanded, so
    recursion through them needs no guard.
    """

    def __init__(self, definitions: Mapping[str, FunctionDef],
                 basis: Optional[Iterable[str]] = None):
        self.definitions = dict(definitions)
        self.basis = frozenset(basis or ())

    def expandable(self, name: str) -> bool:
        fn = self.definitions.get(name)
        return fn is not None and not fn.is_opaque and name not in self.basis

    def expanded_from(self, root: FunctionDef) -> FrozenSet[str]:
        """Names of the functions reachable by expansion from ``root``."""
        seen = {root.name}
        stack = [root.name]
        while stack:
            fn = self.definitions.get(stack.pop())
            if fn is None or fn.body is None:
                continue
            for callee in called_functions(fn.body):
                if callee not in seen and self.expandable(callee):
                    seen.add(callee)
                    stack.append(callee)
        return frozenset(seen)

    def check(self, root: FunctionDef) -> None:
        """Raise MalformedFunction if ``root`` or a function it expands
        recurses without a guard.

        Args:
            root: Function whose body is decomposed
        """
        self.definitions.setdefault(root.name, root)
        unguarded = {
            name: frozenset(c for c in unguarded_calls(fn.body) if self.expandable(c))
            for name, fn in self.definitions.items()
            if fn.body is not None and not fn.is_opaque
        }
        for name in sorted(self.expanded_from(root)):
            if name in self.basis:
                continue
            if _reaches(unguarded, name, name):
                logger.debug("unguarded recursion through '%s'", name)
                raise MalformedFunction(
                    name,
                    "recursive call is not guarded by a conditional branch "
                    "and the function is not in the basis",
                )
