"""
Validation of decomposition requests.
"""
from typing import FrozenSet, Mapping, Optional

from ..errors import InvalidOptions, InvalidSideCondition, MalformedFunction
from ..ir.expr import FunctionDef, Sort
from ..ir.ops import infer_sort


def validate_target(target: FunctionDef) -> None:
    if target.is_opaque or target.body is None:
        raise MalformedFunction(target.name, "an opaque function cannot be decomposed")


def validate_side_condition(target: FunctionDef,
                            side_condition: Optional[FunctionDef],
                            definitions: Mapping[str, FunctionDef]) -> None:
    """Check that the side-condition fits the target function.

    Args:
        target: Function being decomposed
        side_condition: Predicate over the same parameters, or None
        definitions: Definitions used to infer the predicate's sort

    Raises:
        InvalidSideCondition: On a parameter mismatch or a non-boolean body
    """
    if side_condition is None:
        return
    if side_condition.body is None or side_condition.is_opaque:
        raise InvalidSideCondition(
            f"Side-condition '{side_condition.name}' must have an analyzable body")
    if side_condition.signature != target.signature:
        expected = ", ".join(f"{n}: {s.value}" for n, s in target.signature)
        got = ", ".join(f"{n}: {s.value}" for n, s in side_condition.signature)
        raise InvalidSideCondition(
            f"Side-condition '{side_condition.name}' takes ({got}), "
            f"but '{target.name}' takes ({expected})")
    sort = infer_sort(side_condition.body, side_condition.scope, definitions)
    if sort is not Sort.BOOL:
        raise InvalidSideCondition(
            f"Side-condition '{side_condition.name}' must be boolean, not {sort.value}")


def validate_options(options, definitions: Mapping[str, FunctionDef],
                     recursive: FrozenSet[str]) -> None:
    """Reject option combinations that cannot be honoured.

    Raises:
        InvalidOptions: For non-positive limits, an interpreted self-recursive
            basis function, or a non-boolean lemma
    """
    if options.workers < 1:
        raise InvalidOptions(f"workers must be at least 1, got {options.workers}")
    if options.max_regions < 1:
        raise InvalidOptions(f"max_regions must be at least 1, got {options.max_regions}")
    if options.timeout_ms is not None and options.timeout_ms < 0:
        raise InvalidOptions(f"timeout_ms must not be negative, got {options.timeout_ms}")
    if options.interpret_basis:
        for name in sorted(options.basis):
            if name in recursive:
                raise InvalidOptions(
                    f"Basis function '{name}' is recursive and cannot be interpreted")
    for lemma in options.lemmas:
        if lemma.body is None or infer_sort(lemma.body, lemma.scope, definitions) is not Sort.BOOL:
            raise InvalidOptions(f"Lemma '{lemma.name}' must have a boolean body")
