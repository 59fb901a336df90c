"""
Tests for decomposition modes: pruning, side-conditions, symmetry
reduction, basis interpretation and recursive reasoning.
"""
import pytest
from regiondecomp import decompose
from regiondecomp.decomp import DecompositionOptions, RegionDecomposer
from regiondecomp.errors import InvalidOptions, InvalidSideCondition, MalformedFunction
from regiondecomp.ir import Literal, parse_expr, parse_function
from regiondecomp.solver import Feasibility

G = "(define g ((x Int)) (if (> x 5) x 0))"
BASIS_TARGET = "(define f ((x Int)) (if (> (g x) 10) (if (< x 3) 1 2) 0))"
DOUBLE = "(define double ((n Int)) (if (<= n 0) 0 (+ 2 (double (- n 1)))))"
DOUBLE_TARGET = "(define f ((n Int)) (if (= n 1) (if (= (double n) 3) 1 2) 0))"
SYMMETRIC = "(define f ((x Int) (y Int)) (if (= (+ x y) 10) 1 (if (> x y) 1 2)))"
X_GT_Y = "(define g ((x Int) (y Int)) (> x y))"


def test_infeasible_regions_are_tagged_not_dropped_by_default():
    regions = decompose("(define f ((x Int)) (if (> x 0) (if (< x 0) 1 2) 3))")

    assert len(regions) == 3
    assert regions[0].feasibility is Feasibility.INFEASIBLE
    assert regions[1].feasibility is Feasibility.FEASIBLE


def test_prune_drops_infeasible_regions():
    regions = decompose("(define f ((x Int)) (if (> x 0) (if (< x 0) 1 2) 3))", prune=True)

    assert [r.invariant for r in regions] == [Literal(2), Literal(3)]
    assert all(r.feasibility is not Feasibility.INFEASIBLE for r in regions)


def test_assuming_restricts_domain():
    """Regions outside the side-condition are dropped."""
    regions = decompose(SYMMETRIC, assuming=X_GT_Y)

    assert [r.invariant for r in regions] == [Literal(1), Literal(1)]
    assert regions[0].side_condition == parse_expr("(> x y)")


def test_assuming_by_definition_name():
    regions = decompose(SYMMETRIC, definitions=[X_GT_Y], assuming="g")

    assert len(regions) == 2


def test_assuming_function_def_in_options():
    options = DecompositionOptions(assuming=parse_function(X_GT_Y))

    regions = decompose(SYMMETRIC, options)

    assert len(regions) == 2


def test_reduce_symmetry():
    """Regions equal under the side-condition merge into one."""
    regions = decompose(SYMMETRIC, assuming=X_GT_Y, reduce_symmetry=True)

    assert len(regions) == 1
    assert regions[0].invariant == Literal(1)
    assert regions[0].constraints == ()
    assert regions[0].feasibility is Feasibility.FEASIBLE


def test_reduce_symmetry_drops_entailed_constraints():
    """Constraints implied by the side-condition are removed."""
    regions = decompose(
        "(define f ((x Int) (y Int)) (if (>= x y) (if (> x 0) 1 2) 3))",
        assuming=X_GT_Y,
        reduce_symmetry=True,
    )

    assert [r.invariant for r in regions] == [Literal(1), Literal(2)]
    assert regions[0].constraints == (parse_expr("(> x 0)"),)
    assert regions[1].constraints == (parse_expr("(<= x 0)"),)


def test_reduce_symmetry_merges_semantically_equal_invariants():
    regions = decompose(
        "(define f ((x Int) (y Int)) (if (> x 0) (+ x 1) (+ y 1)))",
        assuming="(define same ((x Int) (y Int)) (= x y))",
        reduce_symmetry=True,
    )

    assert len(regions) == 1
    assert regions[0].invariant == parse_expr("(+ x 1)")


def test_basis_not_interpreted_keeps_region():
    regions = decompose(BASIS_TARGET, definitions=[G], basis=["g"], prune=True)

    assert len(regions) == 3


def test_interpret_basis_prunes_with_definition():
    """The oracle may use a basis definition without the traversal expanding it."""
    regions = decompose(BASIS_TARGET, definitions=[G], basis=["g"],
                        interpret_basis=True, prune=True)

    assert [r.invariant for r in regions] == [Literal(2), Literal(0)]
    assert regions[0].constraints == (parse_expr("(> (g x) 10)"), parse_expr("(>= x 3)"))


def test_recursive_call_prune_levels():
    """aggressive_rec prunes regions only recursive unfolding can refute."""
    default = decompose(DOUBLE_TARGET, definitions=[DOUBLE])
    pruned = decompose(DOUBLE_TARGET, definitions=[DOUBLE], prune=True)
    aggressive = decompose(DOUBLE_TARGET, definitions=[DOUBLE], aggressive_rec=True)

    assert len(default) == 4
    assert len(pruned) == 3
    assert [r.invariant for r in aggressive] == [Literal(2), Literal(0)]


def test_lemmas_under_aggressive_rec():
    h = parse_function("(define h ((x Int)) :returns Int :opaque)")
    lemma = parse_function("(define h_pos ((k Int)) (> (h k) 0))")
    target = "(define f ((x Int)) (if (< (h x) 0) 1 2))"

    plain = decompose(target, definitions=[h], prune=True, lemmas=[lemma])
    aggressive = decompose(target, definitions=[h], aggressive_rec=True, lemmas=[lemma])

    assert len(plain) == 2
    assert [r.invariant for r in aggressive] == [Literal(2)]


def test_unguarded_recursion_is_malformed():
    bad = "(define bad ((n Int)) (+ 1 (bad n)))"

    with pytest.raises(MalformedFunction) as exc_info:
        decompose("(define f ((n Int)) (bad n))", definitions=[bad])

    assert exc_info.value.function_name == "bad"


def test_unguarded_recursion_allowed_in_basis():
    bad = "(define bad ((n Int)) (+ 1 (bad n)))"

    regions = decompose("(define f ((n Int)) (bad n))", definitions=[bad], basis={"bad"})

    assert len(regions) == 1
    assert regions[0].invariant == parse_expr("(bad n)")


def test_recursion_guarded_only_by_test_is_malformed():
    loop = "(define loop ((n Int)) (if (> (loop n) 0) 1 2))"

    with pytest.raises(MalformedFunction):
        decompose(loop)


def test_opaque_target_is_malformed():
    with pytest.raises(MalformedFunction):
        decompose("(define h ((x Int)) :opaque)")


@pytest.mark.parametrize("side", [
    "(define g ((x Int)) (> x 0))",
    "(define g ((x Int) (y Real)) (> x y))",
    "(define g ((x Int) (y Int)) (+ x y))",
    "(define g ((x Int) (y Int)) :returns Bool :opaque)",
])
def test_invalid_side_conditions(side):
    with pytest.raises(InvalidSideCondition):
        decompose(SYMMETRIC, assuming=side)


def test_unknown_side_condition_name():
    with pytest.raises(InvalidSideCondition):
        decompose(SYMMETRIC, assuming="missing")


@pytest.mark.parametrize("flags", [
    {"workers": 0},
    {"max_regions": 0},
    {"timeout_ms": -1},
    {"lemmas": [parse_function("(define l ((k Int)) (+ k 1))")]},
])
def test_invalid_options(flags):
    with pytest.raises(InvalidOptions):
        decompose("(define f ((x Int)) (if (> x 0) 1 -1))", **flags)


def test_interpreting_recursive_basis_is_rejected():
    with pytest.raises(InvalidOptions):
        decompose(DOUBLE_TARGET, definitions=[DOUBLE], basis={"double"}, interpret_basis=True)


def test_repeated_aggressive_rec_runs_are_independent():
    """Recursive definitions do not leak from one decomposition into the next."""
    first = decompose(DOUBLE_TARGET, definitions=[DOUBLE], aggressive_rec=True)
    second = decompose(DOUBLE_TARGET, definitions=[DOUBLE], aggressive_rec=True)

    assert first == second
    assert [r.invariant for r in second] == [Literal(2), Literal(0)]


@pytest.mark.parametrize("assuming, definitions", [
    (X_GT_Y, None),
    ("g", {"g": parse_function(X_GT_Y)}),
])
def test_decomposer_resolves_assuming_option(assuming, definitions):
    """RegionDecomposer accepts the side-condition as text or by name."""
    decomposer = RegionDecomposer(
        parse_function(SYMMETRIC),
        DecompositionOptions(assuming=assuming),
        definitions=definitions,
    )

    regions = decomposer.decompose()

    assert decomposer.side_condition.name == "g"
    assert [r.invariant for r in regions] == [Literal(1), Literal(1)]
    assert regions[0].side_condition == parse_expr("(> x y)")


def test_decomposer_rejects_unknown_assuming_name():
    with pytest.raises(InvalidSideCondition):
        RegionDecomposer(parse_function(SYMMETRIC), DecompositionOptions(assuming="nope"))


def test_entailment_looks_inside_nested_conjunctions():
    decomposer = RegionDecomposer(parse_function(SYMMETRIC), DecompositionOptions(assuming=X_GT_Y))
    path = (parse_expr("(or (and (> x 0) (and (>= x y) (> y 0))) (< x -5))"),)

    kept = decomposer._drop_entailed(path, decomposer.side_expr)

    assert kept == (parse_expr("(or (and (> x 0) (> y 0)) (< x -5))"),)


@pytest.mark.parametrize("definitions", [
    None,
    ["(define p ((x Int)) :opaque)"],
])
def test_uninterpreted_predicate_in_test(definitions):
    """A call without a declared result can be branched on."""
    regions = decompose("(define f ((x Int)) (if (p x) 1 2))",
                        definitions=definitions, prune=True)

    assert [r.invariant for r in regions] == [Literal(1), Literal(2)]
    assert regions[0].constraints == (parse_expr("(p x)"),)
    assert regions[1].constraints == (parse_expr("(not (p x))"),)
    assert all(r.feasibility is Feasibility.FEASIBLE for r in regions)
