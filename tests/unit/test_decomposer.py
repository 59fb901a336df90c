"""
Tests for region decomposition: traversal, merging and the core properties
of the resulting partition.
"""
import pytest
from regiondecomp import decompose
from regiondecomp.decomp import DecompositionOptions, RegionDecomposer
from regiondecomp.decomp.decomposer import merge_paths, split_test
from regiondecomp.errors import RegionLimitExceeded
from regiondecomp.ir import (
    Call,
    Literal,
    disjoin,
    evaluate,
    make_definitions,
    parse_expr,
    parse_function,
)
from regiondecomp.ir.ops import iter_subexprs
from regiondecomp.solver import Feasibility

SIGN = "(define f ((x Int)) (if (> x 0) 1 -1))"
OR_TEST = "(define f ((x Int) (y Int)) (if (or (> x 10) (< y 20)) 1 2))"
NESTED = "(define f ((x Int) (y Int)) (if (> x 0) (if (> y 0) 1 2) (if (> y 0) 3 4)))"
G = "(define g ((x Int)) (if (> x 5) x 0))"


def _constraints(region):
    return tuple(region.constraints)


def test_sign_function():
    """Two regions in then-first order."""
    regions = decompose(SIGN)

    assert len(regions) == 2
    assert _constraints(regions[0]) == (parse_expr("(> x 0)"),)
    assert regions[0].invariant == Literal(1)
    assert _constraints(regions[1]) == (parse_expr("(<= x 0)"),)
    assert regions[1].invariant == Literal(-1)
    assert all(r.feasibility is Feasibility.FEASIBLE for r in regions)


def test_depth_first_order():
    regions = decompose(NESTED)

    assert [r.invariant for r in regions] == [Literal(n) for n in (1, 2, 3, 4)]
    assert [r.index for r in regions] == [0, 1, 2, 3]
    assert _constraints(regions[2]) == (parse_expr("(<= x 0)"), parse_expr("(> y 0)"))


def test_disjunctive_test_without_compound():
    """A disjunction splits into mutually exclusive cases."""
    regions = decompose(OR_TEST)

    assert [_constraints(r) for r in regions] == [
        (parse_expr("(> x 10)"),),
        (parse_expr("(<= x 10)"), parse_expr("(< y 20)")),
        (parse_expr("(<= x 10)"), parse_expr("(>= y 20)")),
    ]
    assert [r.invariant for r in regions] == [Literal(1), Literal(1), Literal(2)]


def test_disjunctive_test_with_compound():
    """Regions with identical invariants merge into one disjunctive region."""
    regions = decompose(OR_TEST, compound=True)

    assert len(regions) == 2
    assert _constraints(regions[0]) == (
        parse_expr("(or (> x 10) (and (<= x 10) (< y 20)))"),)
    assert regions[0].invariant == Literal(1)
    assert regions[1].invariant == Literal(2)
    assert _constraints(regions[1]) == (parse_expr("(<= x 10)"), parse_expr("(>= y 20)"))


@pytest.mark.parametrize("source", [SIGN, OR_TEST, NESTED])
def test_regions_cover_and_are_disjoint(source, oracle_for):
    """Every input falls in exactly one region."""
    regions = decompose(source)
    oracle = oracle_for(source)

    assert oracle.is_entailed(None, disjoin(r.path_condition for r in regions))
    for i, a in enumerate(regions):
        for b in regions[i + 1:]:
            combined = list(a.constraints) + list(b.constraints)
            assert oracle.is_satisfiable(combined) is Feasibility.INFEASIBLE


def test_regions_match_concrete_evaluation():
    """Each grid point lands in one region whose invariant matches f."""
    fn = parse_function(NESTED)
    regions = decompose(fn)

    for x in range(-2, 3):
        for y in range(-2, 3):
            env = {"x": x, "y": y}
            matches = [r for r in regions if r.contains(env)]
            assert len(matches) == 1
            assert evaluate(matches[0].invariant, env) == evaluate(fn.body, env)


def test_inlines_analyzable_calls():
    """Branches of called functions become region constraints."""
    defs = [
        "(define my_abs ((x Int)) (if (< x 0) (- x) x))",
    ]

    regions = decompose("(define f ((x Int)) (+ 1 (my_abs x)))", definitions=defs)

    assert [_constraints(r) for r in regions] == [
        (parse_expr("(< x 0)"),),
        (parse_expr("(>= x 0)"),),
    ]
    assert regions[0].invariant == parse_expr("(+ 1 (- x))")
    assert regions[1].invariant == parse_expr("(+ 1 x)")


def test_conditional_in_test_position():
    regions = decompose("(define f ((x Int) (b Bool)) (if (if b (> x 0) (< x 0)) 1 2))")

    assert [r.invariant for r in regions] == [Literal(1), Literal(2), Literal(1), Literal(2)]
    assert _constraints(regions[0]) == (parse_expr("b"), parse_expr("(> x 0)"))
    assert _constraints(regions[3]) == (parse_expr("(not b)"), parse_expr("(>= x 0)"))


def test_constant_tests_are_folded():
    regions = decompose("(define f ((x Int)) (if (> 3 2) (+ x (* 2 3)) 0))")

    assert len(regions) == 1
    assert regions[0].constraints == ()
    assert regions[0].invariant == parse_expr("(+ x 6)")


def test_basis_calls_stay_atomic():
    """No branch of a basis function shows up in any region."""
    g = parse_function(G)
    target = "(define f ((x Int)) (if (> (g x) 10) (if (< x 3) 1 2) 0))"

    regions = decompose(target, definitions=[g], basis={"g"})

    assert len(regions) == 3
    assert _constraints(regions[0]) == (parse_expr("(> (g x) 10)"), parse_expr("(< x 3)"))
    for region in regions:
        for c in region.constraints + (region.invariant,):
            for sub in iter_subexprs(c):
                assert sub != g.body.test


def test_without_basis_calls_are_expanded():
    regions = decompose("(define f ((x Int)) (if (> (g x) 10) 1 0))", definitions=[G])

    assert _constraints(regions[0]) == (parse_expr("(> x 5)"), parse_expr("(> x 10)"))
    assert all("g" not in str(c) for r in regions for c in r.constraints)


def test_self_recursive_calls_are_not_inlined():
    source = "(define sum ((n Int)) (if (<= n 0) 0 (+ n (sum (- n 1)))))"

    regions = decompose(source)

    assert len(regions) == 2
    assert regions[1].invariant == parse_expr("(+ n (sum (- n 1)))")


def test_region_limit():
    with pytest.raises(RegionLimitExceeded) as exc_info:
        decompose(NESTED, max_regions=3)

    assert exc_info.value.limit == 3


def test_workers_preserve_order():
    """Parallel feasibility checks give the same result as serial ones."""
    serial = decompose(NESTED, prune=True)
    parallel = decompose(NESTED, prune=True, workers=4)

    assert parallel == serial


def test_decomposer_with_custom_oracle():
    """Regions the oracle cannot decide are kept and tagged unknown."""
    class UndecidedOracle:
        def is_satisfiable(self, constraints):
            return Feasibility.UNKNOWN

        def evaluate_equal_under(self, side_condition, a, b):
            return a == b

        def is_entailed(self, side_condition, constraint):
            return False

        def get_model(self, constraints):
            return None

    target = parse_function(SIGN)
    decomposer = RegionDecomposer(
        target, DecompositionOptions(prune=True), oracle=UndecidedOracle())

    regions = decomposer.decompose()

    assert len(regions) == 2
    assert all(r.feasibility is Feasibility.UNKNOWN for r in regions)


def test_split_test():
    x_pos = parse_expr("(> x 0)")
    y_pos = parse_expr("(> y 0)")
    both = Call("and", (x_pos, y_pos))

    assert split_test(both, True) == [(x_pos, y_pos)]
    assert split_test(both, False) == [
        (parse_expr("(<= x 0)"),),
        (x_pos, parse_expr("(<= y 0)")),
    ]
    assert split_test(parse_expr("(not (> x 0))"), True) == [(parse_expr("(<= x 0)"),)]
    assert split_test(parse_expr("true"), False) == []


def test_merge_paths():
    a = parse_expr("(> x 0)")
    b = parse_expr("(> y 0)")
    c = parse_expr("(<= y 0)")

    assert merge_paths([(a, b)]) == (a, b)
    assert merge_paths([(a, b), (a, c)]) == (a, Call("or", (b, c)))
    assert merge_paths([(a,), (a, b)]) == (a,)


def test_definitions_accept_mapping():
    defs = make_definitions([parse_function(G)])

    regions = decompose("(define f ((x Int)) (g x))", definitions=defs)

    assert [r.invariant for r in regions] == [parse_expr("x"), Literal(0)]
