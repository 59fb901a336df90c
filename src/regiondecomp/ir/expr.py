"""
Expression data model for decision functions.

Decision functions are trees of four node kinds:

    Literal(value)
    Variable(name)
    Conditional(test, then_branch, else_branch)
    Call(function_name, arguments)

Operators such as ``+``, ``>`` or ``and`` are calls to primitive function
names (see ``PRIMITIVES``). All nodes are immutable and hashable, so two
expressions are syntactically identical exactly when they compare equal.
"""
from dataclasses import dataclass
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union


class Sort(Enum):
    """Value sorts understood by the evaluator and the SMT translation."""
    INT = "Int"
    BOOL = "Bool"
    REAL = "Real"

    @classmethod
    def parse(cls, name: str) -> "Sort":
        for sort in cls:
            if sort.value.lower() == name.lower():
                return sort
        raise ValueError(f"Unknown sort: {name}")


class FunctionKind(Enum):
    """Execution mode of a function definition.

    ANALYZABLE definitions may be inlined and reasoned about. OPAQUE ones
    are never expanded and behave as uninterpreted functions.
    """
    ANALYZABLE = "analyzable"
    OPAQUE = "opaque"


class Expr:
    """Base class for expression nodes."""

    __slots__ = ()

    def __str__(self) -> str:
        from .printer import format_expr
        return format_expr(self)


@dataclass(frozen=True)
class Literal(Expr):
    """A constant value. The sort is derived from the Python value."""
    value: Union[bool, int, Fraction]
    sort: Optional[Sort] = None

    def __post_init__(self):
        value = self.value
        if isinstance(value, float):
            value = Fraction(str(value))
            object.__setattr__(self, "value", value)
        if self.sort is None:
            if isinstance(value, bool):
                sort = Sort.BOOL
            elif isinstance(value, int):
                sort = Sort.INT
            elif isinstance(value, Fraction):
                sort = Sort.REAL
            else:
                raise TypeError(f"Unsupported literal value: {value!r}")
            object.__setattr__(self, "sort", sort)


@dataclass(frozen=True)
class Variable(Expr):
    """A reference to a function parameter."""
    name: str


@dataclass(frozen=True)
class Conditional(Expr):
    """``if test then then_branch else else_branch``."""
    test: Expr
    then_branch: Expr
    else_branch: Expr


@dataclass(frozen=True)
class Call(Expr):
    """Application of a primitive or user-defined function."""
    function_name: str
    arguments: Tuple[Expr, ...] = ()

    def __post_init__(self):
        if not isinstance(self.arguments, tuple):
            object.__setattr__(self, "arguments", tuple(self.arguments))

    @property
    def is_primitive(self) -> bool:
        return self.function_name in PRIMITIVES


TRUE = Literal(True)
FALSE = Literal(False)

ARITHMETIC_OPS = frozenset(["+", "-", "*", "/", "div", "mod", "abs"])
COMPARISON_OPS = frozenset(["<", "<=", ">", ">=", "=", "<>"])
BOOLEAN_OPS = frozenset(["and", "or", "not", "=>"])
PRIMITIVES = ARITHMETIC_OPS | COMPARISON_OPS | BOOLEAN_OPS


@dataclass(frozen=True)
class Param:
    """A named, sorted function parameter."""
    name: str
    sort: Sort = Sort.INT


@dataclass(frozen=True)
class FunctionDef:
    """A function definition.

    Attributes:
        name: Function name used by ``Call`` nodes
        params: Ordered parameters
        body: Defining expression (may be None for opaque functions)
        returns: Declared result sort, inferred from the body when None
        kind: ANALYZABLE or OPAQUE
    """
    name: str
    params: Tuple[Param, ...]
    body: Optional[Expr] = None
    returns: Optional[Sort] = None
    kind: FunctionKind = FunctionKind.ANALYZABLE

    def __post_init__(self):
        params = tuple(
            p if isinstance(p, Param) else Param(p) for p in self.params
        )
        object.__setattr__(self, "params", params)
        if self.body is None and self.kind is FunctionKind.ANALYZABLE:
            raise ValueError(f"Analyzable function '{self.name}' needs a body")

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.params)

    @property
    def signature(self) -> Tuple[Tuple[str, Sort], ...]:
        return tuple((p.name, p.sort) for p in self.params)

    @property
    def scope(self) -> Dict[str, Sort]:
        return {p.name: p.sort for p in self.params}

    @property
    def is_opaque(self) -> bool:
        return self.kind is FunctionKind.OPAQUE

    def apply(self, arguments: Iterable[Expr]) -> Expr:
        """Return the body with parameters replaced by ``arguments``."""
        from .ops import substitute

        arguments = tuple(arguments)
        if len(arguments) != len(self.params):
            raise ValueError(
                f"Function '{self.name}' expects {len(self.params)} arguments, "
                f"got {len(arguments)}"
            )
        if self.body is None:
            raise ValueError(f"Function '{self.name}' has no body")
        return substitute(self.body, dict(zip(self.param_names, arguments)))


Definitions = Mapping[str, FunctionDef]


def lit(value: Any) -> Literal:
    return value if isinstance(value, Literal) else Literal(value)


def var(name: str) -> Variable:
    return Variable(name)


def call(name: str, *arguments: Any) -> Call:
    return Call(name, tuple(_as_expr(a) for a in arguments))


def ite(test: Any, then_branch: Any, else_branch: Any) -> Conditional:
    return Conditional(_as_expr(test), _as_expr(then_branch), _as_expr(else_branch))


def _as_expr(value: Any) -> Expr:
    if isinstance(value, Expr):
        return value
    if isinstance(value, str):
        return Variable(value)
    return Literal(value)


def make_definitions(functions: Union[None, Definitions, Iterable[FunctionDef]]) -> Dict[str, FunctionDef]:
    """Normalize a collection of definitions to a name-keyed dict."""
    if functions is None:
        return {}
    if isinstance(functions, Mapping):
        return dict(functions)
    return {fn.name: fn for fn in functions}
