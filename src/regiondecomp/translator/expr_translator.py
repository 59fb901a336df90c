"""
Expression to Z3 Translator.

Translates expression AST nodes to Z3 terms with:
- Sort-aware literals and variables
- Int/Real coercion where Z3 needs matching sorts
- Inlining, uninterpreted or recursive modelling of user calls
"""

from fractions import Fraction
from functools import reduce
import operator
from typing import Any, Dict, List, Optional

import z3

from ..ir.expr import BOOLEAN_OPS, Call, Conditional, Expr, Literal, Sort, Variable
from ..ir.ops import infer_sort
from .translation_context import TranslationContext


class ExprTranslator:
    """Translates expressions to Z3 terms."""

    def translate(self, expr: Expr, ctx: TranslationContext,
                  env: Optional[Dict[str, Any]] = None,
                  expected: Optional[Sort] = None) -> Any:
        """Translate an expression to Z3.

        Args:
            expr: Expression node
            ctx: Translation context
            env: Z3 terms bound to local names (parameters of inlined calls)
            expected: Sort the enclosing position requires, if known. Used
                for the range of calls to functions with no declared result

        Returns:
            Z3 expression
        """
        # Dispatch to appropriate handler based on expression type
        if isinstance(expr, Literal):
            return self.translate_literal(expr, ctx)
        elif isinstance(expr, Variable):
            if env is not None and expr.name in env:
                return env[expr.name]
            return ctx.get_variable(expr.name)
        elif isinstance(expr, Conditional):
            return self.translate_conditional(expr, ctx, env, expected)
        elif isinstance(expr, Call):
            if expr.is_primitive:
                return self.translate_primitive(expr, ctx, env)
            return self.translate_call(expr, ctx, env, expected)
        else:
            raise NotImplementedError(f"Expression type not supported: {type(expr)}")

    def translate_literal(self, expr: Literal, ctx: TranslationContext) -> Any:
        if expr.sort is Sort.BOOL:
            return z3.BoolVal(bool(expr.value), ctx.z3_ctx)
        elif expr.sort is Sort.REAL:
            value = Fraction(expr.value)
            return z3.RealVal(f"{value.numerator}/{value.denominator}", ctx.z3_ctx)
        return z3.IntVal(int(expr.value), ctx.z3_ctx)

    def translate_conditional(self, expr: Conditional, ctx: TranslationContext,
                              env: Optional[Dict[str, Any]],
                              expected: Optional[Sort] = None) -> Any:
        test = self.translate(expr.test, ctx, env, Sort.BOOL)
        then_t = self.translate(expr.then_branch, ctx, env, expected)
        else_t = self.translate(expr.else_branch, ctx, env, expected)
        then_t, else_t = _unify(then_t, else_t)
        return z3.If(test, then_t, else_t, ctx.z3_ctx)

    def translate_primitive(self, expr: Call, ctx: TranslationContext,
                            env: Optional[Dict[str, Any]]) -> Any:
        """Translate an operator application."""
        name = expr.function_name
        arg_sort = Sort.BOOL if name in BOOLEAN_OPS else None
        args = [self.translate(a, ctx, env, arg_sort) for a in expr.arguments]

        # Boolean connectives
        if name == "and":
            if not args:
                return z3.BoolVal(True, ctx.z3_ctx)
            return args[0] if len(args) == 1 else z3.And(*args)
        if name == "or":
            if not args:
                return z3.BoolVal(False, ctx.z3_ctx)
            return args[0] if len(args) == 1 else z3.Or(*args)
        if name == "not":
            return z3.Not(_single(name, args), ctx.z3_ctx)
        if name == "=>":
            lhs, rhs = _pair(name, args)
            return z3.Implies(lhs, rhs, ctx.z3_ctx)

        # Comparison operations
        if name in _COMPARISONS:
            lhs, rhs = _pair(name, args)
            return _COMPARISONS[name](lhs, rhs)

        # Arithmetic operations
        if name == "-" and len(args) == 1:
            return -args[0]
        if name == "abs":
            a = _single(name, args)
            return z3.If(a >= 0, a, -a, ctx.z3_ctx)
        if name in _ARITHMETIC:
            if len(args) < 2:
                raise ValueError(f"'{name}' needs at least two arguments")
            return reduce(_ARITHMETIC[name], args)

        raise NotImplementedError(f"Primitive not supported: {name}")

    def translate_call(self, expr: Call, ctx: TranslationContext,
                       env: Optional[Dict[str, Any]],
                       expected: Optional[Sort] = None) -> Any:
        """Translate a call to a user-defined function."""
        name = expr.function_name
        args = [self.translate(a, ctx, env) for a in expr.arguments]
        mode = ctx.call_mode(name)

        if mode == "inline":
            fn = ctx.definitions[name]
            if len(args) != len(fn.params):
                raise ValueError(f"Function '{name}' expects {len(fn.params)} arguments, got {len(args)}")
            local = {
                p.name: _coerce(a, ctx.z3_sort(p.sort))
                for p, a in zip(fn.params, args)
            }
            return self.translate(fn.body, ctx, local, fn.returns or expected)

        if mode == "recursive":
            decl = self._declare_recursive(name, ctx)
        else:
            decl = self._declare_uninterpreted(name, args, ctx, expected)
        coerced = [_coerce(a, decl.domain(i)) for i, a in enumerate(args)]
        return decl(*coerced)

    def _declare_uninterpreted(self, name: str, args: List[Any], ctx: TranslationContext,
                               expected: Optional[Sort] = None) -> Any:
        decl = ctx.functions.get(name)
        if decl is not None:
            return decl
        fn = ctx.definitions.get(name)
        if fn is not None:
            domain = [ctx.z3_sort(p.sort) for p in fn.params]
        else:
            domain = [a.sort() for a in args]
        range_sort = ctx.z3_sort(self._result_sort(name, ctx, expected))
        decl = z3.Function(name, *domain, range_sort)
        ctx.functions[name] = decl
        return decl

    def _declare_recursive(self, name: str, ctx: TranslationContext) -> Any:
        decl = ctx.functions.get(name)
        if decl is not None:
            return decl
        fn = ctx.definitions[name]
        domain = [ctx.z3_sort(p.sort) for p in fn.params]
        range_sort = ctx.z3_sort(self._result_sort(name, ctx))
        decl = z3.RecFunction(name, *domain, range_sort)
        # Registered before the body is translated so recursive calls resolve
        ctx.functions[name] = decl
        params = [
            z3.Const(f"{name}!{p.name}", ctx.z3_sort(p.sort)) for p in fn.params
        ]
        body = self.translate(fn.body, ctx, dict(zip(fn.param_names, params)))
        z3.RecAddDefinition(decl, params, _coerce(body, range_sort))
        return decl

    def _result_sort(self, name: str, ctx: TranslationContext,
                     expected: Optional[Sort] = None) -> Sort:
        # Undeclared results take the sort of the position the call sits in
        fn = ctx.definitions.get(name)
        if fn is None or (fn.returns is None and fn.body is None):
            return expected or Sort.INT
        return infer_sort(Call(name), {}, ctx.definitions)


_COMPARISONS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "=": operator.eq,
    "<>": operator.ne,
}

_ARITHMETIC = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": operator.truediv,
    "div": operator.truediv,
    "mod": operator.mod,
}


def _single(name: str, args: List[Any]) -> Any:
    if len(args) != 1:
        raise ValueError(f"'{name}' takes exactly one argument")
    return args[0]


def _pair(name: str, args: List[Any]):
    if len(args) != 2:
        raise ValueError(f"'{name}' takes exactly two arguments")
    return args[0], args[1]


def _coerce(term: Any, sort: Any) -> Any:
    """Convert an Int term to Real when a Real is expected."""
    if term.sort() == sort:
        return term
    if z3.is_int(term) and sort.kind() == z3.Z3_REAL_SORT:
        return z3.ToReal(term)
    return term


def _unify(a: Any, b: Any):
    if a.sort() == b.sort():
        return a, b
    if z3.is_int(a) and z3.is_real(b):
        return z3.ToReal(a), b
    if z3.is_real(a) and z3.is_int(b):
        return a, z3.ToReal(b)
    return a, b
