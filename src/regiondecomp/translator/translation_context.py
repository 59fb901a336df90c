"""
Translation Context for expression to Z3 translation.

Provides context for expression translation including:
- Variable sorts and Z3 variable mapping
- Function definitions and how each call is to be modelled
- The Z3 context the terms belong to
"""

from dataclasses import dataclass, field as dc_field
from typing import Any, Dict, FrozenSet

import z3

from ..ir.expr import FunctionDef, Sort


@dataclass
class TranslationContext:
    """Context for expression translation.

    Attributes:
        scope: Sorts of the free variables (the target function's parameters)
        definitions: Function definitions available to the translation
        basis: Functions modelled as uninterpreted unless ``interpret_basis``
        interpret_basis: Translate basis calls through their definitions
        aggressive_rec: Give recursive functions their recursive definitions
        recursive: Names of recursive functions (never inlined)
        z3_ctx: Z3 context owning every created term and declaration
        variables: Cache of Z3 constants by variable name
        functions: Cache of Z3 function declarations by function name
    """

    scope: Dict[str, Sort]
    definitions: Dict[str, FunctionDef] = dc_field(default_factory=dict)
    basis: FrozenSet[str] = frozenset()
    interpret_basis: bool = False
    aggressive_rec: bool = False
    recursive: FrozenSet[str] = frozenset()
    z3_ctx: z3.Context = dc_field(default_factory=z3.Context)
    variables: Dict[str, Any] = dc_field(default_factory=dict)
    functions: Dict[str, Any] = dc_field(default_factory=dict)

    def z3_sort(self, sort: Sort) -> Any:
        """Get the Z3 sort for ``sort`` in this context."""
        if sort is Sort.BOOL:
            return z3.BoolSort(self.z3_ctx)
        elif sort is Sort.REAL:
            return z3.RealSort(self.z3_ctx)
        return z3.IntSort(self.z3_ctx)

    def sort_of(self, name: str) -> Sort:
        return self.scope.get(name, Sort.INT)

    def get_variable(self, name: str) -> Any:
        """Get (creating on first use) the Z3 constant for a variable."""
        var = self.variables.get(name)
        if var is None:
            var = z3.Const(name, self.z3_sort(self.sort_of(name)))
            self.variables[name] = var
        return var

    def call_mode(self, name: str) -> str:
        """Decide how a call to ``name`` is modelled.

        Returns:
            "inline" to translate through the definition, "recursive" for a
            Z3 recursive function, or "uninterpreted"
        """
        fn = self.definitions.get(name)
        if fn is None or fn.is_opaque:
            return "uninterpreted"
        if name in self.recursive:
            if self.aggressive_rec and name not in self.basis:
                return "recursive"
            return "uninterpreted"
        if name in self.basis and not self.interpret_basis:
            return "uninterpreted"
        return "inline"

    def fork(self) -> "TranslationContext":
        """Copy of this context bound to a fresh Z3 context."""
        return TranslationContext(
            scope=dict(self.scope),
            definitions=self.definitions,
            basis=self.basis,
            interpret_basis=self.interpret_basis,
            aggressive_rec=self.aggressive_rec,
            recursive=self.recursive,
            z3_ctx=z3.Context(),
        )
