"""
Options controlling a decomposition request.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
import os
from typing import FrozenSet, Mapping, Optional, Tuple, Union

from ..ir.expr import FunctionDef

DEFAULT_TIMEOUT_MS = 5000
DEFAULT_WORKERS = 1
DEFAULT_MAX_REGIONS = 10_000

_ENV_SETTINGS = {
    "REGIONDECOMP_TIMEOUT_MS": "timeout_ms",
    "REGIONDECOMP_WORKERS": "workers",
    "REGIONDECOMP_MAX_REGIONS": "max_regions",
}


@dataclass(frozen=True)
class DecompositionOptions:
    """Settings for one decomposition request.

    Attributes:
        assuming: Side-condition over the target's parameters. A FunctionDef,
            ``(define ...)`` text, or the name of a supplied definition.
        prune: Drop regions the oracle proves infeasible
        compound: Merge regions with syntactically identical invariants
        reduce_symmetry: Merge regions equal under the side-condition and
            drop constraints it entails
        basis: Functions kept opaque during traversal
        interpret_basis: Let the oracle use basis definitions when pruning
        aggressive_rec: Give the oracle recursive definitions and ``lemmas``
        lemmas: Boolean facts assumed (for all parameter values) when
            ``aggressive_rec`` is set
        timeout_ms: Per-query oracle timeout (None or 0 for no limit)
        workers: Threads used for feasibility checks
        max_regions: Abort once traversal produces more candidates than this
    """
    assuming: Optional[Union[FunctionDef, str]] = None
    prune: bool = False
    compound: bool = False
    reduce_symmetry: bool = False
    basis: FrozenSet[str] = frozenset()
    interpret_basis: bool = False
    aggressive_rec: bool = False
    lemmas: Tuple[FunctionDef, ...] = ()
    timeout_ms: Optional[int] = DEFAULT_TIMEOUT_MS
    workers: int = DEFAULT_WORKERS
    max_regions: int = DEFAULT_MAX_REGIONS

    def __post_init__(self):
        if isinstance(self.basis, str):
            object.__setattr__(self, "basis", frozenset([self.basis]))
        elif not isinstance(self.basis, frozenset):
            object.__setattr__(self, "basis", frozenset(self.basis))
        if not isinstance(self.lemmas, tuple):
            object.__setattr__(self, "lemmas", tuple(self.lemmas))

    def with_changes(self, **changes) -> DecompositionOptions:
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> DecompositionOptions:
        """Build options from environment variables.

        Reads REGIONDECOMP_TIMEOUT_MS, REGIONDECOMP_WORKERS and
        REGIONDECOMP_MAX_REGIONS; keyword arguments take precedence.
        """
        environ = os.environ if environ is None else environ
        settings = {}
        for env_name, attr in _ENV_SETTINGS.items():
            raw = environ.get(env_name)
            if raw is None or raw.strip() == "":
                continue
            try:
                settings[attr] = int(raw)
            except ValueError as e:
                raise ValueError(f"${env_name} must be an integer, got {raw!r}") from e
        settings.update(overrides)
        return cls(**settings)
