"""
Analyses over function definitions and decomposition results.
"""

from .recursion_analyzer import (
    RecursionAnalyzer,
    call_graph,
    recursive_functions,
    unguarded_calls,
)
from .validation import validate_options, validate_side_condition, validate_target
from .region_probabilities import (
    ProbabilityReport,
    RegionProbability,
    region_probabilities,
    uniform_sampler,
)

__all__ = [
    "RecursionAnalyzer",
    "call_graph",
    "recursive_functions",
    "unguarded_calls",
    "validate_options",
    "validate_side_condition",
    "validate_target",
    "ProbabilityReport",
    "RegionProbability",
    "region_probabilities",
    "uniform_sampler",
]
