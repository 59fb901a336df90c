"""
Error types raised by region decomposition.

Structural errors abort a decomposition request; no partial region list is
returned. Oracle indecision is never an error: it surfaces as
``Feasibility.UNKNOWN`` on the affected regions.
"""


class DecompositionError(Exception):
    """Base class for errors that abort a decomposition request."""


class MalformedFunction(DecompositionError):
    """The function violates structural requirements.

    Raised for recursion that is not guarded by a conditional branch and
    is not listed in the basis.
    """

    def __init__(self, function_name: str, message: str):
        self.function_name = function_name
        super().__init__(f"Malformed function '{function_name}': {message}")


class InvalidSideCondition(DecompositionError):
    """The side-condition does not match the target function's signature."""


class InvalidOptions(DecompositionError):
    """The decomposition options cannot be used together."""


class RegionLimitExceeded(DecompositionError):
    """Traversal produced more candidate regions than ``max_regions``."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Decomposition exceeded the limit of {limit} regions")


class ExpressionSyntaxError(ValueError):
    """Malformed expression text given to the reader."""


class EvaluationError(ValueError):
    """An expression could not be evaluated on concrete inputs."""
