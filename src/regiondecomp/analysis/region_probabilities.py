"""
Monte Carlo estimation of region probabilities.

Inputs are drawn from a user-supplied sampler and classified into the
region whose path condition they satisfy. Draws that violate the regions'
side-condition are rejected, so the estimates are conditional on it.
"""
from dataclasses import dataclass, field
import logging
import random
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..ir.evaluator import evaluate
from ..ir.printer import format_expr

logger = logging.getLogger(__name__)

Sampler = Callable[[random.Random], Dict[str, Any]]


@dataclass
class RegionProbability:
    """Estimated probability mass of one region."""
    region: Any
    hits: int
    probability: float


@dataclass
class ProbabilityReport:
    """Result of a sampling run.

    Attributes:
        samples: Number of draws
        entries: One entry per region, in region order
        unmatched: Accepted draws that fell in no region
        rejected: Draws that violated the side-condition
    """
    samples: int
    entries: List[RegionProbability] = field(default_factory=list)
    unmatched: int = 0
    rejected: int = 0

    @property
    def accepted(self) -> int:
        return self.samples - self.rejected

    def format(self) -> str:
        lines = [f"{self.accepted} of {self.samples} samples accepted"]
        for n, entry in enumerate(self.entries, start=1):
            lines.append(
                f"Region {n} ({format_expr(entry.region.invariant)}): "
                f"{entry.probability:.4f} ({entry.hits} hits)")
        if self.unmatched:
            lines.append(f"Unmatched: {self.unmatched}")
        return "\n".join(lines)


def uniform_sampler(ranges: Mapping[str, Tuple[int, int]],
                    booleans: Iterable[str] = ()) -> Sampler:
    """Sampler drawing each variable independently and uniformly.

    Args:
        ranges: Inclusive integer range per variable
        booleans: Names of boolean variables (fair coin)
    """
    ranges = dict(ranges)
    booleans = tuple(booleans)

    def sample(rng: random.Random) -> Dict[str, Any]:
        env: Dict[str, Any] = {name: rng.randint(lo, hi) for name, (lo, hi) in ranges.items()}
        for name in booleans:
            env[name] = rng.random() < 0.5
        return env

    return sample


def region_probabilities(regions: Sequence[Any],
                         sampler: Sampler,
                         n: int = 10_000,
                         seed: Optional[int] = None) -> ProbabilityReport:
    """Estimate how much of the input distribution each region covers.

    Args:
        regions: Regions from one decomposition
        sampler: Callable drawing one input dict from a ``random.Random``
        n: Number of draws
        seed: Seed for reproducible estimates

    Returns:
        ProbabilityReport with per-region frequencies among accepted draws
    """
    if n < 1:
        raise ValueError(f"n must be positive, got {n}")
    rng = random.Random(seed)
    hits = [0] * len(regions)
    report = ProbabilityReport(samples=n)

    side = regions[0].side_condition if regions else None
    definitions = regions[0].definitions if regions else {}

    for _ in range(n):
        env = sampler(rng)
        if side is not None and not evaluate(side, env, definitions):
            report.rejected += 1
            continue
        for i, region in enumerate(regions):
            if region.contains(env):
                hits[i] += 1
                break
        else:
            report.unmatched += 1

    accepted = report.accepted
    report.entries = [
        RegionProbability(region, h, h / accepted if accepted else 0.0)
        for region, h in zip(regions, hits)
    ]
    logger.info("sampled %d input(s): %d rejected, %d unmatched",
                n, report.rejected, report.unmatched)
    return report
