"""
Region decomposition engine.
"""

from .options import DecompositionOptions
from .region import Region, refine, format_region, describe_regions
from .decomposer import RegionDecomposer, merge_paths, resolve_side_condition, split_test

__all__ = [
    "DecompositionOptions",
    "Region",
    "refine",
    "format_region",
    "describe_regions",
    "RegionDecomposer",
    "split_test",
    "merge_paths",
    "resolve_side_condition",
]
