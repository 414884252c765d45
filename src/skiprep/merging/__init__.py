"""
Merge logic for canonical records.

Components:
- utils: provenance and property merge helpers
- ski_areas: ski area object merger and duplicate accumulator
- runs: run normalizer accumulator
"""

from .runs import RunNormalizerAccumulator, merge_run_properties
from .ski_areas import SkiAreaMergeAccumulator, merge_ski_area_objects, merged_websites, select_primary

__all__ = [
    "merge_ski_area_objects",
    "merged_websites",
    "select_primary",
    "SkiAreaMergeAccumulator",
    "RunNormalizerAccumulator",
    "merge_run_properties",
]
