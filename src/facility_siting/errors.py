"""
Result States & Warning Categories
==================================

Purpose:
    Non-fatal conditions are recovered inside the component that detects
    them and surfaced as explicit result states plus a warning. Only
    programmer errors (malformed geometry, invalid parameters) raise.
"""

from enum import Enum


class MissingDependencyWarning(UserWarning):
    """A required upstream dataset (demand index, boundaries) is absent"""


class DataQualityWarning(UserWarning):
    """A malformed record was excluded from computation"""


class SolveStatus(str, Enum):
    """Terminal state of a greedy coverage solve"""
    COMPLETE = 'complete'
    EXHAUSTED = 'exhausted'
    MISSING_DEPENDENCY = 'missing_dependency'


class RejectionReason(str, Enum):
    """Why the spatial assigner dropped a facility"""
    INVALID_COORDINATES = 'invalid_coordinates'
    OUT_OF_BOUNDS = 'out_of_bounds'
    OUTSIDE_REGION = 'outside_region'
    UNKNOWN_REGION = 'unknown_region'
