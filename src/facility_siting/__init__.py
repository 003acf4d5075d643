"""Civic facility siting: entity resolution, spatial assignment, greedy MCLP"""

from facility_siting.coverage_solver import (
    Selection, SelectionResult, build_contribution_table, greedy_select,
    rank_regions, solve_coverage
)
from facility_siting.entity_resolution import (
    ResolutionResult, normalize_name, resolve_entities, similarity
)
from facility_siting.errors import (
    DataQualityWarning, MissingDependencyWarning, RejectionReason, SolveStatus
)
from facility_siting.geometry import contains, distance, geometry_contains
from facility_siting.models import (
    FacilityCandidate, RichFacilityRecord, ScoredFacilityRecord, SubRegion
)
from facility_siting.region_index import RegionIndex, build_region_index, validate
from facility_siting.spatial_assignment import (
    AssignmentResult, BoundingBox, assign_to_region, candidates_for_region
)

__version__ = "1.0.0"
