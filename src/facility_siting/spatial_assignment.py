"""
Spatial Assignment of Facilities to Regions
===========================================

Purpose:
    Verify geometrically that a facility belongs to a target region
    instead of trusting its denormalized region label

Methodology:
    1. Pre-select candidates whose label names the region
    2. Reject invalid coordinates and points outside the sanity bounding box
    3. Test the point against every sub-region polygon of the region
    4. Keep facilities contained by at least one sub-region

The assigner is stateless; rerun it whenever the target region changes.
"""

import math
import warnings
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from facility_siting.errors import DataQualityWarning, RejectionReason
from facility_siting.geometry import distances_km, geometry_contains
from facility_siting.models import FacilityCandidate
from facility_siting.region_index import RegionIndex


# ============================================================================
# COORDINATE SANITY
# ============================================================================

def parse_coordinate(value: Any) -> Optional[float]:
    """
    Parse a raw coordinate cell

    Empty strings, None, NaN and non-numeric text are all treated as absent.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


@dataclass(frozen=True)
class BoundingBox:
    """Sanity box for the dataset's geography (degrees)"""
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return (self.min_lat <= lat <= self.max_lat and
                self.min_lng <= lng <= self.max_lng)


# ============================================================================
# LABEL PRE-SELECTION
# ============================================================================

def region_label_matches(label: str, region: str, region_suffix: str) -> bool:
    """'종로' and '종로구' both name region '종로구'"""
    if not label:
        return False
    label = label.strip()
    if label == region:
        return True
    if region_suffix and region.endswith(region_suffix):
        return label == region[:-len(region_suffix)]
    return False


def candidates_for_region(facilities: Sequence[FacilityCandidate],
                          region: str,
                          region_suffix: str) -> List[FacilityCandidate]:
    """Facilities whose denormalized label names the region"""
    return [f for f in facilities if region_label_matches(f.region, region, region_suffix)]


# ============================================================================
# ASSIGNMENT
# ============================================================================

@dataclass(frozen=True)
class Rejection:
    facility: FacilityCandidate
    reason: RejectionReason


@dataclass(frozen=True)
class AssignmentResult:
    """Facilities confirmed inside the region, and the ones dropped"""
    region: str
    accepted: Tuple[FacilityCandidate, ...]
    rejected: Tuple[Rejection, ...]

    def rejected_for(self, reason: RejectionReason) -> List[FacilityCandidate]:
        return [r.facility for r in self.rejected if r.reason == reason]


def assign_to_region(region: str,
                     index: RegionIndex,
                     candidates: Sequence[FacilityCandidate],
                     bounds: Optional[BoundingBox] = None) -> AssignmentResult:
    """
    Keep only candidates geometrically inside the region

    Args:
        region: Target administrative region name
        index: Region containment index
        candidates: Facilities whose label matched the region
        bounds: Sanity bounding box; skipped when None

    Returns:
        AssignmentResult with accepted facilities (input order) and
        rejections tagged with a RejectionReason
    """
    subregions = index.subregions(region)

    if not subregions:
        if candidates:
            warnings.warn(
                f"Region {region!r} has no sub-regions in the boundary index; "
                f"{len(candidates)} candidates cannot be verified",
                DataQualityWarning
            )
        return AssignmentResult(
            region=region,
            accepted=(),
            rejected=tuple(Rejection(f, RejectionReason.UNKNOWN_REGION) for f in candidates)
        )

    accepted = []
    rejected = []

    for facility in candidates:
        lat = parse_coordinate(facility.latitude)
        lng = parse_coordinate(facility.longitude)

        if lat is None or lng is None:
            rejected.append(Rejection(facility, RejectionReason.INVALID_COORDINATES))
            continue

        if bounds is not None and not bounds.contains(lat, lng):
            rejected.append(Rejection(facility, RejectionReason.OUT_OF_BOUNDS))
            continue

        point = (lng, lat)
        if any(geometry_contains(point, sub.geometry) for sub in subregions):
            accepted.append(facility)
        else:
            rejected.append(Rejection(facility, RejectionReason.OUTSIDE_REGION))

    for rejection in rejected:
        if rejection.reason != RejectionReason.INVALID_COORDINATES:
            warnings.warn(
                f"Facility {rejection.facility.name!r} excluded from {region}: "
                f"{rejection.reason.value} ({rejection.facility.latitude}, "
                f"{rejection.facility.longitude})",
                DataQualityWarning
            )

    return AssignmentResult(region=region, accepted=tuple(accepted), rejected=tuple(rejected))


# ============================================================================
# RADIUS QUERY
# ============================================================================

def facilities_within_radius(facilities: Sequence[FacilityCandidate],
                             center: Tuple[float, float],
                             radius_km: float) -> List[FacilityCandidate]:
    """
    Facilities within radius_km of a (lat, lng) center, inclusive

    Facilities without valid coordinates are skipped.
    """
    located = [f for f in facilities
               if parse_coordinate(f.latitude) is not None
               and parse_coordinate(f.longitude) is not None]
    if not located:
        return []

    dists = distances_km(center, [(float(f.latitude), float(f.longitude)) for f in located])
    return [f for f, d in zip(located, dists) if d <= radius_km]
