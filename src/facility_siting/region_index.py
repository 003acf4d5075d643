"""
Region Containment Index
========================

Purpose:
    Map each administrative region to its ordered list of sub-regions,
    derived from the structured sub-region names of a boundary dataset

Methodology:
    1. Parse "<city> <region> <sub-region>" names; the region is the first
       token after the city token ending in the administrative suffix
    2. Group sub-regions by region, preserving input order
    3. Validate the grouping (empty regions, region count, unparsed names)
    4. Optionally compare coordinate extents against a region-level layer
"""

import re
import warnings
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import geopandas as gpd
from shapely.geometry import shape

from facility_siting.errors import DataQualityWarning
from facility_siting.models import SubRegion


# ============================================================================
# NAME PARSING
# ============================================================================

def _region_pattern(city_prefix: Optional[str], region_suffix: str) -> 're.Pattern':
    if city_prefix:
        lead = re.escape(city_prefix)
    else:
        lead = r'\S+'
    return re.compile(
        lead + r'\s+(\S*?' + re.escape(region_suffix) + r')\s+\S'
    )


def extract_region(structured_name: str,
                   city_prefix: Optional[str],
                   region_suffix: str) -> Optional[str]:
    """
    Extract the parent region from a structured sub-region name

    Args:
        structured_name: e.g. "서울특별시 종로구 사직동"
        city_prefix: Leading city-level token ("서울특별시"), or None for any
        region_suffix: Administrative suffix of region names ("구")

    Returns:
        Region name ("종로구") or None if the name does not parse
    """
    if not isinstance(structured_name, str):
        return None
    match = _region_pattern(city_prefix, region_suffix).search(structured_name)
    if not match or match.group(1) == region_suffix:
        return None
    return match.group(1)


# ============================================================================
# INDEX
# ============================================================================

@dataclass(frozen=True)
class RegionIndex:
    """Region name -> ordered sub-regions"""
    mapping: Mapping[str, Tuple[SubRegion, ...]]
    unassigned: Tuple[str, ...] = ()

    @property
    def regions(self) -> List[str]:
        return list(self.mapping.keys())

    @property
    def total_subregions(self) -> int:
        return sum(len(subs) for subs in self.mapping.values())

    def __contains__(self, region: str) -> bool:
        return region in self.mapping

    def subregions(self, region: str) -> Tuple[SubRegion, ...]:
        return self.mapping.get(region, ())

    def subregion_codes(self, region: str) -> List[str]:
        return [sub.code for sub in self.subregions(region)]

    def subregion_names(self, region: str) -> List[str]:
        return [sub.name for sub in self.subregions(region)]


def build_region_index(features: Iterable[Mapping[str, Any]],
                       city_prefix: Optional[str],
                       region_suffix: str,
                       known_regions: Optional[Sequence[str]] = None) -> RegionIndex:
    """
    Build the region -> sub-region index from boundary features

    Args:
        features: Mappings with 'code', 'name' and 'geometry'
        city_prefix: Leading city-level token, or None
        region_suffix: Administrative suffix of region names
        known_regions: Regions to seed the index with (e.g. from a
            region-level layer) so that regions without any sub-region
            stay visible to validate()

    Returns:
        RegionIndex with sub-regions in input order
    """
    grouped: Dict[str, List[SubRegion]] = {region: [] for region in (known_regions or [])}
    unassigned = []

    for feature in features:
        name = feature.get('name')
        region = extract_region(name, city_prefix, region_suffix)

        if region is None:
            unassigned.append(str(name))
            continue

        grouped.setdefault(region, []).append(SubRegion(
            code=str(feature.get('code')),
            name=name,
            region=region,
            geometry=feature.get('geometry')
        ))

    if unassigned:
        warnings.warn(
            f"{len(unassigned)} sub-region names did not parse into a region "
            f"(e.g. {unassigned[0]!r})",
            DataQualityWarning
        )

    return RegionIndex(
        mapping=MappingProxyType({region: tuple(subs) for region, subs in grouped.items()}),
        unassigned=tuple(unassigned)
    )


# ============================================================================
# VALIDATION
# ============================================================================

@dataclass(frozen=True)
class IndexValidation:
    region_count: int
    subregion_count: int
    issues: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.issues


def validate(index: RegionIndex,
             expected_region_count: int,
             reference_regions: Optional[Sequence[str]] = None) -> IndexValidation:
    """
    Check the index for partial or inconsistent coverage

    Args:
        index: Built RegionIndex
        expected_region_count: Number of regions the geography should have
        reference_regions: Region names from an independent region-level
            layer; regions missing from or extra to the index are flagged

    Returns:
        IndexValidation with region/sub-region counts and issue messages
    """
    issues = []
    regions = index.regions

    for region in regions:
        if len(index.subregions(region)) < 1:
            issues.append(f"{region}: no sub-regions")

    if len(regions) != expected_region_count:
        issues.append(
            f"Expected {expected_region_count} regions, found {len(regions)}"
        )

    if index.unassigned:
        issues.append(f"{len(index.unassigned)} sub-regions not assigned to a region")

    if reference_regions is not None:
        reference = set(reference_regions)
        missing = sorted(reference - set(regions))
        extra = sorted(set(regions) - reference)
        if missing:
            issues.append(f"Missing from index: {', '.join(missing)}")
        if extra:
            issues.append(f"Not in reference layer: {', '.join(extra)}")

    return IndexValidation(
        region_count=len(regions),
        subregion_count=index.total_subregions,
        issues=tuple(issues)
    )


# ============================================================================
# BOUNDARY ALIGNMENT
# ============================================================================

@dataclass(frozen=True)
class ExtentComparison:
    region_bounds: Tuple[float, float, float, float]
    subregion_bounds: Tuple[float, float, float, float]
    x_difference: float
    y_difference: float
    misaligned: bool


def _combined_bounds(geometries: Iterable[Dict[str, Any]]) -> Tuple[float, float, float, float]:
    layer = gpd.GeoSeries([shape(geom) for geom in geometries])
    if layer.empty:
        raise ValueError("Cannot compare extents of an empty layer")
    min_x, min_y, max_x, max_y = layer.total_bounds
    return float(min_x), float(min_y), float(max_x), float(max_y)


def compare_extents(region_geometries: Iterable[Dict[str, Any]],
                    subregion_geometries: Iterable[Dict[str, Any]],
                    tolerance: float = 0.001) -> ExtentComparison:
    """
    Compare the overall extent of a region layer and a sub-region layer

    Layers published at different times often disagree at the edges; a
    summed min/max difference above tolerance on either axis is flagged.
    """
    region_bounds = _combined_bounds(region_geometries)
    sub_bounds = _combined_bounds(subregion_geometries)

    x_diff = abs(region_bounds[0] - sub_bounds[0]) + abs(region_bounds[2] - sub_bounds[2])
    y_diff = abs(region_bounds[1] - sub_bounds[1]) + abs(region_bounds[3] - sub_bounds[3])

    return ExtentComparison(
        region_bounds=region_bounds,
        subregion_bounds=sub_bounds,
        x_difference=x_diff,
        y_difference=y_diff,
        misaligned=x_diff > tolerance or y_diff > tolerance
    )
