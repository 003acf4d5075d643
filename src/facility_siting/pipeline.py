"""
Facility Siting Pipeline
========================

Purpose:
    Answer the siting question end to end: which K candidate sites in the
    most underserved regions add the most demand coverage?

Steps:
    1. Build and validate the region containment index
    2. Resolve facility identities across the rich and scored datasets
    3. Verify facility membership in each top-K region geometrically
    4. Run the greedy coverage solver
    5. Export results

Usage:
    python -m facility_siting.pipeline [config.yml]
"""

import json
import sys
import warnings
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from facility_siting.config.config_loader import Config
from facility_siting.coverage_solver import (
    SelectionResult, build_contribution_table, rank_regions, solve_coverage
)
from facility_siting.data_loading import (
    load_boundary_features, load_demand_index, load_region_layer,
    load_rich_facilities, load_scored_facilities, region_layer_geometries,
    region_layer_names
)
from facility_siting.entity_resolution import ResolutionResult, resolve_entities
from facility_siting.errors import MissingDependencyWarning, SolveStatus
from facility_siting.models import RichFacilityRecord, ScoredFacilityRecord
from facility_siting.region_index import (
    ExtentComparison, IndexValidation, RegionIndex, build_region_index,
    compare_extents, validate
)
from facility_siting.spatial_assignment import (
    AssignmentResult, BoundingBox, assign_to_region, candidates_for_region
)


# ============================================================================
# RUN RESULT
# ============================================================================

@dataclass(frozen=True)
class SiteSelectionRun:
    """Everything one run produced; independent of any other run"""
    index: RegionIndex
    validation: IndexValidation
    resolution: ResolutionResult
    assignments: Tuple[AssignmentResult, ...]
    selection: SelectionResult
    alignment: Optional[ExtentComparison] = None


# ============================================================================
# IN-MEMORY PIPELINE
# ============================================================================

def run_site_selection(cfg: Config,
                       boundary_features: Optional[Sequence[Mapping[str, Any]]],
                       demand_index: Optional[Mapping[str, float]],
                       rich_records: Sequence[RichFacilityRecord],
                       scored_records: Sequence[ScoredFacilityRecord],
                       reference_regions: Optional[Sequence[str]] = None,
                       region_geometries: Optional[Sequence[Dict[str, Any]]] = None,
                       k: Optional[int] = None) -> SiteSelectionRun:
    """
    Run index -> resolution -> assignment -> solver on loaded data

    Args:
        cfg: Configuration
        boundary_features: Sub-region features ('code', 'name', 'geometry')
        demand_index: Region -> imbalance score, None if unavailable
        rich_records: Authoritative facility records
        scored_records: Coverage-scored facility records
        reference_regions: Region names from a region-level layer (optional)
        region_geometries: Region-level geometries for alignment (optional)
        k: Override cfg.solver.k

    Returns:
        SiteSelectionRun
    """
    geo = cfg.geography
    er = cfg.entity_resolution
    k = cfg.solver.k if k is None else k

    # ========================================================================
    # STEP 1: Region containment index
    # ========================================================================
    print("\n🗺️  Building region containment index...")

    if not boundary_features:
        warnings.warn("Boundary dataset is missing; no region can be verified",
                      MissingDependencyWarning)
        boundary_features = []

    index = build_region_index(boundary_features, geo.city_prefix, geo.region_suffix,
                               known_regions=reference_regions)
    validation = validate(index, geo.expected_region_count, reference_regions)

    print(f"  ✓ {validation.region_count} regions, {validation.subregion_count} sub-regions")
    for issue in validation.issues:
        print(f"  ⚠️  {issue}")

    alignment = None
    if region_geometries and boundary_features:
        alignment = compare_extents(
            region_geometries,
            [feature['geometry'] for feature in boundary_features],
            geo.alignment_tolerance
        )
        if alignment.misaligned:
            print(f"  ⚠️  Region and sub-region layers differ: "
                  f"x {alignment.x_difference:.6f}, y {alignment.y_difference:.6f}")
        else:
            print(f"  ✓ Region and sub-region layer extents agree")

    # ========================================================================
    # STEP 2: Entity resolution
    # ========================================================================
    print("\n🔗 Resolving facility identities...")

    resolution = resolve_entities(
        scored_records, rich_records,
        threshold=er.similarity_threshold,
        strip_suffixes=er.strip_suffixes,
        strip_prefixes=er.strip_prefixes
    )
    contribution_table = build_contribution_table(scored_records)

    print(f"  ✓ Resolved {resolution.matched_count}/{resolution.total} facilities "
          f"({resolution.match_rate * 100:.1f}% match rate)")

    # ========================================================================
    # STEP 3: Spatial assignment for the top-K regions
    # ========================================================================
    assignments = []
    candidates_by_region = {}

    if demand_index:
        bounds = BoundingBox(**vars(geo.bounds))
        print(f"\n📍 Verifying facility locations...")

        for region in rank_regions(demand_index, k):
            labelled = candidates_for_region(resolution.matched, region, geo.region_suffix)
            assignment = assign_to_region(region, index, labelled, bounds)
            assignments.append(assignment)
            candidates_by_region[region] = assignment.accepted
            print(f"  ✓ {region}: {len(assignment.accepted)}/{len(labelled)} facilities inside")

    # ========================================================================
    # STEP 4: Greedy coverage
    # ========================================================================
    selection = solve_coverage(k, demand_index, candidates_by_region, contribution_table)

    if selection.regions:
        print(f"\n🎯 Greedy selection of {k} sites in: {', '.join(selection.regions)}")
    for s in selection.selections:
        print(f"    {s.iteration}. {s.facility.name} (marginal: {s.marginal_score:.3f}, "
              f"+{len(s.newly_covered)} sub-regions)")
    if selection.status == SolveStatus.EXHAUSTED:
        print(f"    [STOPPED] No positive-scoring candidates after "
              f"{len(selection)} of {k} selections")

    return SiteSelectionRun(
        index=index,
        validation=validation,
        resolution=resolution,
        assignments=tuple(assignments),
        selection=selection,
        alignment=alignment
    )


# ============================================================================
# EXPORT FUNCTIONS
# ============================================================================

def selection_records(selection: SelectionResult) -> List[Dict[str, Any]]:
    """Flat rows for the selected sites"""
    rows = []
    for s in selection.selections:
        row = s.facility.to_dict()
        row.update({
            'rank': s.iteration,
            'marginal_score': s.marginal_score,
            'newly_covered': ';'.join(s.newly_covered),
            'newly_covered_count': len(s.newly_covered),
            'covered_total': s.covered_count,
        })
        rows.append(row)
    return rows


def export_results(run: SiteSelectionRun, output_dir: Path) -> Dict[str, Path]:
    """
    Write resolved facilities, selected sites and a summary report

    Creates:
        - resolved_facilities.csv
        - selected_sites.csv
        - selection_summary.json
    """
    print("\n💾 Exporting results...")

    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    resolved_csv = output_dir / "resolved_facilities.csv"
    pd.DataFrame([f.to_dict() for f in run.resolution.facilities]).to_csv(
        resolved_csv, index=False, encoding='utf-8-sig'
    )
    print(f"  ✓ Resolved facilities: {resolved_csv}")

    selected_csv = output_dir / "selected_sites.csv"
    pd.DataFrame(selection_records(run.selection)).to_csv(
        selected_csv, index=False, encoding='utf-8-sig'
    )
    print(f"  ✓ Selected sites: {selected_csv}")

    summary = {
        'analysis_date': datetime.now().isoformat(),
        'status': run.selection.status.value,
        'regions': list(run.selection.regions),
        'selected': [
            {
                'name': s.facility.name,
                'facility_id': s.facility.facility_id,
                'marginal_score': s.marginal_score,
                'newly_covered': list(s.newly_covered),
            }
            for s in run.selection.selections
        ],
        'covered_subregions': sorted(run.selection.covered),
        'index': {
            'region_count': run.validation.region_count,
            'subregion_count': run.validation.subregion_count,
            'issues': list(run.validation.issues),
        },
        'matching': {
            'total': run.resolution.total,
            'matched': run.resolution.matched_count,
            'match_rate': run.resolution.match_rate,
            'unmatched': list(run.resolution.unmatched_names),
        },
        'rejections': {
            a.region: [
                {'name': r.facility.name, 'reason': r.reason.value} for r in a.rejected
            ]
            for a in run.assignments
        },
    }

    summary_json = output_dir / "selection_summary.json"
    with open(summary_json, 'w', encoding='utf-8') as f:
        json.dump(summary, f, indent=2, ensure_ascii=False)
    print(f"  ✓ Summary report: {summary_json}")

    return {'resolved': resolved_csv, 'selected': selected_csv, 'summary': summary_json}


# ============================================================================
# MAIN ORCHESTRATOR
# ============================================================================

def perform_site_selection(config_path: Optional[str] = None,
                           base_path: Optional[Path] = None) -> SiteSelectionRun:
    """
    Load every dataset named in the config, run the pipeline, export

    Missing boundary or demand files do not abort the run; the affected
    stages return empty results.
    """
    cfg = Config(config_path, base_path=base_path)
    paths = cfg.paths

    print("\n" + "="*80)
    print("FACILITY SITING: GREEDY MAXIMAL COVERING LOCATION")
    print("="*80)
    print(f"Project: {cfg.project_name}")
    print("="*80)

    start_time = datetime.now()

    # ========================================================================
    # STEP 1: Load data
    # ========================================================================
    boundary_features = None
    if paths.boundaries.exists():
        boundary_features = load_boundary_features(paths.boundaries, cfg.fields)

    reference_regions = None
    region_geometries = None
    region_layer = load_region_layer(paths.districts, cfg.fields)
    if region_layer is not None:
        reference_regions = region_layer_names(region_layer, cfg.fields)
        region_geometries = region_layer_geometries(region_layer)

    demand_index = load_demand_index(paths.demand_index)
    rich_records = load_rich_facilities(paths.rich_facilities, cfg.fields)
    scored_records = load_scored_facilities(paths.scored_facilities)

    # ========================================================================
    # STEP 2: Run pipeline
    # ========================================================================
    run = run_site_selection(
        cfg, boundary_features, demand_index, rich_records, scored_records,
        reference_regions=reference_regions,
        region_geometries=region_geometries
    )

    # ========================================================================
    # STEP 3: Export
    # ========================================================================
    export_results(run, paths.outputs)

    duration = (datetime.now() - start_time).total_seconds()

    print("\n" + "="*80)
    print("✅ SITE SELECTION COMPLETE")
    print("="*80)
    print(f"Processing time: {duration:.1f} seconds")
    print(f"Status: {run.selection.status.value}")

    print(f"\n📊 Matching Report:")
    for line in run.resolution.report():
        print(f"  {line}")

    print(f"\n🏆 Selected Sites:")
    for s in run.selection.selections:
        print(f"  {s.iteration}. {s.facility.name}")
        print(f"     Marginal score: {s.marginal_score:.3f} | "
              f"+{len(s.newly_covered)} sub-regions | {s.facility.location}")

    return run


# ============================================================================
# MAIN
# ============================================================================

if __name__ == "__main__":
    try:
        perform_site_selection(sys.argv[1] if len(sys.argv) > 1 else None)
        print("\n✅ Site selection completed successfully")
        sys.exit(0)
    except Exception as e:
        print(f"\n❌ Site selection failed: {e}")
        import traceback
        traceback.print_exc()
        sys.exit(1)
