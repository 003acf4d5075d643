"""
Greedy Maximal Covering Location
================================

Purpose:
    Select K facilities in the most underserved regions so that the
    summed demand contribution they add is maximal at every step

Methodology:
    1. Rank regions by demand index (descending, stable on ties)
    2. Gather validated candidates of the top-K regions
    3. Each iteration: score every unselected candidate by the demand it
       would add over sub-regions not yet covered, pick the best positive
       one, then mark its whole footprint as covered
    4. Stop after K picks or when nothing positive remains

Note:
    Greedy approximation, no backtracking. A selected facility covers every
    sub-region in its contribution row, including ones that added nothing
    at selection time.
"""

import math
import warnings
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from facility_siting.errors import DataQualityWarning, MissingDependencyWarning, SolveStatus
from facility_siting.models import FacilityCandidate, ScoredFacilityRecord


ContributionRow = Tuple[Tuple[str, float], ...]
ContributionTable = Mapping[str, ContributionRow]


# ============================================================================
# INPUT PREPARATION
# ============================================================================

def rank_regions(demand_index: Mapping[str, float], k: int) -> List[str]:
    """
    Top-k regions by demand index

    Args:
        demand_index: Region -> imbalance score (higher = more underserved)
        k: Number of regions to keep

    Returns:
        Region names, highest first; ties keep input order
    """
    ordered = sorted(demand_index.items(), key=lambda item: -item[1])
    return [region for region, _ in ordered[:max(k, 0)]]


def build_contribution_table(scored_records: Sequence[ScoredFacilityRecord]) -> Dict[str, ContributionRow]:
    """
    Facility id -> ordered (sub-region, contribution) pairs

    Negative or non-numeric contributions are dropped with a warning.
    """
    table = {}
    dropped = 0

    for record in scored_records:
        row = []
        for subregion, value in record.contributions:
            try:
                value = float(value)
            except (TypeError, ValueError):
                dropped += 1
                continue
            if math.isnan(value) or value < 0:
                dropped += 1
                continue
            row.append((str(subregion), value))
        table[record.name.strip()] = tuple(row)

    if dropped:
        warnings.warn(
            f"Dropped {dropped} negative or non-numeric coverage contributions",
            DataQualityWarning
        )

    return table


# ============================================================================
# RESULT TYPES
# ============================================================================

@dataclass(frozen=True)
class Selection:
    """One chosen facility and what it added"""
    facility: FacilityCandidate
    iteration: int
    marginal_score: float
    newly_covered: Tuple[str, ...]
    covered_count: int


@dataclass(frozen=True)
class SelectionResult:
    """Immutable outcome of one solve"""
    selections: Tuple[Selection, ...]
    status: SolveStatus
    regions: Tuple[str, ...] = ()
    covered: frozenset = frozenset()
    iterations: Tuple[Tuple[Tuple[str, float], ...], ...] = ()

    @property
    def facilities(self) -> List[FacilityCandidate]:
        return [s.facility for s in self.selections]

    @property
    def total_score(self) -> float:
        return sum(s.marginal_score for s in self.selections)

    def __len__(self) -> int:
        return len(self.selections)


# ============================================================================
# GREEDY SELECTION
# ============================================================================

def _marginal_score(row: ContributionRow, covered: set) -> float:
    return sum((value for subregion, value in row if subregion not in covered), 0.0)


def greedy_select(candidates: Sequence[FacilityCandidate],
                  contribution_table: ContributionTable,
                  k: int,
                  regions: Sequence[str] = ()) -> SelectionResult:
    """
    Greedy maximal covering selection

    Args:
        candidates: Region-restricted, spatially validated facilities
        contribution_table: facility_id -> (sub-region, contribution) pairs
        k: Number of facilities to select
        regions: Regions the candidates were drawn from (recorded only)

    Returns:
        SelectionResult in selection order; EXHAUSTED if fewer than k
        candidates had positive remaining score
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")

    # Collapse duplicates, first occurrence wins
    seen = set()
    pool = []
    for facility in candidates:
        if facility.facility_id not in seen:
            seen.add(facility.facility_id)
            pool.append(facility)

    for facility in pool:
        if facility.facility_id not in contribution_table:
            warnings.warn(
                f"No coverage contributions for {facility.facility_id!r}; "
                f"it will never be selected",
                DataQualityWarning
            )

    covered = set()
    selected = []
    selected_ids = set()
    traces = []
    status = SolveStatus.COMPLETE

    for iteration in range(1, k + 1):
        scored = []
        for facility in pool:
            if facility.facility_id in selected_ids:
                continue
            row = contribution_table.get(facility.facility_id, ())
            scored.append((facility, _marginal_score(row, covered)))

        # sorted() is stable: ties keep candidate order
        scored = sorted(scored, key=lambda pair: -pair[1])
        traces.append(tuple((f.facility_id, score) for f, score in scored))

        pick = next(((f, s) for f, s in scored if s > 0), None)
        if pick is None:
            status = SolveStatus.EXHAUSTED
            break

        facility, score = pick
        row = contribution_table.get(facility.facility_id, ())
        newly_covered = []
        for subregion, _ in row:
            if subregion not in covered:
                covered.add(subregion)
                newly_covered.append(subregion)

        selected_ids.add(facility.facility_id)
        selected.append(Selection(
            facility=facility,
            iteration=iteration,
            marginal_score=score,
            newly_covered=tuple(newly_covered),
            covered_count=len(covered)
        ))

    return SelectionResult(
        selections=tuple(selected),
        status=status,
        regions=tuple(regions),
        covered=frozenset(covered),
        iterations=tuple(traces)
    )


def solve_coverage(k: int,
                   demand_index: Optional[Mapping[str, float]],
                   candidates_by_region: Mapping[str, Sequence[FacilityCandidate]],
                   contribution_table: Optional[ContributionTable]) -> SelectionResult:
    """
    Rank regions by demand and run greedy selection over their facilities

    Args:
        k: Number of regions to keep and facilities to select
        demand_index: Region -> imbalance score; None/empty cannot rank
        candidates_by_region: Validated facilities per region
        contribution_table: facility_id -> contribution row

    Returns:
        SelectionResult; MISSING_DEPENDENCY with no selections when the
        demand index is absent
    """
    if not demand_index:
        warnings.warn("Demand index is missing; cannot rank regions", MissingDependencyWarning)
        return SelectionResult(selections=(), status=SolveStatus.MISSING_DEPENDENCY)

    if contribution_table is None:
        warnings.warn("Coverage contribution table is missing", MissingDependencyWarning)
        contribution_table = {}

    regions = rank_regions(demand_index, k)
    candidates = []
    for region in regions:
        candidates.extend(candidates_by_region.get(region, ()))

    return greedy_select(candidates, contribution_table, k, regions=regions)
