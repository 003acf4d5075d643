import json

import pandas as pd
import pytest

from facility_siting.errors import MissingDependencyWarning, RejectionReason, SolveStatus
from facility_siting.pipeline import perform_site_selection, run_site_selection


class TestRunSiteSelection:

    def test_end_to_end_in_memory(self, cfg, boundary_features, demand_index,
                                  rich_records, scored_records):
        run = run_site_selection(cfg, boundary_features, demand_index,
                                 rich_records, scored_records, k=1)

        assert run.validation.is_valid
        assert run.resolution.matched_count == 3
        assert [a.region for a in run.assignments] == ['Alpha-gu']
        assert [f.facility_id for f in run.selection.facilities] == ['Riverside Park']
        assert run.selection.status == SolveStatus.COMPLETE

    def test_k_override_reaches_exhaustion(self, cfg, boundary_features, demand_index,
                                           rich_records, scored_records):
        run = run_site_selection(cfg, boundary_features, demand_index,
                                 rich_records, scored_records, k=3)

        # Lakeside is in Beta-gu; Hillview adds nothing once Riverside covers b
        ids = [f.facility_id for f in run.selection.facilities]
        assert ids == ['Riverside Park', 'Lakeside Park']
        assert run.selection.status == SolveStatus.EXHAUSTED

    def test_missing_demand_index(self, cfg, boundary_features, rich_records, scored_records):
        with pytest.warns(MissingDependencyWarning):
            run = run_site_selection(cfg, boundary_features, None, rich_records, scored_records)
        assert run.selection.status == SolveStatus.MISSING_DEPENDENCY
        assert run.assignments == ()

    def test_missing_boundaries(self, cfg, demand_index, rich_records, scored_records):
        with pytest.warns(MissingDependencyWarning):
            run = run_site_selection(cfg, None, demand_index, rich_records, scored_records)

        assert run.selection.selections == ()
        rejected = run.assignments[0].rejected_for(RejectionReason.UNKNOWN_REGION)
        assert {f.facility_id for f in rejected} == {'Riverside Park', 'Hillview Park'}

    def test_alignment_checked_when_region_layer_given(self, cfg, boundary_features, demand_index,
                                                       rich_records, scored_records):
        region_geometries = [
            {'type': 'Polygon', 'coordinates': [[[0, 0], [2, 0], [2, 3], [0, 3], [0, 0]]]}
        ]
        run = run_site_selection(cfg, boundary_features, demand_index, rich_records,
                                 scored_records, region_geometries=region_geometries)
        assert run.alignment is not None
        assert not run.alignment.misaligned


def test_perform_site_selection(config_path, data_dir, tmp_path):
    run = perform_site_selection(str(config_path), base_path=tmp_path)

    assert [s.facility.facility_id for s in run.selection.selections] == ['Riverside']
    assert run.selection.selections[0].marginal_score == pytest.approx(1.0)
    assert run.selection.selections[0].facility.name == 'Riverside Citypark'

    stray = run.assignments[0].rejected_for(RejectionReason.OUTSIDE_REGION)
    assert [f.name for f in stray] == ['Stray Park']

    out = tmp_path / "out"
    selected = pd.read_csv(out / "selected_sites.csv", encoding='utf-8-sig')
    assert list(selected['facility_id']) == ['Riverside']

    resolved = pd.read_csv(out / "resolved_facilities.csv", encoding='utf-8-sig')
    assert len(resolved) == 3

    summary = json.loads((out / "selection_summary.json").read_text(encoding='utf-8'))
    assert summary['status'] == 'complete'
    assert summary['regions'] == ['Alpha-gu']
    assert summary['matching']['matched'] == 3
    assert summary['rejections']['Alpha-gu'][0]['reason'] == RejectionReason.OUTSIDE_REGION.value
