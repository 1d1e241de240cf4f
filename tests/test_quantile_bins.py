"""Unit tests for quantile breaks and incidence bins."""

import numpy as np
import pandas as pd
import pytest

from src.errors import AmbiguousJoinError
from src.incidence_classification.quantile_bins import (
    compute_quantile_breaks, build_bin_labels, assign_incidence_bins,
    classify_regions, run_classification,
)
from src.case_data_ingestion.enrich_incidence import write_enriched_table


INCIDENCES = [4246.808, 4661.523, 5028.254, 5190.643, 7911.581, 8930.688]


class TestComputeQuantileBreaks:

    def test_example_breaks(self):
        breaks = compute_quantile_breaks(INCIDENCES)
        np.testing.assert_allclose(breaks, INCIDENCES)

    def test_linear_interpolation(self):
        breaks = compute_quantile_breaks([0, 10, 20, 30])
        np.testing.assert_allclose(breaks, [0, 6, 12, 18, 24, 30])

    def test_nulls_are_ignored(self):
        breaks = compute_quantile_breaks([np.nan, 1.0, None, 2.0])
        assert breaks[0] == 1.0
        assert breaks[-1] == 2.0

    @pytest.mark.parametrize("values", [
        [3.0, 1.0, 2.0],
        [5.5],
        [1e-9, 1e9, 42.0, 42.0, 7.0],
        list(np.random.default_rng(7).gamma(2.0, 1000.0, size=26)),
    ])
    def test_non_decreasing(self, values):
        breaks = compute_quantile_breaks(values)
        assert len(breaks) == 6
        assert np.all(np.diff(breaks) >= 0)

    def test_all_null_raises(self):
        with pytest.raises(ValueError):
            compute_quantile_breaks([np.nan, None])


def test_example_labels():
    assert build_bin_labels(INCIDENCES) == ["4247-4662", "4662-5028", "5028-5191", "5191-7912", "7912-8931"]


class TestAssignIncidenceBins:

    def test_every_value_in_exactly_one_bin(self):
        values = list(np.random.default_rng(3).uniform(100, 9000, size=40))
        breaks = compute_quantile_breaks(values)

        bins = assign_incidence_bins(values, breaks)

        assert not pd.isna(bins).any()
        assert len(bins.categories) == 5
        assert bins.ordered

    def test_interval_boundaries(self):
        breaks = [0, 10, 20, 30, 40, 50]
        bins = assign_incidence_bins([0, 10, 10.5, 20, 50], breaks)
        assert list(bins) == ["0-10", "0-10", "10-20", "10-20", "40-50"]

    def test_null_gets_no_bin(self):
        bins = assign_incidence_bins([1.0, np.nan, 3.0], [1, 1.4, 1.8, 2.2, 2.6, 3.0])
        assert pd.isna(bins[1])
        assert not pd.isna(bins[0])
        assert not pd.isna(bins[2])

    def test_all_equal_collapses_to_one_bin(self):
        values = [250.0, 250.0, 250.0]
        bins = assign_incidence_bins(values, compute_quantile_breaks(values))
        assert list(bins.categories) == ["250-250"]
        assert list(bins) == ["250-250"] * 3

    def test_duplicate_breaks_collapse_adjacent_bins(self):
        bins = assign_incidence_bins([1, 1, 1, 2, 3], [1, 1, 1, 2, 3, 3])
        assert list(bins.categories) == ["1-2", "2-3"]
        assert list(bins) == ["1-2", "1-2", "1-2", "1-2", "2-3"]

    def test_labels_stay_distinct_after_rounding(self):
        bins = assign_incidence_bins([1.0, 1.2, 1.4, 1.6, 2.0], [1.0, 1.1, 1.3, 1.5, 1.7, 2.0])
        assert len(set(bins.categories)) == 5
        assert bins.categories[0] == "1.0-1.1"

    def test_categories_follow_increasing_incidence(self):
        bins = assign_incidence_bins(INCIDENCES, compute_quantile_breaks(INCIDENCES))
        assert list(bins.codes) == [0, 0, 1, 2, 3, 4]


class TestClassifyRegions:

    def test_region_without_case_data_gets_no_bin(self, canton_fragments, code_mapping, enriched):
        from src.incidence_classification.region_geometries import attach_region_codes, attach_incidence

        regions = attach_incidence(attach_region_codes(canton_fragments, code_mapping), enriched)
        classified = classify_regions(regions)

        assert classified.loc[classified["code"] == "UR", "incidence_bin"].isna().all()
        assert classified.loc[classified["code_num"] == 9, "incidence_bin"].isna().all()
        be = classified.loc[classified["code"] == "BE", "incidence_bin"]
        assert be.nunique() == 1

    def test_enclaves_counted_once(self):
        regions = pd.DataFrame({
            "code": ["A", "A", "A", "A", "B", "C"],
            "incidence": [100.0, 100.0, 100.0, 100.0, 200.0, 300.0],
        })
        classified = classify_regions(regions)
        # breaks over [100, 200, 300]: 100, 140, 180, 220, 260, 300
        assert list(classified["incidence_bin"].cat.categories) == ["100-140", "140-180", "180-220", "220-260", "260-300"]

    def test_no_values(self):
        regions = pd.DataFrame({"code": ["A", "B"], "incidence": [np.nan, np.nan]})
        classified = classify_regions(regions)
        assert classified["incidence_bin"].isna().all()

    def test_input_not_modified(self):
        regions = pd.DataFrame({"incidence": [1.0, 2.0, 3.0]})
        classify_regions(regions)
        assert "incidence_bin" not in regions.columns


class TestRunClassification:

    @pytest.fixture
    def inputs(self, tmp_path, canton_fragments, code_mapping, enriched):
        geometry_path = tmp_path / "cantons.gpkg"
        canton_fragments.rename(columns={"code_num": "KANTONSNUM"}).to_file(geometry_path, driver="GPKG")
        mapping_path = tmp_path / "canton_codes.csv"
        code_mapping.to_csv(mapping_path, index=False)
        enriched_path = write_enriched_table(enriched, tmp_path / "latest_swiss_data.csv")
        return enriched_path, mapping_path, geometry_path

    def test_classifies_every_fragment(self, inputs):
        regions = run_classification(*inputs)

        assert len(regions) == 6
        assert {"code_num", "code", "incidence", "incidence_bin", "geometry"} <= set(regions.columns)
        assert regions["incidence_bin"].notna().sum() == 4

    def test_ambiguous_mapping_file(self, inputs, tmp_path):
        enriched_path, _, geometry_path = inputs
        mapping_path = tmp_path / "ambiguous.csv"
        mapping_path.write_text("code,code_num\nZH,1\nBE,1\n")

        with pytest.raises(AmbiguousJoinError):
            run_classification(enriched_path, mapping_path, geometry_path)
