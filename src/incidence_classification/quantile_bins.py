"""
Quantile classification of canton incidence for choropleth colouring.

Breaks are taken at fixed probabilities with linear interpolation between
order statistics. The lowest bin is closed on both ends, all others only on
the right: [b0, b1], (b1, b2], ..., (b4, b5].
"""

import logging
import numpy as np
import pandas as pd

from src.config import ENRICHED_FILE, CODE_MAPPING_FILE, GEOMETRY_FILE, GEOMETRY_ID_COLUMN, QUANTILE_PROBABILITIES
from src.case_data_ingestion.enrich_incidence import read_enriched_table
from src.incidence_classification.code_mapping import load_code_mapping
from src.incidence_classification.region_geometries import (
    load_region_geometries, attach_region_codes, attach_incidence,
)

logger = logging.getLogger(__name__)

MAX_LABEL_DECIMALS = 6


def compute_quantile_breaks(values, probabilities=QUANTILE_PROBABILITIES):
    """Quantile breakpoints over the non-null values, as a non-decreasing array."""
    values = pd.Series(values, dtype='float64').dropna()
    if values.empty:
        raise ValueError("Cannot compute quantile breaks without any non-null values")

    breaks = np.quantile(values.to_numpy(), probabilities, method='linear')
    # Guard against interpolation round-off breaking monotonicity
    return np.maximum.accumulate(breaks)


def format_bound(value, decimals=0):
    if decimals == 0:
        return str(int(round(float(value))))
    return f"{round(float(value), decimals):.{decimals}f}"


def build_bin_labels(breaks, decimals=0):
    """Labels "{lower}-{upper}" for each pair of consecutive breaks."""
    return [
        f"{format_bound(lower, decimals)}-{format_bound(upper, decimals)}"
        for lower, upper in zip(breaks[:-1], breaks[1:])
    ]


def distinct_bin_labels(breaks):
    """Bin labels, with as many decimals as needed for them to stay distinct."""
    for decimals in range(MAX_LABEL_DECIMALS + 1):
        labels = build_bin_labels(breaks, decimals)
        if len(set(labels)) == len(labels):
            return labels
    return [f"{float(lower)!r}-{float(upper)!r}" for lower, upper in zip(breaks[:-1], breaks[1:])]


def assign_incidence_bins(values, breaks):
    """
    Assign each value to its quantile bin.

    Returns an ordered Categorical aligned with `values`. Missing values and
    values outside [breaks[0], breaks[-1]] get no category. Repeated breaks
    collapse their bins; if all breaks are equal there is a single bin.
    """
    values = pd.Series(values, dtype='float64').reset_index(drop=True)
    edges = np.unique(np.asarray(breaks, dtype='float64'))

    if len(edges) == 1:
        labels = build_bin_labels([edges[0], edges[0]])
        codes = np.where(values == edges[0], 0, -1)
    else:
        labels = distinct_bin_labels(edges)
        binned = pd.cut(values, bins=edges, labels=False, right=True, include_lowest=True)
        codes = binned.fillna(-1).astype('int64').to_numpy()

    return pd.Categorical.from_codes(codes, categories=labels, ordered=True)


def classify_regions(regions, column='incidence', probabilities=QUANTILE_PROBABILITIES):
    """
    Add an `incidence_bin` column to a copy of the region table.

    Breaks are computed over one value per canton so that cantons split into
    several fragments are not counted more than once.
    """
    regions = regions.copy()
    values = regions[column]

    if 'code' in regions.columns:
        per_region = regions.loc[regions['code'].notna()].drop_duplicates('code')[column]
    else:
        per_region = values

    if per_region.notna().sum() == 0:
        logger.warning("No incidence values to classify, all fragments left without a bin")
        regions['incidence_bin'] = pd.Categorical([None] * len(regions), categories=[], ordered=True)
        return regions

    breaks = compute_quantile_breaks(per_region, probabilities)
    logger.info(f"Quantile breaks: {', '.join(f'{b:.3f}' for b in breaks)}")

    regions['incidence_bin'] = assign_incidence_bins(values, breaks)

    unbinned = int(regions['incidence_bin'].isna().sum())
    if unbinned:
        logger.warning(f"{unbinned} fragments have no incidence and no bin")

    return regions


def run_classification(enriched_path=ENRICHED_FILE, mapping_path=CODE_MAPPING_FILE,
                       geometry_path=GEOMETRY_FILE, id_column=GEOMETRY_ID_COLUMN):
    """Load all inputs, join them and classify every canton fragment."""
    enriched = read_enriched_table(enriched_path)
    mapping = load_code_mapping(mapping_path)
    regions = load_region_geometries(geometry_path, id_column)

    regions = attach_region_codes(regions, mapping)
    regions = attach_incidence(regions, enriched)
    return classify_regions(regions)
