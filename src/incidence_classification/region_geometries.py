"""
Load canton polygons and attach canton codes and incidence to them.

A canton can be split into several disjoint polygons (enclaves). Every
fragment keeps its own row and gets the values of the canton it belongs to.
"""

import logging
from pathlib import Path
import pandas as pd
import geopandas as gpd

from src.config import GEOMETRY_FILE, GEOMETRY_ID_COLUMN, REGION_CODE_COLUMN
from src.errors import ParseError, AmbiguousJoinError
from src.incidence_classification.code_mapping import validate_code_mapping

logger = logging.getLogger(__name__)


def load_region_geometries(path=GEOMETRY_FILE, id_column=GEOMETRY_ID_COLUMN, layer=None):
    """
    Read canton polygons and keep only the numeric canton id and geometry.

    Returns a GeoDataFrame with columns `code_num` and `geometry`.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Canton geometries not found at {path}. Please download swissBOUNDARIES3D first."
        )

    regions = gpd.read_file(path, layer=layer)
    if id_column not in regions.columns:
        raise ParseError(f"Geometry file {path} has no '{id_column}' column")

    empty = regions.geometry.isna() | regions.geometry.is_empty
    if empty.any():
        logger.warning(f"Dropping {int(empty.sum())} features without geometry")
        regions = regions[~empty]

    regions = regions.rename(columns={id_column: 'code_num'})
    try:
        regions['code_num'] = pd.to_numeric(regions['code_num'], errors='raise').astype('int64')
    except (ValueError, TypeError) as e:
        raise ParseError(f"Malformed canton id in {path}: {str(e)}") from e

    regions = select_region_columns(regions, ['code_num']).reset_index(drop=True)
    logger.info(
        f"Loaded {len(regions)} polygon fragments for {regions['code_num'].nunique()} cantons"
    )
    return regions


def select_region_columns(regions, columns):
    """Select attribute columns from a region table, always keeping the geometry."""
    geometry = regions.geometry.name
    selected = [column for column in columns if column != geometry] + [geometry]
    return gpd.GeoDataFrame(regions[selected], geometry=geometry, crs=regions.crs)


def attach_region_codes(regions, mapping):
    """Left join fragments to the code mapping on `code_num`, adding `code`."""
    validate_code_mapping(mapping)

    merged = regions.merge(mapping[['code', 'code_num']], on='code_num', how='left')

    unmapped = sorted(merged.loc[merged['code'].isna(), 'code_num'].unique().tolist())
    if unmapped:
        logger.warning(f"No canton code for numeric ids: {unmapped}")

    return merged


def attach_incidence(regions, enriched):
    """
    Left join fragments to the enriched case table on the canton code.

    Only the `incidence` column is carried over. Fragments of cantons with no
    case data keep a missing incidence.
    """
    duplicated = enriched[REGION_CODE_COLUMN][enriched[REGION_CODE_COLUMN].duplicated()]
    if not duplicated.empty:
        raise AmbiguousJoinError(
            f"Case table has more than one row for: {sorted(duplicated.unique().tolist())}. "
            "Filter it to a single reporting date first."
        )

    incidence = enriched[[REGION_CODE_COLUMN, 'incidence']].rename(columns={REGION_CODE_COLUMN: 'code'})
    merged = regions.merge(incidence, on='code', how='left')

    gaps = report_join_gaps(merged, enriched)
    if gaps['missing_case_data']:
        logger.warning(f"No case data for cantons: {', '.join(gaps['missing_case_data'])}")
    if gaps['missing_geometry']:
        logger.warning(f"No geometry for cantons: {', '.join(gaps['missing_geometry'])}")

    return merged


def report_join_gaps(regions, enriched):
    """Codes present on only one side of the geometry/case data join."""
    region_codes = set(regions['code'].dropna())
    case_codes = set(enriched[REGION_CODE_COLUMN].dropna())
    return {
        'missing_case_data': sorted(region_codes - case_codes),
        'missing_geometry': sorted(case_codes - region_codes),
        'unmapped_fragments': int(regions['code'].isna().sum()),
    }
