"""
Join canton case counts to population, compute incidence per 100,000
inhabitants and persist the latest reporting day as a flat CSV file.

This CSV is the interchange point between ingestion and classification,
so its column order and header are fixed (see ENRICHED_COLUMNS).
"""

import os
import logging
import tempfile
from pathlib import Path
import numpy as np
import pandas as pd

from src.config import (
    CASE_DATA_URL, POPULATION_FILE, ENRICHED_FILE, ENRICHED_COLUMNS,
    REGION_CODE_COLUMN, COUNTER_COLUMNS, INCIDENCE_SCALE,
)
from src.errors import AmbiguousJoinError
from src.case_data_ingestion.fetch_case_data import fetch_case_records, parse_as_of
from src.case_data_ingestion.population import load_population

logger = logging.getLogger(__name__)


def join_population(cases, population):
    """Left join cases to the summed population table on the canton code."""
    duplicated = population['ktn'][population['ktn'].duplicated()]
    if not duplicated.empty:
        raise AmbiguousJoinError(f"Population table lists cantons more than once: {sorted(duplicated.unique())}")

    merged = pd.merge(
        cases,
        population[['ktn', 'population']],
        left_on=REGION_CODE_COLUMN,
        right_on='ktn',
        how='left'
    ).drop(columns='ktn')
    merged['population'] = merged['population'].astype('Int64')

    unmatched = sorted(merged.loc[merged['population'].isna(), REGION_CODE_COLUMN].unique())
    if unmatched:
        logger.warning(f"No population figure for: {', '.join(unmatched)}")

    return merged


def compute_incidence(df):
    """
    Add cumulative confirmed cases per 100,000 inhabitants.

    Incidence is NaN where population is missing or zero or where the
    confirmed count is missing. It is never zero-filled.
    """
    df = df.copy()
    population = df['population'].astype('float64')
    confirmed = df['ncumul_conf_fwd'].astype('float64')

    population = population.where(population > 0, np.nan)
    df['incidence'] = confirmed / population * INCIDENCE_SCALE

    return df


def filter_to_date(df, as_of=None):
    """
    Keep the rows reported on `as_of`.

    When `as_of` is None the most recent date present in the frame is used.
    """
    if df.empty:
        return df.copy()

    as_of = parse_as_of(as_of)
    if as_of is None:
        as_of = df['date'].max().normalize()

    latest = df[df['date'] == as_of].reset_index(drop=True)
    if latest.empty:
        logger.warning(f"No case records reported on {as_of.date()}")
    else:
        logger.info(f"Kept {len(latest)} records reported on {as_of.date()}")

    return latest


def enrich_case_data(cases, population, as_of=None):
    """Join population, compute incidence and keep one reporting date."""
    df = join_population(cases, population)
    df = compute_incidence(df)
    df = filter_to_date(df, as_of)
    return df[ENRICHED_COLUMNS]


def write_enriched_table(df, path=ENRICHED_FILE):
    """
    Write the enriched table to `path`.

    The file is written next to its destination and renamed into place, so a
    reader never sees a half-written table.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix='.tmp')
    try:
        with os.fdopen(fd, 'w', newline='') as f:
            df[ENRICHED_COLUMNS].to_csv(f, index=False, date_format='%Y-%m-%d')
        # mkstemp creates the file 0600; publish it with umask permissions like a plain open()
        umask = os.umask(0)
        os.umask(umask)
        os.chmod(temp_name, 0o666 & ~umask)
        os.replace(temp_name, path)
    except BaseException:
        if os.path.exists(temp_name):
            os.remove(temp_name)
        raise

    logger.info(f"Enriched table with {len(df)} rows saved to {path}")
    return path


def read_enriched_table(path=ENRICHED_FILE):
    """Read a table written by write_enriched_table with its original dtypes."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Enriched case table not found at {path}. Run the ingestion step first."
        )

    dtypes = {REGION_CODE_COLUMN: str, 'population': 'Int64', 'incidence': 'float64'}
    dtypes.update({column: 'Int64' for column in COUNTER_COLUMNS})
    # Only empty cells are missing; canton codes must never be read as NaN
    df = pd.read_csv(
        path, dtype=dtypes, parse_dates=['date'], date_format='%Y-%m-%d',
        keep_default_na=False, na_values=['']
    )

    return df[ENRICHED_COLUMNS]


def run_ingestion(url=CASE_DATA_URL, population_path=POPULATION_FILE, output_path=ENRICHED_FILE, as_of=None):
    """Fetch, enrich and persist the case data. Returns the output path."""
    as_of = parse_as_of(as_of)
    cases = fetch_case_records(url)
    logger.info(f"Parsed {len(cases)} case records for {cases[REGION_CODE_COLUMN].nunique()} cantons")

    population = load_population(population_path)
    enriched = enrich_case_data(cases, population, as_of)

    return write_enriched_table(enriched, output_path)
