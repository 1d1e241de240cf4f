import logging
from pathlib import Path
import pandas as pd

from src.config import POPULATION_FILE
from src.errors import ParseError

logger = logging.getLogger(__name__)


def load_population(path=POPULATION_FILE):
    """
    Load the BFS population table and sum it per canton.

    The reference table lists sub-regions with their canton abbreviation
    (`ktn`) and population (`pop_size`). Returns one row per canton with
    columns `ktn` and `population`.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(
            f"Population table not found at {path}. Download the BFS population table first."
        )

    if path.suffix.lower() in ('.xlsx', '.xls'):
        df = pd.read_excel(path, dtype={'ktn': str})
    else:
        df = pd.read_csv(path, dtype={'ktn': str})

    missing = {'ktn', 'pop_size'} - set(df.columns)
    if missing:
        raise ParseError(f"Population table {path} is missing columns: {sorted(missing)}")

    try:
        df['pop_size'] = pd.to_numeric(df['pop_size'], errors='raise')
    except (ValueError, TypeError) as e:
        raise ParseError(f"Malformed population size in {path}: {str(e)}") from e

    population = (
        df.groupby('ktn', as_index=False)['pop_size']
        .sum()
        .rename(columns={'pop_size': 'population'})
    )
    population['population'] = population['population'].astype('int64')

    logger.info(f"Loaded population for {len(population)} cantons from {len(df)} rows")
    return population
