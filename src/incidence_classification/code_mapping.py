import logging
from pathlib import Path
import pandas as pd

from src.config import CODE_MAPPING_FILE
from src.errors import ParseError, AmbiguousJoinError

logger = logging.getLogger(__name__)


def load_code_mapping(path=CODE_MAPPING_FILE):
    """
    Load the table translating numeric canton ids (geometry side) to canton
    abbreviations (case data side).

    Expected columns: `code` (e.g. "ZH") and `code_num` (e.g. 1).
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Code mapping not found at {path}")

    df = pd.read_csv(path, sep=None, engine='python', dtype={'code': str})

    missing = {'code', 'code_num'} - set(df.columns)
    if missing:
        raise ParseError(f"Code mapping {path} is missing columns: {sorted(missing)}")

    try:
        df['code_num'] = pd.to_numeric(df['code_num'], errors='raise').astype('int64')
    except (ValueError, TypeError) as e:
        raise ParseError(f"Malformed code_num in {path}: {str(e)}") from e
    df['code'] = df['code'].str.strip()

    mapping = df[['code', 'code_num']]
    validate_code_mapping(mapping)

    logger.info(f"Loaded {len(mapping)} canton codes from {path}")
    return mapping


def validate_code_mapping(mapping):
    """Reject mappings where a numeric id or a code appears more than once."""
    for column in ('code_num', 'code'):
        duplicated = mapping[column][mapping[column].duplicated()]
        if not duplicated.empty:
            raise AmbiguousJoinError(
                f"Code mapping is ambiguous, repeated {column}: {sorted(duplicated.unique().tolist())}"
            )
