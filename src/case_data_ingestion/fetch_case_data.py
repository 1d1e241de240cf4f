"""
Fetch the openZH per-canton COVID-19 time series.

Only the reporting date, the canton abbreviation and the four cumulative
counters are kept from each record; everything else in the feed is dropped.
"""

import logging
import requests
import pandas as pd

from src.config import CASE_DATA_URL, REQUEST_TIMEOUT, CASE_FIELDS, REGION_CODE_COLUMN, COUNTER_COLUMNS
from src.errors import FetchError, ParseError

logger = logging.getLogger(__name__)


def fetch_case_records(url=CASE_DATA_URL, timeout=REQUEST_TIMEOUT):
    """
    Download the case feed and return it as a CaseRecord frame.

    Args:
        url: endpoint returning JSON of the form {"records": [...]}
        timeout: request timeout in seconds

    Raises:
        FetchError: endpoint unreachable, HTTP error or malformed payload
        ParseError: a date or counter in the payload could not be parsed
    """
    logger.info(f"Fetching case data from {url}")
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise FetchError(f"Case data endpoint unavailable: {str(e)}") from e

    try:
        payload = response.json()
    except ValueError as e:
        raise FetchError(f"Case data endpoint returned invalid JSON: {str(e)}") from e

    if not isinstance(payload, dict) or not isinstance(payload.get('records'), list):
        raise FetchError("Case data payload has no 'records' list")

    records = payload['records']
    logger.info(f"Received {len(records)} records")
    return records_to_frame(records)


def records_to_frame(records):
    """Project raw feed records onto CASE_FIELDS and parse their values."""
    rows = []
    for i, record in enumerate(records):
        if not isinstance(record, dict):
            raise FetchError(f"Record {i} is not a mapping")
        for field in ('date', REGION_CODE_COLUMN):
            if record.get(field) is None:
                raise FetchError(f"Record {i} has no '{field}'")
        rows.append({field: record.get(field) for field in CASE_FIELDS})

    df = pd.DataFrame(rows, columns=CASE_FIELDS)
    df['date'] = parse_dates(df['date'])
    df[REGION_CODE_COLUMN] = df[REGION_CODE_COLUMN].astype(str)
    for column in COUNTER_COLUMNS:
        df[column] = parse_counts(df[column])

    return df


def parse_dates(series):
    """Parse strict YYYY-MM-DD strings into midnight timestamps."""
    malformed = ~series.astype(str).str.fullmatch(r"\d{4}-\d{2}-\d{2}").astype(bool)
    if malformed.any():
        raise ParseError(f"Malformed date: {series[malformed].iloc[0]!r}, expected YYYY-MM-DD")

    try:
        return pd.to_datetime(series, format='%Y-%m-%d', errors='raise')
    except (ValueError, TypeError) as e:
        raise ParseError(f"Malformed date in case data: {str(e)}") from e


def parse_counts(series):
    """Parse a cumulative counter column; nulls stay <NA>."""
    try:
        numeric = pd.to_numeric(series, errors='raise')
    except (ValueError, TypeError) as e:
        raise ParseError(f"Malformed count in '{series.name}': {str(e)}") from e

    # Counters are integral; a fractional value means the field is corrupt
    fractional = numeric.notna() & (numeric % 1 != 0)
    if fractional.any():
        raise ParseError(f"Non-integer count in '{series.name}': {numeric[fractional].iloc[0]}")

    return numeric.astype('Int64')


def parse_as_of(value):
    """Parse a single reporting date; strings must be YYYY-MM-DD."""
    if value is None:
        return None
    if isinstance(value, str):
        return parse_dates(pd.Series([value], name='as_of')).iloc[0]
    return pd.Timestamp(value).normalize()
