"""
Exceptions raised by the ingestion and classification pipelines.

Join gaps (a canton present on one side of a join only) are not errors:
they flow through as missing values and are only logged.
"""


class FetchError(RuntimeError):
    """The case data endpoint was unreachable or returned a malformed payload."""


class ParseError(ValueError):
    """A date, a number or a required column could not be parsed."""


class AmbiguousJoinError(ValueError):
    """A join key occurs more than once on a side that must be unique."""
