"""Custom exceptions for the pair signal analyzer.

All analysis-layer and market-data exceptions live here
to avoid circular imports between modules.
"""


class PairSignalError(Exception):
    """Base exception for all pair signal errors."""


class InsufficientDataError(PairSignalError):
    """Raised when too few aligned points exist to produce a decision this cycle."""


class MalformedInputError(PairSignalError):
    """Raised when source bars are unusable (zero, negative or non-numeric anchor price)."""


class EmptySeriesError(MalformedInputError, InsufficientDataError):
    """Raised when a reference or comparison bar sequence is empty.

    Subclasses both MalformedInputError and InsufficientDataError so callers
    handling either category skip the cycle.
    """


class MarketDataError(PairSignalError):
    """Raised when bars or prices cannot be fetched after all retries."""
