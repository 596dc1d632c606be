"""
Bar series contract.

The evaluator and the backtester consume a `pandas.DataFrame` of bars
indexed by timestamp, ascending, with at least a `close` column.  The
remaining OHLCV columns (`open`, `high`, `low`, `volume`) are carried
along when present but are not required.

Missing bars are never interpolated: a NaN close is reported as
insufficient data so the caller can fetch a clean series.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional
import pandas as pd

from ..errors import InsufficientDataError, InvalidParameterError
from ..utils.timeutils import localize_index

BAR_COLUMNS = ["open", "high", "low", "close", "volume"]
PRICE_COLUMNS = ["open", "high", "low", "close"]


def validate_bars(df: pd.DataFrame, min_bars: Optional[int] = None) -> pd.DataFrame:
    """Check a bar frame against the contract and return a float copy.

    Parameters
    ----------
    df : pandas.DataFrame
        Bars indexed by a `DatetimeIndex`.
    min_bars : int, optional
        Minimum number of bars required.

    Raises
    ------
    InvalidParameterError
        Missing `close` column, non‑datetime/unsorted/duplicate index or
        non‑positive prices.
    InsufficientDataError
        Fewer than `min_bars` rows, or a missing (NaN) close.
    """
    if 'close' not in df.columns:
        raise InvalidParameterError("Bar series has no 'close' column", columns=list(df.columns))
    if not isinstance(df.index, pd.DatetimeIndex):
        raise InvalidParameterError("Bar series must be indexed by timestamp")
    if df.index.has_duplicates:
        raise InvalidParameterError("Bar series has duplicate timestamps")
    if not df.index.is_monotonic_increasing:
        raise InvalidParameterError("Bar series must be sorted by ascending timestamp")

    present = [c for c in BAR_COLUMNS if c in df.columns]
    bars = df[present].astype(float)

    if bars['close'].isna().any():
        missing = bars.index[bars['close'].isna()]
        raise InsufficientDataError("Bar series has missing closes", first_missing=missing[0])
    prices = bars[[c for c in PRICE_COLUMNS if c in bars.columns]]
    if (prices <= 0).any().any():
        raise InvalidParameterError("Bar prices must be greater than zero")
    if min_bars is not None and len(bars) < min_bars:
        raise InsufficientDataError("Not enough historical data", bars=len(bars), required=min_bars)
    return bars


def bars_from_records(records: Iterable[Dict[str, Any]], timezone: str = "UTC") -> pd.DataFrame:
    """Build a bar frame from `{timestamp, open, high, low, close, volume}` dicts."""
    df = pd.DataFrame(list(records))
    if df.empty:
        return pd.DataFrame(columns=BAR_COLUMNS, index=pd.DatetimeIndex([], tz=timezone))
    if 'timestamp' not in df.columns:
        raise InvalidParameterError("Bar records need a 'timestamp' field")
    df['timestamp'] = pd.to_datetime(df['timestamp'])
    df = df.set_index('timestamp')
    df.index = localize_index(df.index, timezone)
    return df
