"""
Technical indicators shared by the live evaluator and the backtester.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Union
import pandas as pd

from ..errors import InsufficientDataError, InvalidParameterError

BULLISH = "bullish"
BEARISH = "bearish"


def simple_moving_average(closes: Union[pd.Series, Sequence[float]], period: int) -> pd.Series:
    """Trailing simple moving average.

    The result has the same length and index as `closes`.  Entry `i` is
    the mean of the `period` closes ending at `i`; the first
    `period - 1` entries are NaN placeholders.
    """
    if period < 1:
        raise InvalidParameterError("Period must be at least 1", period=period)
    series = closes if isinstance(closes, pd.Series) else pd.Series(list(closes), dtype=float)
    if len(series) < period:
        raise InsufficientDataError("Not enough price data for the specified period",
                                    bars=len(series), period=period)
    return series.astype(float).rolling(window=period, min_periods=period).mean()


def _missing(value: float) -> bool:
    return value is None or math.isnan(value)


def crossover(prev_fast: float, prev_slow: float, fast: float, slow: float) -> Optional[str]:
    """Classify the move between two consecutive bars.

    Returns `BULLISH` when the fast average goes from at or below the
    slow one to above it, `BEARISH` for the mirror move and `None`
    otherwise.  A bar whose averages are not yet defined has no
    relation, so the first fully defined bar counts as a crossover in
    whichever direction the averages already point.
    """
    if _missing(fast) or _missing(slow):
        return None
    prev_known = not (_missing(prev_fast) or _missing(prev_slow))
    if fast > slow and (not prev_known or prev_fast <= prev_slow):
        return BULLISH
    if fast < slow and (not prev_known or prev_fast >= prev_slow):
        return BEARISH
    return None
