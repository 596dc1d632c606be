"""
Timezone utilities.

This module centralises timestamp handling.  Position lifecycles are
stamped in UTC, and historical bars loaded from disk are localised to
the configured timezone with the same helper.
"""

from __future__ import annotations

import pandas as pd


def utc_now() -> pd.Timestamp:
    """Return the current time as a timezone‑aware UTC `pandas.Timestamp`."""
    return pd.Timestamp.now(tz="UTC")


def localize_index(index: pd.DatetimeIndex, tz_name: str) -> pd.DatetimeIndex:
    """Localise a naive index to `tz_name`, or convert an aware one."""
    if index.tz is None:
        return index.tz_localize(tz_name)
    return index.tz_convert(tz_name)
