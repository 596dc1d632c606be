"""
CSV data loader.

This module provides a class to load historical OHLCV data from CSV
files.  The expected schema for each CSV is:

```
time,open,high,low,close,volume
```

Only the `time` and `close` columns are required.  Additional columns
are ignored.  The `time` column should contain ISO‑formatted
timestamps.  Naive timestamps are localised to the timezone specified
in the configuration.
"""

from __future__ import annotations

import logging
from pathlib import Path
import pandas as pd

from ..errors import InvalidParameterError, NotFoundError
from ..execution.models import TradingSymbol
from ..utils.timeutils import localize_index
from .bars import validate_bars


logger = logging.getLogger(__name__)


class CSVDataLoader:
    """Load daily OHLCV bars from CSV files.

    Parameters
    ----------
    csv_dir : str
        Directory where the CSV files are located.  Each symbol's file
        must be named `{SYMBOL}.csv`.
    timezone : str
        IANA timezone name used to localise timestamps.
    """

    def __init__(self, csv_dir: str, timezone: str) -> None:
        self.csv_dir = Path(csv_dir)
        self.timezone = timezone

    def path_for(self, symbol: TradingSymbol) -> Path:
        return self.csv_dir / f"{TradingSymbol.parse(symbol).value}.csv"

    def load(self, symbol: TradingSymbol) -> pd.DataFrame:
        file_path = self.path_for(symbol)
        if not file_path.exists():
            raise NotFoundError("CSV file not found", symbol=symbol, path=str(file_path))

        df = pd.read_csv(file_path)
        df.columns = [c.strip().lower() for c in df.columns]
        if 'time' not in df.columns:
            raise InvalidParameterError(
                "Unrecognized CSV format, missing 'time' column",
                symbol=symbol,
                columns=list(df.columns),
            )
        df['time'] = pd.to_datetime(df['time'], errors='raise')
        df = df.set_index('time').sort_index()
        df.index = localize_index(df.index, self.timezone)
        df.index.name = 'timestamp'

        logger.debug("Loaded %d bars for %s from %s", len(df), symbol, file_path)
        return validate_bars(df)
