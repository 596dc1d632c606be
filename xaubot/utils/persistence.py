"""
Position store persistence.

The in‑memory position store can be snapshotted to a JSON file and
restored later, so that the `risk` command can work on positions
recorded by a previous session.  This module provides the JSON
load/save functions and the mapping between `Position` records and
plain dictionaries.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional
import pandas as pd

from ..execution.models import Position, PositionSide, PositionStatus, TradingSymbol


def _ts(value: Optional[str]) -> Optional[pd.Timestamp]:
    return pd.Timestamp(value) if value is not None else None


def position_to_dict(position: Position) -> Dict[str, Any]:
    return {
        'id': position.id,
        'user_id': position.user_id,
        'symbol': position.symbol.value,
        'side': position.side.value,
        'size': position.size,
        'entry_price': position.entry_price,
        'exit_price': position.exit_price,
        'stop_loss': position.stop_loss,
        'take_profit': position.take_profit,
        'status': position.status.value,
        'open_time': position.open_time.isoformat(),
        'close_time': position.close_time.isoformat() if position.close_time is not None else None,
        'notes': position.notes,
    }


def position_from_dict(data: Dict[str, Any]) -> Position:
    return Position(
        id=data.get('id'),
        user_id=data['user_id'],
        symbol=TradingSymbol.parse(data['symbol']),
        side=PositionSide(data['side']),
        size=float(data['size']),
        entry_price=float(data['entry_price']),
        exit_price=data.get('exit_price'),
        stop_loss=data.get('stop_loss'),
        take_profit=data.get('take_profit'),
        status=PositionStatus(data.get('status', PositionStatus.OPEN.value)),
        open_time=pd.Timestamp(data['open_time']),
        close_time=_ts(data.get('close_time')),
        notes=data.get('notes'),
    )


def load_positions(path: str) -> Optional[List[Position]]:
    """Load a JSON snapshot of positions.

    Parameters
    ----------
    path : str
        Path to the JSON file.

    Returns
    -------
    list of Position or None
        The stored positions if the file exists, otherwise `None`.
    """
    file_path = Path(path)
    if not file_path.exists():
        return None
    with file_path.open("r", encoding="utf-8") as fh:
        raw = json.load(fh)
    return [position_from_dict(item) for item in raw.get('positions', [])]


def save_positions(path: str, positions: List[Position]) -> None:
    """Write a JSON snapshot of positions to disk.

    Parameters
    ----------
    path : str
        Path to the output file.  Parent directories are created.
    positions : list of Position
        Records to store.
    """
    file_path = Path(path)
    file_path.parent.mkdir(parents=True, exist_ok=True)
    state = {'positions': [position_to_dict(p) for p in positions]}
    with file_path.open("w", encoding="utf-8") as fh:
        json.dump(state, fh, ensure_ascii=False, indent=2, sort_keys=True)
