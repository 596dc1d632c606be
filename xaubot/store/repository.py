"""
Position repository.

`PositionRepository` is the storage interface the trading service
depends on.  `InMemoryPositionRepository` keeps positions in a dict
guarded by a single lock and hands out deep copies, so callers never
hold references into the store's internal state.
"""

from __future__ import annotations

import abc
import copy
import logging
import threading
from typing import Dict, Iterable, List, Optional

from ..errors import InvalidParameterError, NotFoundError
from ..execution.models import Position, PositionStatus, TradingSymbol
from ..utils.persistence import load_positions, save_positions


logger = logging.getLogger(__name__)


class PositionRepository(abc.ABC):
    """CRUD interface over position records."""

    @abc.abstractmethod
    def get_all(self) -> List[Position]: ...

    @abc.abstractmethod
    def get_by_id(self, position_id: int) -> Position: ...

    @abc.abstractmethod
    def get_by_user(self, user_id: int) -> List[Position]: ...

    @abc.abstractmethod
    def get_by_status(self, status: PositionStatus) -> List[Position]: ...

    @abc.abstractmethod
    def get_by_symbol(self, symbol: TradingSymbol) -> List[Position]: ...

    @abc.abstractmethod
    def add(self, position: Position) -> int: ...

    @abc.abstractmethod
    def update(self, position: Position) -> None: ...

    @abc.abstractmethod
    def delete(self, position_id: int) -> None: ...


class InMemoryPositionRepository(PositionRepository):
    """Thread‑safe in‑memory repository.  Ids are assigned sequentially from 1."""

    def __init__(self, positions: Optional[Iterable[Position]] = None) -> None:
        self._lock = threading.Lock()
        self._positions: Dict[int, Position] = {}
        self._next_id = 1
        for position in positions or ():
            if position.id is None:
                self.add(position)
            else:
                self._positions[position.id] = copy.deepcopy(position)
                self._next_id = max(self._next_id, position.id + 1)

    @classmethod
    def from_snapshot(cls, path: str) -> "InMemoryPositionRepository":
        """Create a repository from a JSON snapshot; empty if the file is missing."""
        positions = load_positions(path) or []
        logger.debug("Restored %d positions from %s", len(positions), path)
        return cls(positions)

    def snapshot(self, path: str) -> None:
        save_positions(path, self.get_all())

    def _select(self, predicate) -> List[Position]:
        with self._lock:
            return [copy.deepcopy(p) for p in self._positions.values() if predicate(p)]

    def get_all(self) -> List[Position]:
        return self._select(lambda p: True)

    def get_by_id(self, position_id: int) -> Position:
        with self._lock:
            try:
                return copy.deepcopy(self._positions[position_id])
            except KeyError:
                raise NotFoundError("Position not found", position_id=position_id) from None

    def get_by_user(self, user_id: int) -> List[Position]:
        return self._select(lambda p: p.user_id == user_id)

    def get_by_status(self, status: PositionStatus) -> List[Position]:
        return self._select(lambda p: p.status is status)

    def get_by_symbol(self, symbol: TradingSymbol) -> List[Position]:
        symbol = TradingSymbol.parse(symbol)
        return self._select(lambda p: p.symbol is symbol)

    def add(self, position: Position) -> int:
        if position is None:
            raise InvalidParameterError("Position is required")
        with self._lock:
            stored = copy.deepcopy(position)
            stored.id = self._next_id
            self._next_id += 1
            self._positions[stored.id] = stored
            return stored.id

    def update(self, position: Position) -> None:
        with self._lock:
            if position.id not in self._positions:
                raise NotFoundError("Position not found", position_id=position.id)
            self._positions[position.id] = copy.deepcopy(position)

    def delete(self, position_id: int) -> None:
        with self._lock:
            if position_id not in self._positions:
                raise NotFoundError("Position not found", position_id=position_id)
            del self._positions[position_id]
