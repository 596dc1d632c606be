"""
Trading service.

Lifecycle operations on positions (open, close, cancel, stop and
target updates) with their validation rules, on top of a
`PositionRepository`.  Every mutation goes through the repository;
records returned to the caller are copies.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from ..errors import InvalidStateError
from ..execution.models import (
    Position,
    PositionSide,
    PositionStatus,
    TradingSymbol,
    check_stop_loss,
    check_take_profit,
)
from .repository import PositionRepository


logger = logging.getLogger(__name__)


class TradingService:
    """Open, close and adjust positions held in a repository."""

    def __init__(self, repository: PositionRepository) -> None:
        self.repository = repository

    def open_position(
        self,
        user_id: int,
        symbol: TradingSymbol,
        side: PositionSide,
        size: float,
        entry_price: float,
        stop_loss: Optional[float] = None,
        take_profit: Optional[float] = None,
        notes: Optional[str] = None,
    ) -> int:
        """Validate and store a new open position; return its id."""
        position = Position(
            user_id=user_id,
            symbol=TradingSymbol.parse(symbol),
            side=PositionSide(side),
            size=size,
            entry_price=entry_price,
            stop_loss=stop_loss,
            take_profit=take_profit,
            notes=notes,
        )
        position.validate()
        position_id = self.repository.add(position)
        logger.info("Opened position %d: %s %s %.4f @ %.5f",
                    position_id, position.side.value, position.symbol.value, size, entry_price)
        return position_id

    def close_position(self, position_id: int, exit_price: float) -> Position:
        position = self.repository.get_by_id(position_id)
        position.close(exit_price)
        self.repository.update(position)
        logger.info("Closed position %d at %.5f, P/L %.2f", position_id, exit_price, position.profit_loss)
        return position

    def cancel_position(self, position_id: int) -> Position:
        position = self.repository.get_by_id(position_id)
        position.cancel()
        self.repository.update(position)
        logger.info("Cancelled position %d", position_id)
        return position

    def _open_position(self, position_id: int) -> Position:
        position = self.repository.get_by_id(position_id)
        if position.status is not PositionStatus.OPEN:
            raise InvalidStateError("Position is not open", position_id=position_id, status=position.status.value)
        return position

    def update_stop_loss(self, position_id: int, stop_loss: float) -> Position:
        position = self._open_position(position_id)
        check_stop_loss(position.side, position.entry_price, stop_loss)
        position.stop_loss = stop_loss
        self.repository.update(position)
        return position

    def update_take_profit(self, position_id: int, take_profit: float) -> Position:
        position = self._open_position(position_id)
        check_take_profit(position.side, position.entry_price, take_profit)
        position.take_profit = take_profit
        self.repository.update(position)
        return position

    def open_positions(self) -> List[Position]:
        return self.repository.get_by_status(PositionStatus.OPEN)

    def user_positions(self, user_id: int) -> List[Position]:
        return self.repository.get_by_user(user_id)

    def total_profit_loss(self, user_id: int) -> float:
        """Realised P/L over the user's closed positions."""
        return sum(
            p.profit_loss or 0.0
            for p in self.repository.get_by_user(user_id)
            if p.status is PositionStatus.CLOSED
        )

    def current_exposure(self, user_id: int, symbol: Optional[TradingSymbol] = None) -> float:
        """Entry notional of the user's open positions, optionally for one symbol."""
        wanted = TradingSymbol.parse(symbol) if symbol is not None else None
        return sum(
            p.size * p.entry_price
            for p in self.repository.get_by_user(user_id)
            if p.status is PositionStatus.OPEN and (wanted is None or p.symbol is wanted)
        )
