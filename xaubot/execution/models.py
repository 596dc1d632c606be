"""
Position and trade models.

These dataclasses represent the objects passed between the store, the
risk calculator, the strategy and the backtester.  Keeping them in a
separate module improves readability and makes unit testing easier.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import pandas as pd

from ..errors import InvalidParameterError, InvalidStateError
from ..utils.timeutils import utc_now


class TradingSymbol(str, Enum):
    """Closed set of tradable instruments."""

    XAUUSD = "XAUUSD"
    XAGUSD = "XAGUSD"
    EURUSD = "EURUSD"
    GBPUSD = "GBPUSD"
    USDJPY = "USDJPY"
    BTCUSD = "BTCUSD"
    ETHUSD = "ETHUSD"

    @classmethod
    def parse(cls, value: "str | TradingSymbol") -> "TradingSymbol":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InvalidParameterError("Unknown trading symbol", symbol=value) from None

    @property
    def volatility_factor(self) -> float:
        """Typical relative price move per tick for the instrument."""
        return _VOLATILITY[self]


_VOLATILITY = {
    TradingSymbol.XAUUSD: 0.001,
    TradingSymbol.XAGUSD: 0.002,
    TradingSymbol.EURUSD: 0.0005,
    TradingSymbol.GBPUSD: 0.0007,
    TradingSymbol.USDJPY: 0.0006,
    TradingSymbol.BTCUSD: 0.01,
    TradingSymbol.ETHUSD: 0.015,
}


class PositionSide(str, Enum):
    LONG = "long"
    SHORT = "short"

    @property
    def direction(self) -> int:
        """+1 for long, -1 for short."""
        return 1 if self is PositionSide.LONG else -1


class PositionStatus(str, Enum):
    OPEN = "open"
    PENDING = "pending"
    CLOSED = "closed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PositionStatus.CLOSED, PositionStatus.CANCELLED)


@dataclass
class Position:
    """A trade's economic state.

    `id` is assigned by the store on creation.  `stop_loss` and
    `take_profit` are optional; `None` means "unset" and is never
    replaced by zero.
    """

    user_id: int
    symbol: TradingSymbol
    side: PositionSide
    size: float
    entry_price: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    status: PositionStatus = PositionStatus.OPEN
    exit_price: Optional[float] = None
    open_time: pd.Timestamp = field(default_factory=utc_now)
    close_time: Optional[pd.Timestamp] = None
    notes: Optional[str] = None
    id: Optional[int] = None

    def validate(self) -> None:
        """Check size, entry price and the side of the stop/target levels.

        Raises
        ------
        InvalidParameterError
            On a non‑positive size or price, or a stop/target on the
            wrong side of the entry.
        """
        if self.size <= 0:
            raise InvalidParameterError("Size must be greater than zero", size=self.size)
        if self.entry_price <= 0:
            raise InvalidParameterError("Entry price must be greater than zero", entry_price=self.entry_price)
        if self.stop_loss is not None:
            check_stop_loss(self.side, self.entry_price, self.stop_loss)
        if self.take_profit is not None:
            check_take_profit(self.side, self.entry_price, self.take_profit)

    @property
    def profit_loss(self) -> Optional[float]:
        """Realised P/L, defined only once the position is closed."""
        if self.status is not PositionStatus.CLOSED or self.exit_price is None:
            return None
        return self.side.direction * self.size * (self.exit_price - self.entry_price)

    @property
    def duration(self) -> Optional[pd.Timedelta]:
        if self.close_time is None:
            return None
        return self.close_time - self.open_time

    def is_profit(self) -> bool:
        pnl = self.profit_loss
        return pnl is not None and pnl > 0

    def close(self, exit_price: float, when: Optional[pd.Timestamp] = None) -> None:
        if self.status is not PositionStatus.OPEN:
            raise InvalidStateError("Position is not open", position_id=self.id, status=self.status.value)
        if exit_price <= 0:
            raise InvalidParameterError("Exit price must be greater than zero", exit_price=exit_price)
        self.exit_price = exit_price
        self.close_time = when if when is not None else utc_now()
        self.status = PositionStatus.CLOSED

    def cancel(self, when: Optional[pd.Timestamp] = None) -> None:
        if self.status not in (PositionStatus.OPEN, PositionStatus.PENDING):
            raise InvalidStateError("Position cannot be cancelled", position_id=self.id, status=self.status.value)
        self.status = PositionStatus.CANCELLED
        self.close_time = when if when is not None else utc_now()


def check_stop_loss(side: PositionSide, entry_price: float, stop_loss: float) -> None:
    if stop_loss <= 0:
        raise InvalidParameterError("Stop loss must be greater than zero", stop_loss=stop_loss)
    if side is PositionSide.LONG and stop_loss >= entry_price:
        raise InvalidParameterError("For long positions, stop loss must be lower than entry price",
                                    stop_loss=stop_loss, entry_price=entry_price)
    if side is PositionSide.SHORT and stop_loss <= entry_price:
        raise InvalidParameterError("For short positions, stop loss must be higher than entry price",
                                    stop_loss=stop_loss, entry_price=entry_price)


def check_take_profit(side: PositionSide, entry_price: float, take_profit: float) -> None:
    if take_profit <= 0:
        raise InvalidParameterError("Take profit must be greater than zero", take_profit=take_profit)
    if side is PositionSide.LONG and take_profit <= entry_price:
        raise InvalidParameterError("For long positions, take profit must be higher than entry price",
                                    take_profit=take_profit, entry_price=entry_price)
    if side is PositionSide.SHORT and take_profit >= entry_price:
        raise InvalidParameterError("For short positions, take profit must be lower than entry price",
                                    take_profit=take_profit, entry_price=entry_price)


@dataclass
class BacktestTrade:
    """Represents a completed trade within a single backtest run."""
    side: PositionSide
    quantity: float
    entry_time: pd.Timestamp
    entry_price: float
    exit_time: Optional[pd.Timestamp] = None
    exit_price: Optional[float] = None
    profit_loss: Optional[float] = None
    profit_loss_pct: Optional[float] = None
    exit_reason: Optional[str] = None

    @property
    def is_winner(self) -> bool:
        return self.profit_loss is not None and self.profit_loss > 0
