"""
Moving‑average crossover strategy.

The strategy compares a fast and a slow simple moving average of the
closing price.  When the fast average crosses above the slow one it
emits a buy, when it crosses below a sell, and otherwise a low
confidence hold.  Evaluation is stateless: every call works only on
the bars it is given.
"""

from __future__ import annotations

import logging
import math
from typing import List, Optional
import pandas as pd

from ..config.schema import StrategyConfig
from ..data.bars import validate_bars
from ..errors import InvalidParameterError, InvalidStateError
from ..execution.models import TradingSymbol
from .indicators import BULLISH, BEARISH, crossover, simple_moving_average
from .signals import SignalType, StrategySignal


logger = logging.getLogger(__name__)

HOLD_CONFIDENCE = 0.1
MIN_CONFIDENCE = 0.1
STRONG_CONFIDENCE = 0.8
MAX_SIZING_RISK_PERCENT = 5.0


class MovingAverageCrossoverStrategy:
    """Generate buy/sell signals from fast/slow SMA crossovers."""

    name = "Moving Average Crossover"
    description = ("Buy signal when the fast MA crosses above the slow MA, "
                   "sell signal when the fast MA crosses below the slow MA.")

    def __init__(self, config: Optional[StrategyConfig] = None) -> None:
        self.config = config or StrategyConfig()

    def moving_averages(self, bars: pd.DataFrame) -> pd.DataFrame:
        """Return a frame with `close`, `fast` and `slow` columns."""
        closes = bars['close']
        return pd.DataFrame({
            'close': closes,
            'fast': simple_moving_average(closes, self.config.fast_period),
            'slow': simple_moving_average(closes, self.config.slow_period),
        })

    def confidence(self, fast: float, slow: float) -> float:
        """Scale the relative MA spread by the threshold, clamped to [0.1, 1.0]."""
        if slow == 0:
            return MIN_CONFIDENCE
        spread = abs(fast - slow) / slow
        return max(min(spread / self.config.signal_threshold, 1.0), MIN_CONFIDENCE)

    def _signal(
        self,
        symbol: TradingSymbol,
        direction: Optional[str],
        fast: float,
        slow: float,
        price: float,
        ts: pd.Timestamp,
    ) -> StrategySignal:
        cfg = self.config
        stop_loss: Optional[float] = None
        take_profit: Optional[float] = None
        if direction == BULLISH:
            confidence = self.confidence(fast, slow)
            signal_type = SignalType.STRONG_BUY if confidence > STRONG_CONFIDENCE else SignalType.BUY
            reason = "Bullish crossover: Fast MA crossed above Slow MA"
            stop_loss = price * (1.0 - cfg.stop_loss_pct)
            take_profit = price * (1.0 + cfg.take_profit_pct)
        elif direction == BEARISH:
            confidence = self.confidence(fast, slow)
            signal_type = SignalType.STRONG_SELL if confidence > STRONG_CONFIDENCE else SignalType.SELL
            reason = "Bearish crossover: Fast MA crossed below Slow MA"
            stop_loss = price * (1.0 + cfg.stop_loss_pct)
            take_profit = price * (1.0 - cfg.take_profit_pct)
        else:
            confidence = HOLD_CONFIDENCE
            signal_type = SignalType.HOLD
            reason = "No MA crossover detected"

        return StrategySignal(
            symbol=symbol,
            signal_type=signal_type,
            reason=reason,
            entry_price=price,
            confidence=confidence,
            stop_loss=stop_loss,
            take_profit=take_profit,
            indicator_values={
                f"SMA{cfg.fast_period}": fast,
                f"SMA{cfg.slow_period}": slow,
            },
            generated_at=ts,
        )

    def evaluate(
        self,
        symbol: TradingSymbol,
        bars: pd.DataFrame,
        current_price: Optional[float] = None,
    ) -> StrategySignal:
        """Evaluate the latest two bars for a crossover.

        Parameters
        ----------
        symbol : TradingSymbol
            Instrument the bars belong to.
        bars : pandas.DataFrame
            Ascending bars with a `close` column; at least
            `slow_period + 5` rows.
        current_price : float, optional
            Price used as entry for the signal.  Defaults to the last close.

        Raises
        ------
        InsufficientDataError
            If the series is too short or has missing closes.
        InvalidParameterError
            If `current_price` is not positive.
        """
        symbol = TradingSymbol.parse(symbol)
        bars = validate_bars(bars, min_bars=self.config.min_bars)
        if current_price is not None and current_price <= 0:
            raise InvalidParameterError("Current price must be greater than zero", current_price=current_price)

        ma = self.moving_averages(bars)
        prev, last = ma.iloc[-2], ma.iloc[-1]
        direction = crossover(prev['fast'], prev['slow'], last['fast'], last['slow'])
        price = float(last['close']) if current_price is None else float(current_price)

        signal = self._signal(symbol, direction, float(last['fast']), float(last['slow']), price, ma.index[-1])
        logger.debug("%s evaluated as %s (confidence %.3f)", symbol.value, signal.signal_type.value, signal.confidence)
        return signal

    def scan(self, symbol: TradingSymbol, bars: pd.DataFrame) -> List[StrategySignal]:
        """Return the signal emitted at every crossover bar of the series.

        Hold bars are omitted.  The first bar on which both averages
        are defined reports the direction they already point in.
        """
        symbol = TradingSymbol.parse(symbol)
        bars = validate_bars(bars, min_bars=self.config.slow_period)
        ma = self.moving_averages(bars)
        fast = ma['fast'].tolist()
        slow = ma['slow'].tolist()
        closes = ma['close'].tolist()

        signals: List[StrategySignal] = []
        for i in range(1, len(ma)):
            direction = crossover(fast[i - 1], slow[i - 1], fast[i], slow[i])
            if direction is None:
                continue
            signals.append(self._signal(symbol, direction, fast[i], slow[i], closes[i], ma.index[i]))
        return signals

    def position_size(self, signal: StrategySignal, account_balance: float, risk_percent: float) -> float:
        """Units to trade so that hitting the signal's stop loses `risk_percent` of the balance.

        Returns 0 for a hold signal.  The size is rounded down to two
        decimals.
        """
        if risk_percent <= 0 or risk_percent > MAX_SIZING_RISK_PERCENT:
            raise InvalidParameterError("Risk percentage must be between 0 and 5 percent", risk_percent=risk_percent)
        if signal.signal_type is SignalType.HOLD:
            return 0.0
        if signal.stop_loss is None:
            raise InvalidStateError("Stop loss is required for position sizing", symbol=signal.symbol.value)

        risk_amount = account_balance * (risk_percent / 100)
        if signal.signal_type.is_buy:
            risk_per_unit = signal.entry_price - signal.stop_loss
        else:
            risk_per_unit = signal.stop_loss - signal.entry_price
        if risk_per_unit <= 0:
            raise InvalidParameterError("Invalid risk per unit", risk_per_unit=risk_per_unit)
        return math.floor(risk_amount / risk_per_unit * 100) / 100
