"""
Backtest execution engine.

This module contains the `BacktestEngine` class which replays a
historical bar series through the moving‑average crossover rule,
simulates a single open position at a time and records performance.
Entries and exits are filled at the next bar's close so that a signal
never trades on the bar that produced it.  The engine is fully
deterministic: the same bars and configuration always produce the
same trades and statistics.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional
from dataclasses import dataclass, field
import pandas as pd

from ..config.schema import Config
from ..data.bars import validate_bars
from ..data.csv_data import CSVDataLoader
from ..strategy.indicators import BULLISH, BEARISH, crossover
from ..strategy.ma_crossover import MovingAverageCrossoverStrategy
from ..execution.models import BacktestTrade, PositionSide, TradingSymbol


logger = logging.getLogger(__name__)

END_OF_BACKTEST = "End of backtest period"
EXIT_LONG = "Exit long position on bearish crossover"
EXIT_SHORT = "Exit short position on bullish crossover"


@dataclass
class EquityPoint:
    """Represents the account balance at a given timestamp."""
    timestamp: pd.Timestamp
    equity: float


@dataclass
class BacktestResult:
    """Aggregate statistics and trade list of one backtest run."""
    symbol: TradingSymbol
    start_date: pd.Timestamp
    end_date: pd.Timestamp
    initial_balance: float
    final_balance: float
    winning_trades: int
    losing_trades: int
    profit_factor: float
    max_drawdown: float
    trades: List[BacktestTrade] = field(default_factory=list)
    equity_curve: List[EquityPoint] = field(default_factory=list)
    parameters: Dict[str, float] = field(default_factory=dict)

    @property
    def total_signals(self) -> int:
        return len(self.trades)

    @property
    def win_rate(self) -> float:
        return self.winning_trades / self.total_signals if self.total_signals else 0.0

    @property
    def net_profit(self) -> float:
        return self.final_balance - self.initial_balance


def _close_trade(trade: BacktestTrade, ts: pd.Timestamp, price: float, reason: str) -> float:
    """Fill the exit fields of `trade` and return its realised P/L."""
    pnl = trade.side.direction * (price - trade.entry_price) * trade.quantity
    trade.exit_time = ts
    trade.exit_price = price
    trade.exit_reason = reason
    trade.profit_loss = pnl
    trade.profit_loss_pct = pnl / (trade.entry_price * trade.quantity) * 100
    return pnl


class BacktestEngine:
    """Run moving‑average crossover backtests on historical bars."""

    def __init__(self, config: Config) -> None:
        self.config = config
        self.strategy = MovingAverageCrossoverStrategy(config.strategy)

    def run(self, symbol: TradingSymbol, bars: pd.DataFrame) -> BacktestResult:
        """Backtest a single symbol.

        Parameters
        ----------
        symbol : TradingSymbol
            Instrument the bars belong to.
        bars : pandas.DataFrame
            Ascending bars with a `close` column; at least
            `slow_period + 5` rows.

        Returns
        -------
        BacktestResult
            Trades, equity curve and summary statistics.
        """
        symbol = TradingSymbol.parse(symbol)
        strategy_cfg = self.config.strategy
        bars = validate_bars(bars, min_bars=strategy_cfg.min_bars)

        ma = self.strategy.moving_averages(bars)
        closes = ma['close'].tolist()
        fast = ma['fast'].tolist()
        slow = ma['slow'].tolist()
        dates = list(ma.index)

        initial_balance = float(self.config.backtest.initial_balance)
        fraction = self.config.backtest.position_fraction
        balance = initial_balance
        max_balance = initial_balance
        max_drawdown = 0.0
        total_profit = 0.0
        total_loss = 0.0

        trades: List[BacktestTrade] = []
        equity_curve: List[EquityPoint] = []
        current: Optional[BacktestTrade] = None

        def realise(pnl: float, ts: pd.Timestamp, track_drawdown: bool = True) -> None:
            nonlocal balance, max_balance, max_drawdown, total_profit, total_loss
            balance += pnl
            if pnl > 0:
                total_profit += pnl
            else:
                total_loss -= pnl
            if balance > max_balance:
                max_balance = balance
            elif track_drawdown:
                max_drawdown = max(max_drawdown, (max_balance - balance) / max_balance)
            equity_curve.append(EquityPoint(timestamp=ts, equity=balance))

        # Start where both averages and their previous values are defined;
        # stop one bar early since fills happen on the next bar.
        for i in range(strategy_cfg.slow_period, len(closes) - 1):
            direction = crossover(fast[i - 1], slow[i - 1], fast[i], slow[i])
            if direction is None:
                continue
            next_price = closes[i + 1]
            next_ts = dates[i + 1]

            if current is None:
                side = PositionSide.LONG if direction == BULLISH else PositionSide.SHORT
                current = BacktestTrade(
                    side=side,
                    quantity=balance * fraction / next_price,
                    entry_time=next_ts,
                    entry_price=next_price,
                )
                logger.debug("%s: open %s at %.5f on %s", symbol.value, side.value, next_price, next_ts)
            elif current.side is PositionSide.LONG and direction == BEARISH:
                realise(_close_trade(current, next_ts, next_price, EXIT_LONG), next_ts)
                trades.append(current)
                current = None
            elif current.side is PositionSide.SHORT and direction == BULLISH:
                realise(_close_trade(current, next_ts, next_price, EXIT_SHORT), next_ts)
                trades.append(current)
                current = None

        if current is not None:
            # Drawdown covers the walk only, not the forced close.
            realise(_close_trade(current, dates[-1], closes[-1], END_OF_BACKTEST), dates[-1],
                    track_drawdown=False)
            trades.append(current)

        profit_factor = total_profit / total_loss if total_loss > 0 else total_profit
        winners = sum(1 for t in trades if t.is_winner)

        result = BacktestResult(
            symbol=symbol,
            start_date=dates[0],
            end_date=dates[-1],
            initial_balance=initial_balance,
            final_balance=balance,
            winning_trades=winners,
            losing_trades=len(trades) - winners,
            profit_factor=profit_factor,
            max_drawdown=max_drawdown * 100,
            trades=trades,
            equity_curve=equity_curve,
            parameters={
                'fast_period': strategy_cfg.fast_period,
                'slow_period': strategy_cfg.slow_period,
                'signal_threshold': strategy_cfg.signal_threshold,
                'position_fraction': fraction,
            },
        )
        logger.info(
            "%s backtest: %d trades, win rate %.2f, net profit %.2f",
            symbol.value, result.total_signals, result.win_rate, result.net_profit,
        )
        return result

    def run_all(self, loader: Optional[CSVDataLoader] = None) -> Dict[TradingSymbol, BacktestResult]:
        """Backtest every configured symbol using CSV data."""
        loader = loader or CSVDataLoader(self.config.data.csv_dir, self.config.data.timezone)
        results: Dict[TradingSymbol, BacktestResult] = {}
        for symbol in self.config.trading_symbols:
            bars = loader.load(symbol)
            results[symbol] = self.run(symbol, bars)
        return results
