"""
Performance metrics calculations.

This module provides helpers to compute summary statistics from a
backtest result.  These metrics are written to the JSON summary of
each report and logged by the command line.
"""

from __future__ import annotations

from typing import List
import math

from ..execution.backtest_exec import BacktestResult


def compute_metrics(result: BacktestResult) -> dict:
    """Compute a set of summary statistics for the backtest.

    Parameters
    ----------
    result : BacktestResult
        Completed backtest run.

    Returns
    -------
    dict
        Dictionary of performance metrics.
    """
    trades = result.trades
    initial = result.initial_balance
    total_return = result.net_profit / initial if initial else 0.0

    # Per‑trade return Sharpe ratio
    returns: List[float] = []
    for trade in trades:
        notional = trade.entry_price * trade.quantity
        if notional != 0 and trade.profit_loss is not None:
            returns.append(trade.profit_loss / notional)
    if returns:
        mean_ret = sum(returns) / len(returns)
        variance = sum((r - mean_ret) ** 2 for r in returns) / len(returns)
        std_dev = math.sqrt(variance)
        sharpe = (mean_ret / std_dev) * math.sqrt(len(returns)) if std_dev > 0 else 0.0
    else:
        sharpe = 0.0

    avg_trade = sum(t.profit_loss or 0.0 for t in trades) / len(trades) if trades else 0.0

    return {
        'symbol': result.symbol.value,
        'start_date': result.start_date.isoformat(),
        'end_date': result.end_date.isoformat(),
        'initial_balance': initial,
        'final_balance': result.final_balance,
        'net_profit': result.net_profit,
        'total_return': total_return,
        'num_trades': result.total_signals,
        'winning_trades': result.winning_trades,
        'losing_trades': result.losing_trades,
        'win_rate': result.win_rate,
        'profit_factor': result.profit_factor,
        'max_drawdown': result.max_drawdown,
        'sharpe': sharpe,
        'avg_trade': avg_trade,
    }
