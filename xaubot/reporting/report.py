"""
Report generation utilities.

This module turns backtest results into human‑readable artefacts:
CSV files of trades and equity curve, a JSON summary of performance
metrics and a PNG chart of the equity curve.
"""

from __future__ import annotations

import os
import json
import pandas as pd
import matplotlib

# Use non‑interactive backend for environments without display
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from ..execution.backtest_exec import BacktestResult
from .metrics import compute_metrics


def generate_backtest_report(result: BacktestResult, out_dir: str = "results") -> None:
    """Generate report files for a backtest run.

    Creates the output directory if it does not exist and writes the
    following files:

    - `trades.csv` – detailed list of trades
    - `equity_curve.csv` – account balance after each trade
    - `summary.json` – performance metrics
    - `equity_curve.png` – line chart of the equity curve
    """
    os.makedirs(out_dir, exist_ok=True)

    # Trades CSV
    trades_data = [
        {
            'timestamp_entry': t.entry_time.isoformat(),
            'timestamp_exit': t.exit_time.isoformat() if t.exit_time is not None else None,
            'symbol': result.symbol.value,
            'side': t.side.value,
            'quantity': t.quantity,
            'entry': t.entry_price,
            'exit': t.exit_price,
            'pnl': t.profit_loss,
            'pnl_pct': t.profit_loss_pct,
            'reason': t.exit_reason,
        }
        for t in result.trades
    ]
    df_trades = pd.DataFrame(trades_data, columns=[
        'timestamp_entry', 'timestamp_exit', 'symbol', 'side', 'quantity',
        'entry', 'exit', 'pnl', 'pnl_pct', 'reason',
    ])
    df_trades.to_csv(os.path.join(out_dir, 'trades.csv'), index=False)

    # Equity curve CSV, starting from the initial balance
    eq_data = [{'timestamp': result.start_date.isoformat(), 'equity': result.initial_balance}]
    eq_data += [
        {
            'timestamp': pt.timestamp.isoformat(),
            'equity': pt.equity,
        }
        for pt in result.equity_curve
    ]
    df_eq = pd.DataFrame(eq_data)
    df_eq.to_csv(os.path.join(out_dir, 'equity_curve.csv'), index=False)

    # Summary JSON
    metrics = compute_metrics(result)
    with open(os.path.join(out_dir, 'summary.json'), 'w', encoding='utf-8') as fh:
        json.dump(metrics, fh, indent=2, ensure_ascii=False)

    # Equity curve plot
    fig, ax = plt.subplots(figsize=(10, 4))
    ax.plot(pd.to_datetime(df_eq['timestamp'], utc=True), df_eq['equity'], linewidth=1.5)
    ax.set_title(f"Equity Curve – {result.symbol.value}")
    ax.set_xlabel('Time')
    ax.set_ylabel('Balance')
    fig.autofmt_xdate()
    fig.tight_layout()
    fig.savefig(os.path.join(out_dir, 'equity_curve.png'))
    plt.close(fig)
