"""
Application entry point.

This module defines a simple command‑line interface with three modes:

- ``backtest`` replays each configured symbol's CSV history through the
  moving‑average crossover strategy and writes a report per symbol;
- ``signal`` evaluates the latest signal for each symbol;
- ``risk`` prices the open positions of the stored snapshot at the
  latest close and reports portfolio risk per user.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import asdict
from typing import Dict, List, Optional

from .config.schema import Config, load_config
from .data.csv_data import CSVDataLoader
from .errors import TradingError
from .execution.backtest_exec import BacktestEngine
from .execution.models import PositionStatus, TradingSymbol
from .reporting.metrics import compute_metrics
from .reporting.report import generate_backtest_report
from .risk.calculator import portfolio_risk_report
from .store.repository import InMemoryPositionRepository
from .strategy.ma_crossover import MovingAverageCrossoverStrategy


logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )


def run_backtest(config: Config) -> None:
    engine = BacktestEngine(config)
    for symbol, result in engine.run_all().items():
        out_dir = os.path.join(config.results_dir, symbol.value)
        generate_backtest_report(result, out_dir=out_dir)
        logger.info("%s summary: %s", symbol.value, json.dumps(compute_metrics(result)))
    logger.info("Backtest complete. Results saved to the '%s' directory.", config.results_dir)


def run_signal(config: Config) -> None:
    loader = CSVDataLoader(config.data.csv_dir, config.data.timezone)
    strategy = MovingAverageCrossoverStrategy(config.strategy)
    for symbol in config.trading_symbols:
        signal = strategy.evaluate(symbol, loader.load(symbol))
        logger.info("%s", json.dumps(signal.to_dict()))


def run_risk(config: Config) -> None:
    loader = CSVDataLoader(config.data.csv_dir, config.data.timezone)
    repository = InMemoryPositionRepository.from_snapshot(config.store_path)
    positions = repository.get_all()
    open_symbols = {p.symbol for p in positions if p.status is PositionStatus.OPEN}

    prices: Dict[TradingSymbol, float] = {}
    for symbol in sorted(open_symbols, key=lambda s: s.value):
        prices[symbol] = float(loader.load(symbol)['close'].iloc[-1])

    for user_id in sorted({p.user_id for p in positions}):
        report = portfolio_risk_report(user_id, positions, prices, config.risk)
        logger.info("User %s risk: %s", user_id, json.dumps(asdict(report), default=str))


def main(argv: Optional[List[str]] = None) -> int:
    """Parse command‑line arguments and dispatch to the appropriate mode."""
    parser = argparse.ArgumentParser(description="XauBot trading core")
    parser.add_argument('mode', choices=['backtest', 'signal', 'risk'], help="Operating mode")
    parser.add_argument('--config', default='config.yaml', help="Path to configuration YAML file")
    parser.add_argument('-v', '--verbose', action='store_true', help="Enable debug logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    try:
        config = load_config(args.config)
        if args.mode == 'backtest':
            logger.info("Running backtest...")
            run_backtest(config)
        elif args.mode == 'signal':
            run_signal(config)
        else:
            run_risk(config)
    except TradingError as exc:
        logger.error("%s failed: %s", args.mode, exc)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
