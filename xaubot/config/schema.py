"""
Configuration schema and loader.

This module defines dataclasses that mirror the expected structure of
the YAML configuration file (`config.yaml`).  A helper function
`load_config()` reads a YAML file from disk and returns an instance
of `Config` populated with defaults for any missing fields.

Strategy parameters are validated when the dataclass is constructed,
so an invalid period combination fails on load rather than in the
middle of a backtest.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Dict, Any
import yaml

from ..errors import InvalidParameterError
from ..execution.models import TradingSymbol


@dataclass
class StrategyConfig:
    """Parameters of the moving‑average crossover strategy.

    Attributes
    ----------
    fast_period : int
        Window of the fast simple moving average.  Must be at least 2.
    slow_period : int
        Window of the slow simple moving average.  Must exceed
        `fast_period`.
    signal_threshold : float
        Relative MA spread that maps to full confidence (e.g. 0.5).
    stop_loss_pct : float
        Distance of the suggested stop from the entry, as a fraction.
    take_profit_pct : float
        Distance of the suggested target from the entry, as a fraction.
    """

    fast_period: int = 10
    slow_period: int = 50
    signal_threshold: float = 0.5
    stop_loss_pct: float = 0.02
    take_profit_pct: float = 0.04

    def __post_init__(self) -> None:
        if self.fast_period < 2:
            raise InvalidParameterError("Fast period must be at least 2", fast_period=self.fast_period)
        if self.fast_period >= self.slow_period:
            raise InvalidParameterError(
                "Fast period must be less than slow period",
                fast_period=self.fast_period,
                slow_period=self.slow_period,
            )
        if self.signal_threshold <= 0:
            raise InvalidParameterError(
                "Signal threshold must be positive", signal_threshold=self.signal_threshold
            )
        for name in ('stop_loss_pct', 'take_profit_pct'):
            value = getattr(self, name)
            if not 0 < value < 1:
                raise InvalidParameterError(f"{name} must be between 0 and 1", **{name: value})

    @property
    def min_bars(self) -> int:
        """Shortest history accepted by the evaluator and the backtester."""
        return self.slow_period + 5


@dataclass
class BacktestConfig:
    """Backtest account settings.

    Attributes
    ----------
    initial_balance : float
        Starting balance of the simulated account.
    position_fraction : float
        Fraction of the current balance committed to each new trade.
    """

    initial_balance: float = 10_000.0
    position_fraction: float = 0.1

    def __post_init__(self) -> None:
        if self.initial_balance <= 0:
            raise InvalidParameterError(
                "Initial balance must be positive", initial_balance=self.initial_balance
            )
        if not 0 < self.position_fraction <= 1:
            raise InvalidParameterError(
                "Position fraction must be in (0, 1]", position_fraction=self.position_fraction
            )


@dataclass
class RiskConfig:
    """Risk limits used by the calculator and the portfolio report.

    Attributes
    ----------
    account_value : float
        Account value used for sizing and exposure limits.
    max_risk_per_position : float
        Stop‑loss risk (fraction of entry) tolerated per position.
    max_symbol_exposure : float
        Fraction of the account allowed in a single symbol.
    max_total_exposure : float
        Fraction of the account allowed across all open positions.
    """

    account_value: float = 10_000.0
    max_risk_per_position: float = 0.02
    max_symbol_exposure: float = 0.2
    max_total_exposure: float = 0.5

    def __post_init__(self) -> None:
        if self.account_value <= 0:
            raise InvalidParameterError(
                "Account value must be greater than zero", account_value=self.account_value
            )
        for name in ('max_risk_per_position', 'max_symbol_exposure', 'max_total_exposure'):
            value = getattr(self, name)
            if not 0 < value <= 1:
                raise InvalidParameterError(f"{name} must be in (0, 1]", **{name: value})


@dataclass
class DataConfig:
    """Data source configuration.

    Attributes
    ----------
    csv_dir : str
        Directory containing one `{SYMBOL}.csv` file per instrument.
    timezone : str
        IANA timezone name used to localise naive timestamps.
    """

    csv_dir: str = "data"
    timezone: str = "UTC"


@dataclass
class Config:
    """Root configuration.

    Attributes
    ----------
    symbols : List[str]
        Instrument names, each a member of `TradingSymbol`.
    strategy : StrategyConfig
        Moving‑average strategy parameters.
    backtest : BacktestConfig
        Simulated account settings.
    risk : RiskConfig
        Risk limits.
    data : DataConfig
        Data source configuration.
    results_dir : str
        Directory that receives backtest reports.
    store_path : str
        JSON snapshot of the position store used by the `risk` command.
    """

    symbols: List[str] = field(default_factory=lambda: ["XAUUSD"])
    strategy: StrategyConfig = field(default_factory=StrategyConfig)
    backtest: BacktestConfig = field(default_factory=BacktestConfig)
    risk: RiskConfig = field(default_factory=RiskConfig)
    data: DataConfig = field(default_factory=DataConfig)
    results_dir: str = "results"
    store_path: str = "positions.json"

    @property
    def trading_symbols(self) -> List[TradingSymbol]:
        return [TradingSymbol.parse(s) for s in self.symbols]


def _merge_dict(defaults: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge two dictionaries.

    The values in `override` take precedence over those in `defaults`.
    """
    result: Dict[str, Any] = defaults.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def load_config(path: str) -> Config:
    """Load a configuration file from the given YAML path.

    Parameters
    ----------
    path : str
        Path to the YAML file.

    Returns
    -------
    Config
        A populated configuration object.  Missing fields are filled with
        the defaults defined in the dataclasses.

    Raises
    ------
    InvalidParameterError
        If a symbol is unknown or a strategy/backtest value is invalid.
    """
    with open(path, "r", encoding="utf-8") as fh:
        raw: Dict[str, Any] = yaml.safe_load(fh) or {}

    defaults: Dict[str, Any] = {
        'symbols': ["XAUUSD"],
        'strategy': {
            'fast_period': 10,
            'slow_period': 50,
            'signal_threshold': 0.5,
            'stop_loss_pct': 0.02,
            'take_profit_pct': 0.04,
        },
        'backtest': {
            'initial_balance': 10_000.0,
            'position_fraction': 0.1,
        },
        'risk': {
            'account_value': 10_000.0,
            'max_risk_per_position': 0.02,
            'max_symbol_exposure': 0.2,
            'max_total_exposure': 0.5,
        },
        'data': {
            'csv_dir': 'data',
            'timezone': 'UTC',
        },
        'results_dir': 'results',
        'store_path': 'positions.json',
    }

    merged = _merge_dict(defaults, raw)

    symbols = [str(s).upper() for s in merged.get('symbols', [])]
    for s in symbols:
        TradingSymbol.parse(s)

    strategy = merged['strategy']
    cfg = Config(
        symbols=symbols,
        strategy=StrategyConfig(
            fast_period=int(strategy['fast_period']),
            slow_period=int(strategy['slow_period']),
            signal_threshold=float(strategy['signal_threshold']),
            stop_loss_pct=float(strategy['stop_loss_pct']),
            take_profit_pct=float(strategy['take_profit_pct']),
        ),
        backtest=BacktestConfig(**merged['backtest']),
        risk=RiskConfig(**merged['risk']),
        data=DataConfig(**merged['data']),
        results_dir=str(merged.get('results_dir', 'results')),
        store_path=str(merged.get('store_path', 'positions.json')),
    )
    return cfg
