"""
Profit/loss and risk calculations.

Pure functions over `Position` records and market prices.  Nothing in
this module touches the position store; callers pass in copies they
obtained from it, together with the prices to evaluate against.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional
import pandas as pd

from ..config.schema import RiskConfig
from ..errors import InvalidParameterError, InvalidStateError, NotFoundError
from ..execution.models import Position, PositionSide, PositionStatus, TradingSymbol
from ..utils.timeutils import utc_now

MAX_RISK_PER_POSITION = 0.02
DEFAULT_STOP_DISTANCE = 0.02
MAX_RISK_PERCENT = 10.0
RISK_TOLERANCE = 1e-9


@dataclass
class RiskAssessment:
    position_id: Optional[int]
    symbol: TradingSymbol
    current_price: float
    entry_price: float
    stop_loss: Optional[float]
    take_profit: Optional[float]
    position_size: float
    current_profit_loss: float
    current_profit_loss_pct: Optional[float]
    stop_loss_risk_pct: float
    max_loss_amount: float
    risk_reward_ratio: Optional[float]
    is_within_risk_limits: bool


@dataclass
class RiskProfile:
    """Per‑user risk limits, all expressed in percent."""
    user_id: int
    max_risk_per_trade: float = 2.0
    max_risk_total: float = 10.0
    max_exposure_per_symbol: float = 20.0
    max_exposure_total: float = 50.0
    default_stop_loss_pct: float = 2.0
    default_take_profit_pct: float = 4.0

    def __post_init__(self) -> None:
        if not 0.1 <= self.max_risk_per_trade <= 10:
            raise InvalidParameterError("Max risk per trade must be between 0.1% and 10%",
                                        max_risk_per_trade=self.max_risk_per_trade)
        if not 1 <= self.max_risk_total <= 50:
            raise InvalidParameterError("Max total risk must be between 1% and 50%",
                                        max_risk_total=self.max_risk_total)


@dataclass
class PortfolioRiskReport:
    user_id: int
    account_value: float
    total_exposure: float
    exposure_pct: float
    total_risk: float
    total_risk_pct: float
    max_drawdown_amount: float
    max_drawdown_pct: float
    position_risks: List[RiskAssessment] = field(default_factory=list)
    generated_at: pd.Timestamp = field(default_factory=utc_now)


def _price_for(position: Position, current_price: Optional[float]) -> float:
    if position.status is PositionStatus.CLOSED:
        if position.exit_price is None:
            raise InvalidStateError("Closed position has no exit price", position_id=position.id)
        return position.exit_price
    if current_price is None:
        raise InvalidParameterError("Current price is required for a position that is not closed",
                                    position_id=position.id)
    return current_price


def profit_loss(position: Position, current_price: Optional[float] = None) -> float:
    """P/L at `current_price`, or at the exit price once the position is closed."""
    price = _price_for(position, current_price)
    if position.side is PositionSide.LONG:
        return position.size * (price - position.entry_price)
    return position.size * (position.entry_price - price)


def profit_loss_percent(position: Position, current_price: Optional[float] = None) -> Optional[float]:
    """P/L relative to the entry notional, in percent; `None` for a zero notional."""
    notional = position.entry_price * position.size
    if notional == 0:
        return None
    return profit_loss(position, current_price) / notional * 100


def should_trigger_stop_loss(position: Position, current_price: float) -> bool:
    if position.stop_loss is None:
        return False
    if position.side is PositionSide.LONG:
        return current_price <= position.stop_loss
    return current_price >= position.stop_loss


def should_trigger_take_profit(position: Position, current_price: float) -> bool:
    if position.take_profit is None:
        return False
    if position.side is PositionSide.LONG:
        return current_price >= position.take_profit
    return current_price <= position.take_profit


def _within_limit(value: float, limit: float) -> bool:
    """`value <= limit`, with a stop placed exactly on the limit counted as within it."""
    return value <= limit or math.isclose(value, limit, rel_tol=RISK_TOLERANCE)


def stop_loss_risk(position: Position) -> float:
    """Relative distance from entry to stop; 1.0 (100 %) when no stop is set."""
    if position.stop_loss is None:
        return 1.0
    if not position.entry_price:
        return 1.0
    return abs(position.stop_loss - position.entry_price) / position.entry_price


def risk_reward_ratio(position: Position) -> Optional[float]:
    if position.stop_loss is None or position.take_profit is None or not position.entry_price:
        return None
    potential_loss = abs(position.entry_price - position.stop_loss)
    if potential_loss == 0:
        return None
    return abs(position.take_profit - position.entry_price) / potential_loss


def assess_risk(
    position: Position,
    current_price: float,
    max_risk: float = MAX_RISK_PER_POSITION,
) -> RiskAssessment:
    """Bundle the live P/L and stop‑loss risk of an open position.

    Raises
    ------
    InvalidStateError
        If the position is not open.
    InvalidParameterError
        If `current_price` is not positive.
    """
    if position.status is not PositionStatus.OPEN:
        raise InvalidStateError("Can only calculate risk for open positions",
                                position_id=position.id, status=position.status.value)
    if current_price <= 0:
        raise InvalidParameterError("Current price must be greater than zero", current_price=current_price)

    risk = stop_loss_risk(position)
    return RiskAssessment(
        position_id=position.id,
        symbol=position.symbol,
        current_price=current_price,
        entry_price=position.entry_price,
        stop_loss=position.stop_loss,
        take_profit=position.take_profit,
        position_size=position.size,
        current_profit_loss=profit_loss(position, current_price),
        current_profit_loss_pct=profit_loss_percent(position, current_price),
        stop_loss_risk_pct=risk * 100,
        max_loss_amount=risk * position.size,
        risk_reward_ratio=risk_reward_ratio(position),
        is_within_risk_limits=_within_limit(risk, max_risk),
    )


def max_position_size(
    account_value: float,
    risk_percent: float,
    current_price: float,
    stop_distance: Optional[float] = None,
) -> float:
    """Largest size whose loss at the stop equals `risk_percent` of the account.

    `stop_distance` is a fraction of `current_price` and defaults to 2 %.
    The result is rounded to two decimals.
    """
    if risk_percent <= 0 or risk_percent > MAX_RISK_PERCENT:
        raise InvalidParameterError("Max risk percentage must be between 0 and 10 percent",
                                    risk_percent=risk_percent)
    if account_value <= 0:
        raise InvalidParameterError("Account value must be greater than zero", account_value=account_value)
    if current_price <= 0:
        raise InvalidParameterError("Current price must be greater than zero", current_price=current_price)
    distance = DEFAULT_STOP_DISTANCE if stop_distance is None else stop_distance
    if distance <= 0:
        raise InvalidParameterError("Stop distance must be greater than zero", stop_distance=distance)

    risk_amount = account_value * (risk_percent / 100)
    return round(risk_amount / (current_price * distance), 2)


def _open(positions: Iterable[Position]) -> List[Position]:
    return [p for p in positions if p.status is PositionStatus.OPEN]


def exposure_by_symbol(positions: Iterable[Position]) -> Dict[TradingSymbol, float]:
    """Sum of open position sizes per symbol."""
    exposure: Dict[TradingSymbol, float] = {}
    for p in _open(positions):
        exposure[p.symbol] = exposure.get(p.symbol, 0.0) + p.size
    return exposure


def is_within_exposure_limits(
    positions: Iterable[Position],
    symbol: TradingSymbol,
    amount: float,
    config: Optional[RiskConfig] = None,
) -> bool:
    """Whether adding `amount` of `symbol` keeps symbol and total exposure under the limits."""
    cfg = config or RiskConfig()
    exposure = exposure_by_symbol(positions)
    symbol_total = exposure.get(TradingSymbol.parse(symbol), 0.0) + amount
    overall = sum(exposure.values()) + amount
    return (symbol_total <= cfg.account_value * cfg.max_symbol_exposure
            and overall <= cfg.account_value * cfg.max_total_exposure)


def _current_price(prices: Mapping[TradingSymbol, float], position: Position) -> float:
    try:
        return prices[position.symbol]
    except KeyError:
        raise NotFoundError("No current price for symbol", symbol=position.symbol.value) from None


def portfolio_risk_report(
    user_id: int,
    positions: Iterable[Position],
    prices: Mapping[TradingSymbol, float],
    config: Optional[RiskConfig] = None,
) -> PortfolioRiskReport:
    """Aggregate exposure and stop‑loss risk across a user's open positions."""
    cfg = config or RiskConfig()
    open_positions = [p for p in _open(positions) if p.user_id == user_id]
    risks = [
        assess_risk(p, _current_price(prices, p), cfg.max_risk_per_position)
        for p in open_positions
    ]
    total_exposure = sum(p.size for p in open_positions)
    total_risk = sum(r.max_loss_amount for r in risks)
    account = cfg.account_value
    return PortfolioRiskReport(
        user_id=user_id,
        account_value=account,
        total_exposure=total_exposure,
        exposure_pct=total_exposure / account * 100,
        total_risk=total_risk,
        total_risk_pct=total_risk / account * 100,
        max_drawdown_amount=total_risk,
        max_drawdown_pct=total_risk / account * 100,
        position_risks=risks,
    )


def identify_risky_positions(
    positions: Iterable[Position],
    prices: Mapping[TradingSymbol, float],
    profile: RiskProfile,
) -> List[Position]:
    """Open positions of the profile's user without a stop or over the per‑trade limit."""
    risky: List[Position] = []
    for p in _open(positions):
        if p.user_id != profile.user_id:
            continue
        risk = assess_risk(p, _current_price(prices, p))
        if p.stop_loss is None or not _within_limit(risk.stop_loss_risk_pct, profile.max_risk_per_trade):
            risky.append(p)
    return risky
