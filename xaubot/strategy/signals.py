"""
Strategy signal model.

A `StrategySignal` is created fresh by each evaluation and never
mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple
import pandas as pd

from ..execution.models import TradingSymbol


class SignalType(str, Enum):
    BUY = "buy"
    STRONG_BUY = "strong_buy"
    SELL = "sell"
    STRONG_SELL = "strong_sell"
    HOLD = "hold"

    @property
    def is_buy(self) -> bool:
        return self in (SignalType.BUY, SignalType.STRONG_BUY)

    @property
    def is_sell(self) -> bool:
        return self in (SignalType.SELL, SignalType.STRONG_SELL)


@dataclass(frozen=True)
class StrategySignal:
    symbol: TradingSymbol
    signal_type: SignalType
    reason: str
    entry_price: float
    confidence: float
    stop_loss: Optional[float] = None
    take_profit: Optional[float] = None
    indicator_values: Dict[str, float] = field(default_factory=dict)
    supporting_indicators: Tuple[str, ...] = ("Simple Moving Average",)
    generated_at: Optional[pd.Timestamp] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'symbol': self.symbol.value,
            'signal_type': self.signal_type.value,
            'reason': self.reason,
            'entry_price': self.entry_price,
            'stop_loss': self.stop_loss,
            'take_profit': self.take_profit,
            'confidence': self.confidence,
            'indicator_values': dict(self.indicator_values),
            'supporting_indicators': list(self.supporting_indicators),
            'generated_at': self.generated_at.isoformat() if self.generated_at is not None else None,
        }
