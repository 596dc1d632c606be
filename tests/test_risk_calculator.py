import os
import sys

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from xaubot.config.schema import RiskConfig
from xaubot.errors import InvalidParameterError, InvalidStateError, NotFoundError
from xaubot.execution.models import Position, PositionSide, PositionStatus, TradingSymbol
from xaubot.risk.calculator import (
    RiskProfile,
    assess_risk,
    exposure_by_symbol,
    identify_risky_positions,
    is_within_exposure_limits,
    max_position_size,
    portfolio_risk_report,
    should_trigger_stop_loss,
    should_trigger_take_profit,
)

import unittest


def _long(stop_loss=None, take_profit=None, entry=100.0, size=2.0, **kwargs) -> Position:
    return Position(user_id=3, symbol=TradingSymbol.XAUUSD, side=PositionSide.LONG, size=size,
                    entry_price=entry, stop_loss=stop_loss, take_profit=take_profit, **kwargs)


class TestRiskAssessment(unittest.TestCase):
    def test_risk_limit_boundaries(self) -> None:
        """Stop distances of 1.999 %, 2.000 % and 2.001 % around the 2 % limit."""
        cases = [(98.001, True), (98.0, True), (97.999, False)]
        for stop, expected in cases:
            risk = assess_risk(_long(stop_loss=stop), current_price=100.0)
            self.assertEqual(risk.is_within_risk_limits, expected, msg=f"stop={stop}")

    def test_stop_exactly_two_percent_below_entry(self) -> None:
        for entry, stop in ((1980.25, 1940.645), (1.085, 1.0633), (1.1, 1.078), (2000.0, 2000.0 * 0.98)):
            risk = assess_risk(_long(stop_loss=stop, entry=entry), current_price=entry)
            self.assertAlmostEqual(risk.stop_loss_risk_pct, 2.0)
            self.assertTrue(risk.is_within_risk_limits, msg=f"entry={entry} stop={stop}")
        over = assess_risk(_long(stop_loss=1940.6, entry=1980.25), current_price=1980.25)
        self.assertFalse(over.is_within_risk_limits)

    def test_assessment_values(self) -> None:
        position = Position(user_id=3, symbol=TradingSymbol.XAUUSD, side=PositionSide.LONG, size=2.0,
                            entry_price=1980.0, stop_loss=1960.0, take_profit=2020.0, id=3)
        risk = assess_risk(position, current_price=2000.0)
        self.assertEqual(risk.position_id, 3)
        self.assertAlmostEqual(risk.current_profit_loss, 40.0)
        self.assertAlmostEqual(risk.current_profit_loss_pct, 40.0 / 3960.0 * 100)
        self.assertAlmostEqual(risk.stop_loss_risk_pct, 20.0 / 1980.0 * 100)
        self.assertAlmostEqual(risk.max_loss_amount, 20.0 / 1980.0 * 2.0)
        self.assertAlmostEqual(risk.risk_reward_ratio, 2.0)
        self.assertTrue(risk.is_within_risk_limits)

    def test_short_assessment(self) -> None:
        position = Position(user_id=3, symbol=TradingSymbol.BTCUSD, side=PositionSide.SHORT, size=0.5,
                            entry_price=65000.0, stop_loss=67000.0, take_profit=60000.0)
        risk = assess_risk(position, current_price=64000.0)
        self.assertAlmostEqual(risk.current_profit_loss, 500.0)
        self.assertAlmostEqual(risk.risk_reward_ratio, 2.5)
        self.assertFalse(risk.is_within_risk_limits)

    def test_no_stop_means_full_risk(self) -> None:
        risk = assess_risk(_long(take_profit=110.0), current_price=101.0)
        self.assertEqual(risk.stop_loss_risk_pct, 100.0)
        self.assertEqual(risk.max_loss_amount, 2.0)
        self.assertIsNone(risk.risk_reward_ratio)
        self.assertFalse(risk.is_within_risk_limits)

    def test_closed_position_rejected(self) -> None:
        position = _long(stop_loss=98.0)
        position.close(105.0)
        with self.assertRaises(InvalidStateError):
            assess_risk(position, current_price=105.0)

    def test_zero_entry_price_has_no_ratio(self) -> None:
        risk = assess_risk(_long(stop_loss=1.0, take_profit=2.0, entry=0.0), current_price=1.5)
        self.assertIsNone(risk.risk_reward_ratio)
        self.assertIsNone(risk.current_profit_loss_pct)


class TestTriggers(unittest.TestCase):
    def test_long_triggers(self) -> None:
        position = _long(stop_loss=95.0, take_profit=110.0)
        self.assertTrue(should_trigger_stop_loss(position, 95.0))
        self.assertFalse(should_trigger_stop_loss(position, 95.01))
        self.assertTrue(should_trigger_take_profit(position, 110.0))
        self.assertFalse(should_trigger_take_profit(position, 109.99))

    def test_short_triggers(self) -> None:
        position = Position(user_id=1, symbol=TradingSymbol.EURUSD, side=PositionSide.SHORT, size=1.0,
                            entry_price=1.08, stop_loss=1.09, take_profit=1.07)
        self.assertTrue(should_trigger_stop_loss(position, 1.095))
        self.assertFalse(should_trigger_stop_loss(position, 1.085))
        self.assertTrue(should_trigger_take_profit(position, 1.065))

    def test_missing_levels_never_trigger(self) -> None:
        position = _long()
        self.assertFalse(should_trigger_stop_loss(position, 0.01))
        self.assertFalse(should_trigger_take_profit(position, 1e9))


class TestPositionSizing(unittest.TestCase):
    def test_default_stop_distance(self) -> None:
        # 10000 * 1 % / (2000 * 2 %) = 2.5
        self.assertEqual(max_position_size(10_000.0, 1.0, 2000.0), 2.5)

    def test_explicit_stop_distance(self) -> None:
        self.assertEqual(max_position_size(10_000.0, 2.0, 50.0, stop_distance=0.03), 133.33)

    def test_risk_percent_out_of_range(self) -> None:
        for bad in (0.0, -1.0, 11.0):
            with self.assertRaises(InvalidParameterError):
                max_position_size(10_000.0, bad, 2000.0)
        self.assertGreater(max_position_size(10_000.0, 10.0, 2000.0), 0)


class TestPortfolio(unittest.TestCase):
    def setUp(self) -> None:
        self.positions = [
            _long(stop_loss=1960.0, take_profit=2020.0, entry=1980.0, size=2.0),
            Position(user_id=3, symbol=TradingSymbol.BTCUSD, side=PositionSide.SHORT, size=0.5,
                     entry_price=65000.0, stop_loss=67000.0, take_profit=60000.0),
            _long(entry=2000.0, size=1.0),
            _long(entry=1900.0, size=5.0, status=PositionStatus.CLOSED, exit_price=1950.0),
        ]
        self.prices = {TradingSymbol.XAUUSD: 2000.0, TradingSymbol.BTCUSD: 64000.0}

    def test_exposure_by_symbol_counts_open_only(self) -> None:
        exposure = exposure_by_symbol(self.positions)
        self.assertEqual(exposure, {TradingSymbol.XAUUSD: 3.0, TradingSymbol.BTCUSD: 0.5})

    def test_exposure_limits(self) -> None:
        cfg = RiskConfig(account_value=100.0)
        # symbol limit 20, total limit 50
        self.assertTrue(is_within_exposure_limits(self.positions, TradingSymbol.XAUUSD, 17.0, cfg))
        self.assertFalse(is_within_exposure_limits(self.positions, TradingSymbol.XAUUSD, 17.5, cfg))
        self.assertFalse(is_within_exposure_limits(self.positions, TradingSymbol.EURUSD, 47.0, cfg))

        total_only = RiskConfig(account_value=100.0, max_symbol_exposure=1.0, max_total_exposure=0.2)
        self.assertTrue(is_within_exposure_limits(self.positions, TradingSymbol.EURUSD, 16.0, total_only))
        self.assertFalse(is_within_exposure_limits(self.positions, TradingSymbol.EURUSD, 17.0, total_only))

    def test_portfolio_report(self) -> None:
        report = portfolio_risk_report(3, self.positions, self.prices, RiskConfig(account_value=10_000.0))
        self.assertEqual(len(report.position_risks), 3)
        self.assertAlmostEqual(report.total_exposure, 3.5)
        expected_risk = (20.0 / 1980.0) * 2.0 + (2000.0 / 65000.0) * 0.5 + 1.0 * 1.0
        self.assertAlmostEqual(report.total_risk, expected_risk)
        self.assertAlmostEqual(report.total_risk_pct, expected_risk / 10_000.0 * 100)

    def test_report_needs_prices(self) -> None:
        with self.assertRaises(NotFoundError):
            portfolio_risk_report(3, self.positions, {TradingSymbol.XAUUSD: 2000.0})

    def test_risky_positions(self) -> None:
        risky = identify_risky_positions(self.positions, self.prices, RiskProfile(user_id=3))
        # BTC short risks ~3.1 %, the unprotected gold long has no stop
        self.assertEqual(len(risky), 2)
        self.assertEqual({p.symbol for p in risky}, {TradingSymbol.BTCUSD, TradingSymbol.XAUUSD})

    def test_stop_on_trade_limit_is_not_risky(self) -> None:
        positions = [_long(stop_loss=1.078, entry=1.1, size=1000.0),
                     _long(stop_loss=1940.645, entry=1980.25, size=1.0)]
        prices = {TradingSymbol.XAUUSD: 1980.25}
        self.assertEqual(identify_risky_positions(positions, prices, RiskProfile(user_id=3)), [])

    def test_risk_config_validation(self) -> None:
        for kwargs in ({'account_value': 0.0}, {'account_value': -5.0}, {'max_symbol_exposure': 0.0},
                       {'max_total_exposure': 1.5}, {'max_risk_per_position': 0.0}):
            with self.assertRaises(InvalidParameterError, msg=str(kwargs)):
                RiskConfig(**kwargs)


    def test_risk_profile_validation(self) -> None:
        with self.assertRaises(InvalidParameterError):
            RiskProfile(user_id=1, max_risk_per_trade=0.05)
        with self.assertRaises(InvalidParameterError):
            RiskProfile(user_id=1, max_risk_total=60.0)


if __name__ == '__main__':
    unittest.main()
