import os
import sys
import tempfile

CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, os.pardir))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from xaubot.errors import InvalidParameterError, InvalidStateError, NotFoundError
from xaubot.execution.models import Position, PositionSide, PositionStatus, TradingSymbol
from xaubot.store.repository import InMemoryPositionRepository
from xaubot.store.service import TradingService

import unittest


class TestInMemoryRepository(unittest.TestCase):
    def setUp(self) -> None:
        self.repo = InMemoryPositionRepository()

    def _add(self, user_id=1, symbol=TradingSymbol.XAUUSD) -> int:
        return self.repo.add(Position(user_id=user_id, symbol=symbol, side=PositionSide.LONG,
                                      size=1.0, entry_price=2000.0))

    def test_ids_are_sequential(self) -> None:
        self.assertEqual(self._add(), 1)
        self.assertEqual(self._add(), 2)

    def test_returns_copies(self) -> None:
        position_id = self._add()
        fetched = self.repo.get_by_id(position_id)
        fetched.size = 99.0
        self.assertEqual(self.repo.get_by_id(position_id).size, 1.0)

    def test_queries(self) -> None:
        self._add(user_id=1)
        self._add(user_id=2, symbol=TradingSymbol.BTCUSD)
        self._add(user_id=2)
        self.assertEqual(len(self.repo.get_all()), 3)
        self.assertEqual(len(self.repo.get_by_user(2)), 2)
        self.assertEqual(len(self.repo.get_by_symbol("BTCUSD")), 1)
        self.assertEqual(len(self.repo.get_by_status(PositionStatus.OPEN)), 3)

    def test_unknown_ids(self) -> None:
        with self.assertRaises(NotFoundError):
            self.repo.get_by_id(42)
        with self.assertRaises(NotFoundError):
            self.repo.delete(42)
        ghost = Position(user_id=1, symbol=TradingSymbol.XAUUSD, side=PositionSide.LONG,
                         size=1.0, entry_price=1.0, id=42)
        with self.assertRaises(NotFoundError):
            self.repo.update(ghost)

    def test_delete(self) -> None:
        position_id = self._add()
        self.repo.delete(position_id)
        self.assertEqual(self.repo.get_all(), [])

    def test_snapshot_restores_positions(self) -> None:
        service = TradingService(self.repo)
        kept = service.open_position(1, TradingSymbol.XAUUSD, PositionSide.LONG, 1.0, 1950.50,
                                     stop_loss=1930.0, take_profit=2000.0, notes="breakout")
        closed = service.open_position(1, TradingSymbol.EURUSD, PositionSide.SHORT, 10000.0, 1.08)
        service.close_position(closed, 1.075)

        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "store", "positions.json")
            self.repo.snapshot(path)
            restored = InMemoryPositionRepository.from_snapshot(path)

        self.assertEqual(restored.get_all(), self.repo.get_all())
        self.assertEqual(restored.get_by_id(kept).notes, "breakout")
        self.assertAlmostEqual(restored.get_by_id(closed).profit_loss, 50.0)
        # ids continue after the restored ones
        next_id = restored.add(Position(user_id=1, symbol=TradingSymbol.XAUUSD, side=PositionSide.LONG,
                                        size=1.0, entry_price=1.0))
        self.assertEqual(next_id, 3)

    def test_missing_snapshot_gives_empty_store(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            repo = InMemoryPositionRepository.from_snapshot(os.path.join(tmp, "none.json"))
        self.assertEqual(repo.get_all(), [])


class TestTradingService(unittest.TestCase):
    def setUp(self) -> None:
        self.service = TradingService(InMemoryPositionRepository())

    def test_open_and_close(self) -> None:
        position_id = self.service.open_position(2, "XAUUSD", PositionSide.LONG, 1.0, 1950.50)
        closed = self.service.close_position(position_id, 1980.25)
        self.assertIs(closed.status, PositionStatus.CLOSED)
        self.assertAlmostEqual(closed.profit_loss, 29.75)
        self.assertAlmostEqual(self.service.total_profit_loss(2), 29.75)
        with self.assertRaises(InvalidStateError):
            self.service.close_position(position_id, 1990.0)

    def test_open_validation(self) -> None:
        with self.assertRaises(InvalidParameterError):
            self.service.open_position(1, TradingSymbol.XAUUSD, PositionSide.LONG, 0.0, 1950.0)
        with self.assertRaises(InvalidParameterError):
            self.service.open_position(1, TradingSymbol.XAUUSD, PositionSide.LONG, 1.0, 1950.0, stop_loss=1960.0)
        with self.assertRaises(InvalidParameterError):
            self.service.open_position(1, TradingSymbol.XAUUSD, PositionSide.SHORT, 1.0, 1950.0, take_profit=1960.0)

    def test_close_with_bad_price(self) -> None:
        position_id = self.service.open_position(1, TradingSymbol.XAUUSD, PositionSide.LONG, 1.0, 1950.0)
        with self.assertRaises(InvalidParameterError):
            self.service.close_position(position_id, 0.0)
        with self.assertRaises(NotFoundError):
            self.service.close_position(99, 1950.0)

    def test_cancel(self) -> None:
        position_id = self.service.open_position(1, TradingSymbol.XAUUSD, PositionSide.LONG, 1.0, 1950.0)
        cancelled = self.service.cancel_position(position_id)
        self.assertIs(cancelled.status, PositionStatus.CANCELLED)
        with self.assertRaises(InvalidStateError):
            self.service.cancel_position(position_id)
        self.assertEqual(self.service.open_positions(), [])

    def test_update_levels(self) -> None:
        position_id = self.service.open_position(1, TradingSymbol.BTCUSD, PositionSide.SHORT, 0.5, 65000.0)
        self.assertEqual(self.service.update_stop_loss(position_id, 67000.0).stop_loss, 67000.0)
        self.assertEqual(self.service.update_take_profit(position_id, 60000.0).take_profit, 60000.0)
        with self.assertRaises(InvalidParameterError):
            self.service.update_stop_loss(position_id, 64000.0)
        self.service.close_position(position_id, 64000.0)
        with self.assertRaises(InvalidStateError):
            self.service.update_take_profit(position_id, 61000.0)

    def test_current_exposure(self) -> None:
        self.service.open_position(3, TradingSymbol.XAUUSD, PositionSide.LONG, 2.0, 1980.0)
        self.service.open_position(3, TradingSymbol.BTCUSD, PositionSide.SHORT, 0.5, 65000.0)
        self.service.open_position(4, TradingSymbol.XAUUSD, PositionSide.LONG, 1.0, 2000.0)
        self.assertAlmostEqual(self.service.current_exposure(3), 3960.0 + 32500.0)
        self.assertAlmostEqual(self.service.current_exposure(3, TradingSymbol.XAUUSD), 3960.0)
        self.assertEqual(len(self.service.user_positions(3)), 2)


if __name__ == '__main__':
    unittest.main()
