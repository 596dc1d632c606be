"""
Exception hierarchy for the trading core.

Every error raised by the calculators, the strategy evaluator, the
backtester and the position store derives from `TradingError`.  The
subclasses mirror the kinds of failure a caller needs to tell apart
(bad input, wrong lifecycle state, not enough history, unknown id) so
that an outer layer can translate them into its own responses.
"""

from __future__ import annotations

from typing import Any


class TradingError(Exception):
    """Base class for all trading core errors.

    Parameters
    ----------
    message : str
        Human‑readable description of the problem.
    **context
        Extra values (position id, symbol, ...) appended to the string
        representation to make log lines self‑describing.
    """

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class InvalidParameterError(TradingError, ValueError):
    """Malformed numeric input: non‑positive price, bad periods, risk out of range."""


class InvalidStateError(TradingError):
    """Operation not allowed for the position's current status."""


class InsufficientDataError(TradingError):
    """Historical series is shorter than the required window or has missing bars."""


class NotFoundError(TradingError, LookupError):
    """Referenced position or data source does not exist."""
