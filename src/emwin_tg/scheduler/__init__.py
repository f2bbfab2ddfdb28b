"""Scheduling primitives for periodic feed fetches."""

from emwin_tg.scheduler.ticker import Ticker

__all__ = [
    "Ticker",
]
