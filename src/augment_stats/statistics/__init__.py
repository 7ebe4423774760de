"""
Statistics Module

Per-augment count, average placement, win rate and pick rate, plus overall
scalars (total games, average placement, win rate) with CSV export.
"""

from .aggregator import StatsAggregator, StatsSummary

__all__ = [
    'StatsAggregator',
    'StatsSummary'
]
