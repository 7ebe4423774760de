"""
Game Detection Module

Provides:
1. Game boundaries from gaps between screenshot capture times
2. Reporting period keys (two-week live patches, noon-to-noon PBE test days)
"""

from .session_segmenter import GameSegmenter, segment_screenshots, sort_screenshots
from .period_assigner import PeriodAssigner, assign_group, live_period_index, live_period_start

__all__ = [
    'GameSegmenter',
    'segment_screenshots',
    'sort_screenshots',
    'PeriodAssigner',
    'assign_group',
    'live_period_index',
    'live_period_start'
]
