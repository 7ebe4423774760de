"""Game Session Segmentation.

Splits a batch of screenshots into games. TFT players screenshot the board a
few times per round, so consecutive screenshots of one game are seconds to a
couple of minutes apart, while the queue, loading screen and lobby between two
games leave a much longer silence. A new game starts wherever the gap between
two consecutive screenshots exceeds the threshold.

Typical usage example:

    from session_segmenter import GameSegmenter, sort_screenshots

    segmenter = GameSegmenter(gap_threshold_ms=3 * 60 * 1000)
    games = segmenter.segment_games(sort_screenshots(screenshots))
"""

import logging
from typing import List, Sequence

from ..config import DEFAULT_GAP_THRESHOLD_MS
from ..models import ScreenshotRef

logger = logging.getLogger(__name__)


def sort_screenshots(files: Sequence[ScreenshotRef]) -> List[ScreenshotRef]:
    """Stable sort by capture time, oldest first."""
    return sorted(files, key=lambda f: f.timestamp_ms)


def segment_screenshots(files: Sequence[ScreenshotRef],
                        gap_threshold_ms: int = DEFAULT_GAP_THRESHOLD_MS) -> List[List[ScreenshotRef]]:
    """Group chronologically sorted screenshots into games.

    The input must already be sorted ascending by ``timestamp_ms``; unsorted
    input is not rejected but gives a meaningless split.

    Args:
        files: Screenshots sorted by capture time.
        gap_threshold_ms: Largest gap (inclusive) that keeps two consecutive
            screenshots in the same game.

    Returns:
        List of non-empty groups. Concatenated in order they reproduce
        ``files`` exactly. Empty input gives an empty list.

    Raises:
        ValueError: If gap_threshold_ms is negative.

    Example:
        >>> groups = segment_screenshots(sorted_files, gap_threshold_ms=180000)
        >>> [len(g) for g in groups]
        [3, 3]
    """
    if gap_threshold_ms < 0:
        raise ValueError(f"gap_threshold_ms must be >= 0, got {gap_threshold_ms}")

    games: List[List[ScreenshotRef]] = []
    current_game: List[ScreenshotRef] = []

    for screenshot in files:
        if current_game and screenshot.timestamp_ms - current_game[-1].timestamp_ms > gap_threshold_ms:
            games.append(current_game)
            current_game = []
        current_game.append(screenshot)

    if current_game:
        games.append(current_game)

    return games


class GameSegmenter:
    """Gap-based game boundary detection for screenshot batches.

    Attributes:
        gap_threshold_ms: Largest gap that keeps screenshots in the same game.
    """

    def __init__(self, gap_threshold_ms: int = DEFAULT_GAP_THRESHOLD_MS):
        if gap_threshold_ms < 0:
            raise ValueError(f"gap_threshold_ms must be >= 0, got {gap_threshold_ms}")
        self.gap_threshold_ms = gap_threshold_ms

    def segment_games(self, files: Sequence[ScreenshotRef]) -> List[List[ScreenshotRef]]:
        """Split sorted screenshots into games using this segmenter's threshold."""
        games = segment_screenshots(files, self.gap_threshold_ms)
        logger.info(f"Segmented {len(files)} screenshots into {len(games)} games "
                    f"(gap threshold {self.gap_threshold_ms / 1000:.0f}s)")
        return games
