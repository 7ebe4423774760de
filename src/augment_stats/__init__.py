"""TFT Augment Stats Toolkit.

This package turns batches of Teamfight Tactics screenshots into per-augment
performance statistics.

Modules:
    game_detection: Split screenshot batches into games and reporting periods
    augment_extraction: Stage-label OCR gate and augment icon matching
    statistics: Pick rate, win rate and average placement per augment
    storage: JSON persistence for recorded games and learned icons
    utils: Screenshot discovery and image decode/crop helpers

Example:
    >>> from src.augment_stats.utils import collect_screenshots
    >>> from src.augment_stats.pipeline import build_pipeline
    >>>
    >>> pipeline = build_pipeline()
    >>> sessions = pipeline.process_files(collect_screenshots(["screens/"]))
"""

__version__ = "1.0.0"
__author__ = "TFT Augment Stats"
__all__ = ['game_detection', 'augment_extraction', 'statistics', 'storage', 'utils']
