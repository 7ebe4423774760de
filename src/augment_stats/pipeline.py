"""Screenshot Batch Pipeline.

Turns a batch of screenshots into reviewable game sessions:

1. Sort screenshots by capture time and split them into games by time gaps
2. Create a session per game (live/PBE class, period key, default placement 4)
3. For every screenshot in order, read the stage counter; on an augment stage,
   read the augment panel and replace the session's augment list with it

A screenshot that cannot be decoded or read is tagged on its session and the
batch carries on. Only unexpected errors abort the whole batch.

Typical usage example:

    from pipeline import build_pipeline
    from utils import collect_screenshots

    pipeline = build_pipeline()
    sessions = pipeline.process_files(
        collect_screenshots(['screenshots/']),
        on_progress=lambda p: print(f"{p.percent:.0f}% {p.file_name}")
    )
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from . import config
from .augment_extraction.icon_matcher import IconMatcher, ReferenceIconSet
from .augment_extraction.stage_gate import StageGate, create_stage_reader
from .errors import ImageDecodeError, OCRError
from .game_detection.period_assigner import PeriodAssigner
from .game_detection.session_segmenter import GameSegmenter, sort_screenshots
from .models import (
    IconMatch,
    ProgressEvent,
    ScreenshotRef,
    ScreenshotResult,
    ScreenshotStatus,
    Session,
    SessionClass,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressEvent], None]


class AugmentPipeline:
    """Orchestrates segmentation, stage gating and icon extraction.

    Attributes:
        stage_gate: Decides which screenshots are read for augments.
        icon_matcher: Reads and names augment icons.
        segmenter: Splits the batch into games.
        period_assigner: Computes each session's period key.
        max_workers: Screenshots analysed in parallel within a game. 1 keeps
            everything sequential.
    """

    def __init__(self,
                 stage_gate: StageGate,
                 icon_matcher: IconMatcher,
                 gap_threshold_ms: int = config.DEFAULT_GAP_THRESHOLD_MS,
                 period_assigner: Optional[PeriodAssigner] = None,
                 max_workers: int = 1):
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        self.stage_gate = stage_gate
        self.icon_matcher = icon_matcher
        self.segmenter = GameSegmenter(gap_threshold_ms)
        self.period_assigner = period_assigner or PeriodAssigner()
        self.max_workers = max_workers

    def create_session(self, screenshots: List[ScreenshotRef]) -> Session:
        """Build a session with default placement for one game's screenshots."""
        first = screenshots[0]
        session_class = SessionClass.from_filename(first.name)
        return Session(
            session_class=session_class,
            start_time_ms=first.timestamp_ms,
            screenshots=list(screenshots),
            group=self.period_assigner.assign_group(first.timestamp_ms, session_class)
        )

    def analyze_screenshot(self, screenshot: ScreenshotRef) -> Tuple[ScreenshotResult, List[IconMatch]]:
        """
        Run the stage gate and, if it passes, icon extraction on one screenshot.

        Args:
            screenshot: Screenshot handle

        Returns:
            Tuple of (result, icons). ``icons`` is empty unless the result
            status is EXTRACTED.
        """
        try:
            frame = screenshot.load_image()
            stage = self.stage_gate.read_stage(screenshot, frame)
            if not self.stage_gate.is_augment_stage(stage):
                return ScreenshotResult(screenshot.name, ScreenshotStatus.SKIPPED, stage=stage), []
            icons = self.icon_matcher.extract_icons(screenshot, frame)
        except ImageDecodeError as e:
            logger.warning(f"Could not decode {screenshot.name}: {e}")
            return ScreenshotResult(screenshot.name, ScreenshotStatus.DECODE_ERROR, error=str(e)), []
        except OCRError as e:
            logger.warning(f"OCR failed on {screenshot.name}: {e}")
            return ScreenshotResult(screenshot.name, ScreenshotStatus.RECOGNITION_FAILED, error=str(e)), []

        return ScreenshotResult(screenshot.name, ScreenshotStatus.EXTRACTED, stage=stage), icons

    def _analyze_game(self, screenshots: List[ScreenshotRef],
                      executor: Optional[ThreadPoolExecutor]):
        """Yield (screenshot, result, icons) in screenshot order."""
        if executor is None:
            for screenshot in screenshots:
                yield (screenshot,) + self.analyze_screenshot(screenshot)
            return

        futures = [executor.submit(self.analyze_screenshot, s) for s in screenshots]
        for screenshot, future in zip(screenshots, futures):
            yield (screenshot,) + future.result()

    def process_files(self, files: Sequence[ScreenshotRef],
                      on_progress: Optional[ProgressCallback] = None) -> List[Session]:
        """
        Process a batch of screenshots into sessions.

        Args:
            files: Screenshots in any order
            on_progress: Called after each screenshot with a ProgressEvent

        Returns:
            Sessions in chronological order
        """
        ordered = sort_screenshots(files)
        games = self.segmenter.segment_games(ordered)
        total_files = len(ordered)
        files_processed = 0
        sessions = []

        executor = ThreadPoolExecutor(max_workers=self.max_workers) if self.max_workers > 1 else None
        try:
            for game_index, game_files in enumerate(games):
                session = self.create_session(game_files)
                stage_label = f"Processing game {game_index + 1}/{len(games)}"

                for screenshot, result, icons in self._analyze_game(game_files, executor):
                    session.results.append(result)
                    if icons:
                        # Last successful extraction in screenshot order wins
                        session.set_augments(icons)

                    files_processed += 1
                    if on_progress is not None:
                        on_progress(ProgressEvent(
                            current=files_processed,
                            total=total_files,
                            percent=files_processed / total_files * 100,
                            stage_label=stage_label,
                            file_name=screenshot.name
                        ))

                logger.info(f"Game {game_index + 1}: {len(game_files)} screenshots, "
                            f"{session.session_class.value}, group {session.group}, "
                            f"augments {session.augments}")
                sessions.append(session)
        finally:
            if executor is not None:
                executor.shutdown(wait=True, cancel_futures=True)

        return sessions


def summarize_results(sessions: Sequence[Session]) -> Dict[str, int]:
    """Count screenshot outcomes across sessions, keyed by status value."""
    counts = {status.value: 0 for status in ScreenshotStatus}
    for session in sessions:
        for result in session.results:
            counts[result.status.value] += 1
    return counts


def build_pipeline(reference_icons: Optional[ReferenceIconSet] = None,
                   gap_threshold_ms: Optional[int] = None,
                   slot_count: Optional[int] = None,
                   ocr_engine: Optional[str] = None,
                   max_workers: int = 1,
                   use_gpu: bool = False,
                   on_learn: Optional[Callable[[str, str], None]] = None) -> AugmentPipeline:
    """
    Build a pipeline from explicit arguments, falling back to .env configuration.

    Args:
        reference_icons: Learned icon set (empty if None)
        gap_threshold_ms: Game gap threshold (AUGMENT_GAP_THRESHOLD_MS)
        slot_count: Augment slots per screenshot (AUGMENT_SLOT_COUNT)
        ocr_engine: 'tesseract' or 'paddleocr' (AUGMENT_OCR_ENGINE)
        max_workers: Parallel screenshot analysis within a game. PaddleOCR
            always runs with a single worker.
        use_gpu: GPU acceleration for PaddleOCR
        on_learn: Persistence callback for newly learned icons

    Returns:
        Configured AugmentPipeline
    """
    engine = ocr_engine or config.get_ocr_engine()
    if engine == 'paddleocr' and max_workers > 1:
        # One PaddleOCR instance is not safe to share between threads
        logger.warning(f"PaddleOCR runs sequentially, ignoring max_workers={max_workers}")
        max_workers = 1

    reader = create_stage_reader(
        engine,
        tesseract_cmd=config.get_tesseract_cmd(),
        use_gpu=use_gpu
    )
    gate = StageGate(reader, stage_labels=config.get_stage_labels())
    matcher = IconMatcher(
        reference_icons,
        slot_count=slot_count if slot_count is not None else config.get_slot_count(),
        match_method=config.get_match_method(),
        max_distance=config.get_match_max_distance(),
        on_learn=on_learn
    )
    return AugmentPipeline(
        gate,
        matcher,
        gap_threshold_ms=gap_threshold_ms if gap_threshold_ms is not None else config.get_gap_threshold_ms(),
        period_assigner=PeriodAssigner.from_zone_name(config.get_timezone_name()),
        max_workers=max_workers
    )
