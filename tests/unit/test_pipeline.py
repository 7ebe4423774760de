"""
Unit tests for the screenshot batch pipeline.

Tests session construction, stage gating, last-wins augment replacement,
per-screenshot outcomes and progress reporting.
"""

import threading
from datetime import timezone

import pytest
from unittest.mock import patch

from src.augment_stats.augment_extraction import IconMatcher, StageGate
from src.augment_stats.game_detection import PeriodAssigner
from src.augment_stats.models import ScreenshotRef, ScreenshotStatus, SessionClass
from src.augment_stats.pipeline import AugmentPipeline, build_pipeline, summarize_results

MINUTE = 60 * 1000


@pytest.fixture
def pipeline(stage_reader):
    """Sequential pipeline with the stub stage reader and an empty icon set."""
    return AugmentPipeline(
        StageGate(stage_reader),
        IconMatcher(),
        period_assigner=PeriodAssigner(timezone.utc)
    )


@pytest.mark.unit
class TestAugmentPipeline:
    """Test suite for AugmentPipeline class."""

    def test_init_invalid_workers(self, stage_reader):
        """Test max_workers below 1 raises ValueError."""
        with pytest.raises(ValueError):
            AugmentPipeline(StageGate(stage_reader), IconMatcher(), max_workers=0)

    def test_empty_batch(self, pipeline):
        """Test no screenshots gives no sessions."""
        assert pipeline.process_files([]) == []

    def test_two_games(self, pipeline, two_game_batch):
        """Test the batch splits into two live sessions with default placement."""
        sessions = pipeline.process_files(two_game_batch)

        assert len(sessions) == 2
        assert [len(s.screenshots) for s in sessions] == [3, 3]
        for session in sessions:
            assert session.session_class is SessionClass.LIVE
            assert session.placement == 4
            assert session.group == 'Live_2025-01-07'
        assert sessions[0].start_time_ms == two_game_batch[0].timestamp_ms

    def test_unsorted_input(self, pipeline, two_game_batch):
        """Test input order does not matter."""
        sessions = pipeline.process_files(list(reversed(two_game_batch)))

        assert [s.screenshots[0].name for s in sessions] == ['Screenshot_001.png', 'Screenshot_004.png']

    def test_augments_from_augment_stage_only(self, pipeline, two_game_batch):
        """Test only augment-stage screenshots are read for icons."""
        sessions = pipeline.process_files(two_game_batch)

        assert sessions[0].augments == ['Unknown Augment'] * 3
        statuses = [r.status for r in sessions[0].results]
        assert statuses == [ScreenshotStatus.SKIPPED, ScreenshotStatus.EXTRACTED, ScreenshotStatus.SKIPPED]
        assert sessions[0].results[1].stage == '4-3'

    def test_extraction_uses_augment_stage_icons(self, pipeline, two_game_batch):
        """Test the recorded icons are the ones from the augment-stage screenshot."""
        matcher = IconMatcher()
        expected = matcher.extract_icons(two_game_batch[1])

        sessions = pipeline.process_files(two_game_batch)

        assert [i.fingerprint for i in sessions[0].augment_icons] == [i.fingerprint for i in expected]

    def test_no_augment_stage_means_no_augments(self, pipeline, screenshot_factory, stage_codes):
        """Test a game without augment stages keeps an empty augment list."""
        files = [
            screenshot_factory('a.png', 0, stage_codes['3-2']),
            screenshot_factory('b.png', MINUTE, stage_codes['blank']),
        ]

        sessions = pipeline.process_files(files)

        assert sessions[0].augments == []

    def test_last_extraction_wins(self, stage_reader, screenshot_factory, stage_codes):
        """Test a later augment-stage screenshot replaces earlier augments."""
        matcher = IconMatcher(slot_count=2)
        first = screenshot_factory('a.png', 0, stage_codes['4-3'], icon_seed=11)
        second = screenshot_factory('b.png', MINUTE, stage_codes['4-5'], icon_seed=12)
        for icon in matcher.extract_icons(first):
            matcher.learn(f"Early {icon.slot}", icon.fingerprint)
        for icon in matcher.extract_icons(second):
            matcher.learn(f"Late {icon.slot}", icon.fingerprint)
        pipeline = AugmentPipeline(StageGate(stage_reader), matcher)

        sessions = pipeline.process_files([second, first])

        assert sessions[0].augments == ['Late 0', 'Late 1']

    def test_known_icons_are_named(self, stage_reader, screenshot_factory, stage_codes):
        """Test icons in the reference set come back with their names."""
        matcher = IconMatcher()
        shot = screenshot_factory('a.png', 0, stage_codes['5-1'], icon_seed=21)
        icons = matcher.extract_icons(shot)
        matcher.learn('Combat Training', icons[2].fingerprint)
        pipeline = AugmentPipeline(StageGate(stage_reader), matcher)

        sessions = pipeline.process_files([shot])

        assert sessions[0].augments == ['Unknown Augment', 'Unknown Augment', 'Combat Training']

    def test_pbe_session(self, pipeline, screenshot_factory, stage_codes):
        """Test a PBE name on the first screenshot makes a PBE session."""
        # 2025-01-08 20:00 UTC
        files = [screenshot_factory('PBE_001.png', 1736366400000, stage_codes['blank'])]

        sessions = pipeline.process_files(files)

        assert sessions[0].session_class is SessionClass.PBE
        assert sessions[0].group == 'PBE_2025-01-08'

    def test_decode_error_is_tagged(self, pipeline, screenshot_factory, stage_codes):
        """Test an undecodable screenshot is tagged and the batch continues."""
        files = [
            ScreenshotRef(name='broken.png', timestamp_ms=0),
            screenshot_factory('ok.png', MINUTE, stage_codes['4-3']),
        ]

        sessions = pipeline.process_files(files)

        assert sessions[0].results[0].status is ScreenshotStatus.DECODE_ERROR
        assert sessions[0].results[0].error
        assert sessions[0].results[1].status is ScreenshotStatus.EXTRACTED
        assert len(sessions[0].augments) == 3

    def test_ocr_failure_is_tagged(self, failing_stage_reader, screenshot_factory, stage_codes):
        """Test an OCR failure is tagged and later screenshots still count."""
        pipeline = AugmentPipeline(StageGate(failing_stage_reader), IconMatcher())
        files = [
            screenshot_factory('a.png', 0, stage_codes['4-3']),
            screenshot_factory('b.png', MINUTE, stage_codes['5-1']),
        ]

        sessions = pipeline.process_files(files)

        statuses = [r.status for r in sessions[0].results]
        assert statuses == [ScreenshotStatus.RECOGNITION_FAILED, ScreenshotStatus.EXTRACTED]

    def test_unexpected_error_aborts(self, pipeline):
        """Test errors other than decode/OCR failures propagate."""
        def explode():
            raise MemoryError('out of memory')

        files = [ScreenshotRef(name='a.png', timestamp_ms=0, source=explode)]

        with pytest.raises(MemoryError):
            pipeline.process_files(files)

    def test_progress_events(self, pipeline, two_game_batch):
        """Test one progress event per screenshot, in order."""
        events = []

        pipeline.process_files(two_game_batch, on_progress=events.append)

        assert [e.current for e in events] == [1, 2, 3, 4, 5, 6]
        assert all(e.total == 6 for e in events)
        assert events[-1].percent == 100.0
        assert events[0].stage_label == 'Processing game 1/2'
        assert events[3].stage_label == 'Processing game 2/2'
        assert events[3].file_name == 'Screenshot_004.png'

    def test_parallel_matches_sequential(self, stage_reader, two_game_batch):
        """Test worker threads give the same sessions as sequential processing."""
        sequential = AugmentPipeline(StageGate(stage_reader), IconMatcher()).process_files(two_game_batch)
        parallel = AugmentPipeline(StageGate(stage_reader), IconMatcher(),
                                   max_workers=4).process_files(two_game_batch)

        assert [s.augments for s in parallel] == [s.augments for s in sequential]
        assert ([[i.fingerprint for i in s.augment_icons] for s in parallel]
                == [[i.fingerprint for i in s.augment_icons] for s in sequential])
        assert ([[r.status for r in s.results] for s in parallel]
                == [[r.status for r in s.results] for s in sequential])

    def test_abort_cancels_queued_screenshots(self, stage_reader, frame_factory):
        """Test a fatal error stops screenshots still waiting for a worker."""
        release = threading.Event()
        started = []
        frame = frame_factory()

        def slow_source(name):
            def load():
                started.append(name)
                if name != 's0.png':
                    release.wait(5)
                return frame
            return load

        files = [ScreenshotRef(name=f's{i}.png', timestamp_ms=i * MINUTE, source=slow_source(f's{i}.png'))
                 for i in range(10)]

        def fail_on_progress(event):
            threading.Timer(0.2, release.set).start()
            raise RuntimeError('progress consumer failed')

        pipeline = AugmentPipeline(StageGate(stage_reader), IconMatcher(), max_workers=2)

        with pytest.raises(RuntimeError):
            pipeline.process_files(files, on_progress=fail_on_progress)

        assert len(started) <= 3

    def test_summarize_results(self, pipeline, two_game_batch):
        """Test outcome counts across sessions."""
        counts = summarize_results(pipeline.process_files(two_game_batch))

        assert counts == {'skipped': 4, 'extracted': 2, 'recognition_failed': 0, 'decode_error': 0}


@pytest.mark.unit
class TestBuildPipeline:
    """Test suite for build_pipeline."""

    def test_explicit_arguments(self, monkeypatch):
        """Test explicit arguments override configuration."""
        monkeypatch.delenv('AUGMENT_TIMEZONE', raising=False)

        pipeline = build_pipeline(gap_threshold_ms=60000, slot_count=5, ocr_engine='tesseract', max_workers=2)

        assert pipeline.segmenter.gap_threshold_ms == 60000
        assert pipeline.icon_matcher.slot_count == 5
        assert pipeline.max_workers == 2

    @patch.dict('os.environ', {'AUGMENT_GAP_THRESHOLD_MS': '120000', 'AUGMENT_SLOT_COUNT': '4',
                               'AUGMENT_STAGE_LABELS': '3-2', 'AUGMENT_MATCH_METHOD': 'prefix'})
    def test_configuration_fallback(self, monkeypatch):
        """Test unspecified settings come from the environment."""
        monkeypatch.delenv('AUGMENT_OCR_ENGINE', raising=False)
        monkeypatch.delenv('AUGMENT_TIMEZONE', raising=False)

        pipeline = build_pipeline()

        assert pipeline.segmenter.gap_threshold_ms == 120000
        assert pipeline.icon_matcher.slot_count == 4
        assert pipeline.icon_matcher.match_method == 'prefix'
        assert pipeline.stage_gate.stage_labels == frozenset({'3-2'})

    def test_on_learn_is_wired(self):
        """Test the persistence callback reaches the matcher."""
        calls = []

        pipeline = build_pipeline(ocr_engine='tesseract', on_learn=lambda n, f: calls.append(n))
        pipeline.icon_matcher.learn('A', '00')

        assert calls == ['A']

    @patch('src.augment_stats.pipeline.create_stage_reader')
    def test_paddleocr_runs_sequentially(self, mock_reader):
        """Test PaddleOCR is never shared between worker threads."""
        pipeline = build_pipeline(ocr_engine='paddleocr', max_workers=4)

        assert pipeline.max_workers == 1
        assert mock_reader.call_args[0][0] == 'paddleocr'
