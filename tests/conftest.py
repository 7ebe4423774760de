"""
Pytest configuration and shared fixtures.

This module provides fixtures used across multiple test files.
"""

import sys
from pathlib import Path
from typing import Dict, List, Optional

import pytest
import numpy as np

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.augment_stats.errors import OCRError
from src.augment_stats.models import ScreenshotRef

FRAME_WIDTH = 960
FRAME_HEIGHT = 540

# Epoch ms for 2025-01-08 20:00:00 UTC (evening of a live patch week)
BASE_TIMESTAMP_MS = 1736366400000


def make_frame(stage_code: int = 0, icon_seed: Optional[int] = 1,
               width: int = FRAME_WIDTH, height: int = FRAME_HEIGHT) -> np.ndarray:
    """Build a synthetic TFT screenshot.

    The stage counter area is filled with ``stage_code`` so a stub OCR reader
    can tell frames apart. The augment panel on the left is filled with noise
    seeded by ``icon_seed``, giving every seed distinct icons.
    """
    frame = np.zeros((height, width, 3), dtype=np.uint8)
    frame[0:int(height * 0.08), int(width * 0.40):int(width * 0.60)] = stage_code

    if icon_seed is not None:
        rng = np.random.default_rng(icon_seed)
        top, bottom = int(height * 0.25), int(height * 0.70)
        panel = rng.integers(0, 256, size=(bottom - top, int(width * 0.10), 3), dtype=np.uint8)
        frame[top:bottom, 0:int(width * 0.10)] = panel

    return frame


def make_screenshot(name: str, timestamp_ms: int, stage_code: int = 0,
                    icon_seed: Optional[int] = 1) -> ScreenshotRef:
    """Screenshot handle backed by an in-memory synthetic frame."""
    frame = make_frame(stage_code, icon_seed)
    return ScreenshotRef(name=name, timestamp_ms=timestamp_ms, source=lambda: frame)


class StubStageReader:
    """OCR collaborator that answers by the stage code painted into the frame."""

    def __init__(self, texts: Optional[Dict[int, str]] = None, failing_codes=()):
        self.texts = texts or {}
        self.failing_codes = set(failing_codes)
        self.calls = 0

    def recognize(self, image: np.ndarray) -> str:
        self.calls += 1
        code = int(image[0, 0, 0])
        if code in self.failing_codes:
            raise OCRError(f"engine failed on code {code}")
        return self.texts.get(code, '')


# Stage codes used by the synthetic frames
CODE_BLANK = 0
CODE_STAGE_3_2 = 10
CODE_STAGE_4_3 = 20
CODE_STAGE_4_5 = 30
CODE_STAGE_5_1 = 40
CODE_GARBAGE = 50

STAGE_TEXTS = {
    CODE_STAGE_3_2: '3-2\n',
    CODE_STAGE_4_3: ' 4-3 \n',
    CODE_STAGE_4_5: '4-5',
    CODE_STAGE_5_1: '5-1\x0c',
    CODE_GARBAGE: '#@!',
}


@pytest.fixture
def project_root_path() -> Path:
    """Return the project root directory path."""
    return Path(__file__).parent.parent


@pytest.fixture
def temp_output_dir(tmp_path) -> Path:
    """Return a temporary output directory for tests."""
    output_dir = tmp_path / "test_output"
    output_dir.mkdir(parents=True, exist_ok=True)
    return output_dir


@pytest.fixture
def data_dir(tmp_path) -> Path:
    """Return a temporary stats data directory."""
    return tmp_path / "data"


@pytest.fixture
def frame_factory():
    """Return the synthetic frame builder."""
    return make_frame


@pytest.fixture
def screenshot_factory():
    """Return the in-memory screenshot builder."""
    return make_screenshot


@pytest.fixture
def stage_codes() -> Dict[str, int]:
    """Stage label -> stage code painted into synthetic frames."""
    return {
        'blank': CODE_BLANK,
        '3-2': CODE_STAGE_3_2,
        '4-3': CODE_STAGE_4_3,
        '4-5': CODE_STAGE_4_5,
        '5-1': CODE_STAGE_5_1,
        'garbage': CODE_GARBAGE,
    }


@pytest.fixture
def sample_frame() -> np.ndarray:
    """Synthetic screenshot showing stage 4-3."""
    return make_frame(CODE_STAGE_4_3, icon_seed=7)


@pytest.fixture
def stage_reader() -> StubStageReader:
    """Stub OCR reader understanding the standard stage codes."""
    return StubStageReader(STAGE_TEXTS)


@pytest.fixture
def failing_stage_reader() -> StubStageReader:
    """Stub OCR reader whose engine fails on stage 4-3 frames."""
    return StubStageReader(STAGE_TEXTS, failing_codes=[CODE_STAGE_4_3])


@pytest.fixture
def two_game_batch() -> List[ScreenshotRef]:
    """Six screenshots: three within two minutes, a ten-minute gap, three more."""
    minute = 60 * 1000
    t0 = BASE_TIMESTAMP_MS
    t1 = t0 + 2 * minute + 10 * minute
    return [
        make_screenshot('Screenshot_001.png', t0, CODE_STAGE_3_2, icon_seed=1),
        make_screenshot('Screenshot_002.png', t0 + minute, CODE_STAGE_4_3, icon_seed=2),
        make_screenshot('Screenshot_003.png', t0 + 2 * minute, CODE_BLANK, icon_seed=3),
        make_screenshot('Screenshot_004.png', t1, CODE_GARBAGE, icon_seed=4),
        make_screenshot('Screenshot_005.png', t1 + minute, CODE_STAGE_5_1, icon_seed=5),
        make_screenshot('Screenshot_006.png', t1 + 2 * minute, CODE_BLANK, icon_seed=6),
    ]


# Markers for conditional test skipping
def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line(
        "markers", "unit: fast tests without external tools"
    )
    config.addinivalue_line(
        "markers", "integration: tests spanning several modules"
    )
    config.addinivalue_line(
        "markers", "requires_tesseract: mark test as requiring the tesseract binary"
    )
