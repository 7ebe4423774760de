"""
Centralized Toolkit Configuration
Single source of truth for tunables shared by the pipeline, the store and the CLI.

Configuration is loaded from the .env file (or the process environment). Every
value has a default, so an empty .env is valid.
Example:
    AUGMENT_GAP_THRESHOLD_MS=180000
    AUGMENT_SLOT_COUNT=3
    AUGMENT_STAGE_LABELS=4-3,4-5,5-1
    AUGMENT_MATCH_METHOD=dhash
    AUGMENT_STATS_DATA_DIR=data
"""

import os
from typing import List, Optional, Tuple
from dotenv import load_dotenv

load_dotenv()

DEFAULT_GAP_THRESHOLD_MS = 3 * 60 * 1000
DEFAULT_SLOT_COUNT = 3
DEFAULT_STAGE_LABELS = ('4-3', '4-5', '5-1')
DEFAULT_MATCH_METHOD = 'dhash'
DEFAULT_MATCH_MAX_DISTANCE = 10
DEFAULT_DATA_DIR = 'data'
DEFAULT_OCR_ENGINE = 'tesseract'

MATCH_METHODS = ('dhash', 'prefix')
OCR_ENGINES = ('tesseract', 'paddleocr')


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _get_choice(name: str, default: str, choices: Tuple[str, ...]) -> str:
    value = (os.getenv(name) or default).strip().lower()
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")
    return value


def get_gap_threshold_ms() -> int:
    """
    Get the maximum gap between two screenshots of the same game.

    Returns:
        Gap threshold in milliseconds (default: 180000, i.e. 3 minutes)

    Raises:
        ValueError: If AUGMENT_GAP_THRESHOLD_MS is not a non-negative integer
    """
    value = _get_int('AUGMENT_GAP_THRESHOLD_MS', DEFAULT_GAP_THRESHOLD_MS)
    if value < 0:
        raise ValueError(f"AUGMENT_GAP_THRESHOLD_MS must be >= 0, got {value}")
    return value


def get_slot_count() -> int:
    """
    Get the number of augment icon slots inspected per screenshot.

    Returns:
        Slot count between 1 and 5 (default: 3)
    """
    value = _get_int('AUGMENT_SLOT_COUNT', DEFAULT_SLOT_COUNT)
    if not 1 <= value <= 5:
        raise ValueError(f"AUGMENT_SLOT_COUNT must be between 1 and 5, got {value}")
    return value


def get_stage_labels() -> List[str]:
    """
    Get stage labels that mean "augment choices are on screen".

    Environment variable format (in .env):
        AUGMENT_STAGE_LABELS=4-3,4-5,5-1

    Returns:
        List of stage labels
    """
    labels_str = os.getenv('AUGMENT_STAGE_LABELS')
    if not labels_str:
        return list(DEFAULT_STAGE_LABELS)
    return [label.strip() for label in labels_str.split(',') if label.strip()]


def get_match_method() -> str:
    """Get the icon similarity test ('dhash' or 'prefix')."""
    return _get_choice('AUGMENT_MATCH_METHOD', DEFAULT_MATCH_METHOD, MATCH_METHODS)


def get_match_max_distance() -> int:
    """Get the maximum Hamming distance for a dHash icon match."""
    value = _get_int('AUGMENT_MATCH_MAX_DISTANCE', DEFAULT_MATCH_MAX_DISTANCE)
    if value < 0:
        raise ValueError(f"AUGMENT_MATCH_MAX_DISTANCE must be >= 0, got {value}")
    return value


def get_data_dir() -> str:
    """Get the directory holding the games and icon JSON files."""
    return os.getenv('AUGMENT_STATS_DATA_DIR') or DEFAULT_DATA_DIR


def get_ocr_engine() -> str:
    """Get the OCR engine used for stage labels ('tesseract' or 'paddleocr')."""
    return _get_choice('AUGMENT_OCR_ENGINE', DEFAULT_OCR_ENGINE, OCR_ENGINES)


def get_tesseract_cmd() -> Optional[str]:
    """Get an explicit path to the tesseract binary, if configured."""
    return os.getenv('TESSERACT_CMD') or None


def get_timezone_name() -> Optional[str]:
    """Get the IANA zone used for PBE day bucketing. None means system local time."""
    return os.getenv('AUGMENT_TIMEZONE') or None
