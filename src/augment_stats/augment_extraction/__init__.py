"""
Augment Extraction Module

Provides two steps for reading augments from TFT screenshots:
1. Stage gate - OCR on the round counter (Tesseract or PaddleOCR) to find
   frames taken right after an augment choice
2. Icon matcher - crops the augment panel and names icons against a learned
   reference set (dHash or prefix similarity)
"""

from .stage_gate import StageGate, TesseractStageReader, create_stage_reader, parse_stage
from .icon_matcher import IconMatcher, ReferenceIconSet, difference_hash, hamming_distance

__all__ = [
    'StageGate',
    'TesseractStageReader',
    'create_stage_reader',
    'parse_stage',
    'IconMatcher',
    'ReferenceIconSet',
    'difference_hash',
    'hamming_distance'
]
