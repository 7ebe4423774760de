"""Stage Label Gate.

Reads the round counter at the top center of a TFT screenshot (e.g. "4-3") and
decides whether the frame was taken right after an augment choice, which is
when the augment panel on the left of the board is worth reading.

The gate takes the first "<digit>-<digit>" in the OCR text and requires it to be
in the allow-list. Anything else, including empty text, means "skip this frame".

Typical usage example:

    from stage_gate import StageGate, TesseractStageReader

    gate = StageGate(TesseractStageReader())
    if gate.should_extract(screenshot):
        icons = matcher.extract_icons(screenshot)
"""

import logging
import re
from typing import Iterable, Optional, Tuple

import cv2
import numpy as np
import pytesseract
from PIL import Image

from ..config import DEFAULT_STAGE_LABELS, OCR_ENGINES
from ..errors import OCRError
from ..models import ScreenshotRef
from ..utils.image_loader import crop_normalized

logger = logging.getLogger(__name__)

# (x, y, width, height) as fractions of the frame, calibrated for the standard TFT HUD
STAGE_REGION = (0.425, 0.01, 0.15, 0.05)

STAGE_PATTERN = re.compile(r'\d-\d')


class TesseractStageReader:
    """Reads the stage counter with Tesseract.

    Attributes:
        config: Tesseract CLI options. PSM 7 treats the crop as a single text
            line; the whitelist keeps only digits and the dash.
    """

    def __init__(self, tesseract_cmd: Optional[str] = None,
                 config: str = '--psm 7 --oem 3 -c tessedit_char_whitelist=0123456789-'):
        if tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = tesseract_cmd
        self.config = config

    def preprocess(self, roi: np.ndarray) -> np.ndarray:
        """
        Preprocess the stage crop for OCR.

        Args:
            roi: Stage region in BGR format

        Returns:
            Binarized grayscale image, upscaled when the crop is small
        """
        gray = cv2.cvtColor(roi, cv2.COLOR_BGR2GRAY) if roi.ndim == 3 else roi

        # Stage text is light on a dark banner
        _, processed = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY_INV + cv2.THRESH_OTSU)

        if processed.shape[0] < 40 or processed.shape[1] < 40:
            processed = cv2.resize(processed, None, fx=2, fy=2, interpolation=cv2.INTER_CUBIC)

        return processed

    def recognize(self, image: np.ndarray) -> str:
        """Return raw Tesseract text for the crop."""
        pil_img = Image.fromarray(self.preprocess(image))
        try:
            return pytesseract.image_to_string(pil_img, config=self.config)
        except pytesseract.TesseractError as e:
            raise OCRError(f"Tesseract failed: {e}")


def create_stage_reader(engine: str = 'tesseract', tesseract_cmd: Optional[str] = None,
                        use_gpu: bool = False):
    """
    Build the OCR collaborator for the stage gate.

    Args:
        engine: 'tesseract' or 'paddleocr'
        tesseract_cmd: Optional path to the tesseract binary
        use_gpu: Enable GPU acceleration (PaddleOCR only)

    Returns:
        Object exposing ``recognize(image) -> str``

    Raises:
        ValueError: If the engine name is unknown
    """
    if engine == 'tesseract':
        return TesseractStageReader(tesseract_cmd=tesseract_cmd)
    if engine == 'paddleocr':
        from .paddle_stage_reader import PaddleStageReader
        return PaddleStageReader(use_gpu=use_gpu)
    raise ValueError(f"Unknown OCR engine '{engine}', expected one of {', '.join(OCR_ENGINES)}")


def parse_stage(text: Optional[str]) -> Optional[str]:
    """Pull the first "<digit>-<digit>" out of raw OCR text, or None.

    Stray digits around the token are OCR noise, so "14-3" reads as "4-3".
    """
    if not text:
        return None
    match = STAGE_PATTERN.search(text.strip())
    return match.group(0) if match else None


class StageGate:
    """Decides which screenshots go through icon extraction.

    Attributes:
        reader: OCR collaborator with ``recognize(image) -> str``.
        stage_labels: Stages shown right after an augment choice.
        region: Normalized (x, y, width, height) of the stage counter.
    """

    def __init__(self, reader, stage_labels: Optional[Iterable[str]] = None,
                 region: Tuple[float, float, float, float] = STAGE_REGION):
        self.reader = reader
        self.stage_labels = frozenset(stage_labels if stage_labels is not None else DEFAULT_STAGE_LABELS)
        self.region = region

    def read_stage(self, screenshot: ScreenshotRef, frame: Optional[np.ndarray] = None) -> Optional[str]:
        """
        Read the stage counter of a screenshot.

        Args:
            screenshot: Screenshot handle
            frame: Already decoded pixels, to avoid decoding twice

        Returns:
            Stage label such as "4-3", or None when nothing usable was read

        Raises:
            ImageDecodeError: If the screenshot cannot be decoded
            OCRError: If the OCR engine itself fails
        """
        if frame is None:
            frame = screenshot.load_image()
        roi = crop_normalized(frame, *self.region)
        stage = parse_stage(self.reader.recognize(roi))
        logger.debug(f"{screenshot.name}: stage {stage!r}")
        return stage

    def is_augment_stage(self, stage: Optional[str]) -> bool:
        return stage is not None and stage in self.stage_labels

    def should_extract(self, screenshot: ScreenshotRef, frame: Optional[np.ndarray] = None) -> bool:
        """True when the screenshot shows a stage right after an augment choice."""
        return self.is_augment_stage(self.read_stage(screenshot, frame))
