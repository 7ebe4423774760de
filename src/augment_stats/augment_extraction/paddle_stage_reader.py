"""PaddleOCR Stage Reader.

Alternative OCR backend for the stage gate. PaddleOCR copes better with the
stylized TFT font on low-contrast banners, at the cost of a heavy install, so
it ships as the optional ``paddle`` extra.

Typical usage example:

    from paddle_stage_reader import PaddleStageReader

    gate = StageGate(PaddleStageReader(use_gpu=True))
"""

import sys
import logging

import numpy as np

from ..errors import OCRError

try:
    from paddleocr import PaddleOCR
except ImportError:
    print("Error: PaddleOCR not installed", file=sys.stderr)
    print("\nInstall with:", file=sys.stderr)
    print("  pip install paddlepaddle paddleocr", file=sys.stderr)
    print("\nFor GPU support:", file=sys.stderr)
    print("  pip install paddlepaddle-gpu paddleocr", file=sys.stderr)
    raise

logger = logging.getLogger(__name__)


class PaddleStageReader:
    """Reads the stage counter with PaddleOCR.

    Attributes:
        ocr: Initialized PaddleOCR instance.
        confidence_threshold: Minimum confidence for a text line to be kept.
    """

    def __init__(self,
                 lang: str = 'en',
                 use_gpu: bool = False,
                 confidence_threshold: float = 0.5,
                 det_db_thresh: float = 0.3,
                 det_db_box_thresh: float = 0.5):
        self.confidence_threshold = confidence_threshold

        logger.info(f"Initializing PaddleOCR (lang={lang}, gpu={use_gpu})...")
        self.ocr = PaddleOCR(
            lang=lang,
            use_gpu=use_gpu,
            use_angle_cls=False,
            show_log=False,
            det_db_thresh=det_db_thresh,
            det_db_box_thresh=det_db_box_thresh
        )

    def recognize(self, image: np.ndarray) -> str:
        """
        Return detected text lines above the confidence threshold, space-joined.

        Args:
            image: Stage region in BGR format (PaddleOCR expects BGR)

        Returns:
            Combined text, or "" if nothing was detected
        """
        try:
            result = self.ocr.ocr(image, cls=False)
        except Exception as e:
            raise OCRError(f"PaddleOCR failed: {e}")

        if not result or not result[0]:
            return ""

        texts = []
        for line in result[0]:
            if line:
                # line format: [[[x1,y1], [x2,y2], [x3,y3], [x4,y4]], (text, confidence)]
                text, confidence = line[1][0], line[1][1]
                if confidence >= self.confidence_threshold:
                    texts.append(text)

        return " ".join(texts)
