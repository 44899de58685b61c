"""
PaddleOCR Text Recognizer
=========================

Text recognition adapter over PaddleOCR 3.x. The engine is imported
lazily so the rest of the package works without it installed.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

import numpy as np

from ..exceptions import BackendError, RecognitionUnavailable
from .backends import ImageHandle, TextRecognition, TextRecognizer, load_image

logger = logging.getLogger(__name__)


@dataclass
class PaddleConfig:
    """Detection and recognition options passed to PaddleOCR."""
    lang: str = 'en'
    ocr_version: str = 'PP-OCRv4'
    text_det_box_thresh: float = 0.3
    use_doc_orientation_classify: bool = False
    use_doc_unwarping: bool = False
    use_textline_orientation: bool = False


class PaddleTextRecognizer(TextRecognizer):
    """
    PaddleOCR-based text recognizer.

    Recognized lines are joined with newlines so that line-oriented
    candidate extraction still sees the original layout.
    """

    def __init__(self, config: Optional[PaddleConfig] = None):
        self.config = config or PaddleConfig()
        self._ocr = None
        self._initialized = False

    @property
    def name(self) -> str:
        return "PaddleOCR"

    @property
    def is_available(self) -> bool:
        """True when the paddleocr package can be imported."""
        try:
            from paddleocr import PaddleOCR  # noqa: F401
            return True
        except ImportError:
            return False

    def initialize(self) -> None:
        """Build the PaddleOCR engine on first use."""
        if self._initialized:
            return

        if not self.is_available:
            raise RecognitionUnavailable(self.name, "PaddleOCR is not installed. Run: pip install paddleocr")

        try:
            from paddleocr import PaddleOCR

            logger.info(f"Loading PaddleOCR text recognizer ({self.config.ocr_version}, lang={self.config.lang})")
            self._ocr = PaddleOCR(
                lang=self.config.lang,
                ocr_version=self.config.ocr_version,
                use_doc_orientation_classify=self.config.use_doc_orientation_classify,
                use_doc_unwarping=self.config.use_doc_unwarping,
                use_textline_orientation=self.config.use_textline_orientation,
                text_det_box_thresh=self.config.text_det_box_thresh,
            )
            self._initialized = True
            logger.info("PaddleOCR text recognizer ready")
        except Exception as e:
            raise BackendError(f"Failed to initialize PaddleOCR: {e}", backend=self.name,
                               details=str(e)) from e

    def recognize(self, image: ImageHandle) -> TextRecognition:
        if not self._initialized:
            self.initialize()

        img = load_image(image)

        try:
            result = self._ocr.predict(img)
        except Exception as e:
            raise BackendError(f"OCR prediction failed: {e}", backend=self.name, details=str(e)) from e

        texts, scores = self._parse_result(result)
        return TextRecognition(
            text='\n'.join(texts),
            confidence=float(np.mean(scores)) if scores else 0.0,
            provider=self.name,
            metadata={"lang": self.config.lang, "lines": len(texts)},
        )

    def _parse_result(self, result: Any) -> Tuple[List[str], List[float]]:
        """Parse PaddleOCR 3.x result format (list of dicts with rec_texts/rec_scores)."""
        if not result:
            return [], []

        if isinstance(result, list):
            result = result[0]

        if isinstance(result, dict) or hasattr(result, 'get'):
            texts = list(result.get('rec_texts', []) or [])
            scores = [float(s) for s in (result.get('rec_scores', []) or [])]
            return texts, scores

        return [], []
