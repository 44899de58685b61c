"""
Recognition Backends - Collaborator Interfaces
==============================================

Abstract interfaces for the engines the scan pipeline consumes:
- TextRecognizer: image -> recognized text
- BarcodeScanner: image -> decoded barcode values
- QualityAnalyzer: image -> contrast / brightness / blur / glare

Adapters live next to this module (PaddleOCR, pyzbar, OpenCV). Tests and
callers may supply their own implementations.

Usage:
    from vin_scan.recognition import RecognizerFactory

    text = RecognizerFactory.create_text("paddleocr")
    result = text.recognize("plate.jpg")
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Union

import cv2
import numpy as np

from ..exceptions import ImageLoadError

logger = logging.getLogger(__name__)

ImageHandle = Union[str, Path, np.ndarray]


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class TextRecognition:
    """Text recognized in one frame."""
    text: str
    confidence: float = 0.0
    provider: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "confidence": self.confidence,
            "provider": self.provider,
            "metadata": self.metadata,
        }


@dataclass
class BarcodeReading:
    """One decoded barcode."""
    value: str
    format: str = "UNKNOWN"

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "format": self.format}


@dataclass
class ImageQuality:
    """Quality estimate for one frame; contrast and brightness are in [0, 1]."""
    contrast: float
    brightness: float
    is_blurry: bool = False
    has_glare: bool = False

    @property
    def overall(self) -> float:
        return 0.7 * self.contrast + 0.3 * self.brightness

    @property
    def has_issues(self) -> bool:
        return self.is_blurry or self.has_glare

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contrast": self.contrast,
            "brightness": self.brightness,
            "is_blurry": self.is_blurry,
            "has_glare": self.has_glare,
            "overall": self.overall,
        }


# =============================================================================
# INTERFACES
# =============================================================================

class _Backend(ABC):
    _initialized: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the backend name."""
        ...

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Check if the backend's engine is installed."""
        ...

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def initialize(self) -> None:
        """
        Load the engine. Adapters with heavy models override this.

        Raises:
            RecognitionUnavailable: If the engine is not installed
        """
        self._initialized = True


class TextRecognizer(_Backend):
    """Text recognition collaborator."""

    @abstractmethod
    def recognize(self, image: ImageHandle) -> TextRecognition:
        """
        Recognize all text in an image.

        Raises:
            RecognitionUnavailable: If the engine is not installed or loaded
            BackendError: If recognition fails
        """
        ...


class BarcodeScanner(_Backend):
    """Barcode recognition collaborator."""

    @abstractmethod
    def scan(self, image: ImageHandle) -> List[BarcodeReading]:
        """Decode every barcode in an image; an empty list means none found."""
        ...


class QualityAnalyzer(_Backend):
    """Image quality collaborator. Its output is taken as authoritative."""

    @abstractmethod
    def analyze(self, image: ImageHandle) -> ImageQuality:
        ...


# =============================================================================
# IMAGE LOADING
# =============================================================================

def load_image(image: ImageHandle) -> np.ndarray:
    """
    Load image from path or return numpy array.

    Raises:
        ImageLoadError: If the handle is not a readable image
    """
    if isinstance(image, np.ndarray):
        if image.size == 0 or image.ndim not in (2, 3):
            raise ImageLoadError("<array>", f"unexpected array shape {image.shape}")
        return image

    if not isinstance(image, (str, Path)):
        raise ImageLoadError(repr(image), f"unsupported image handle type {type(image).__name__}")

    path = Path(image)
    if not path.exists():
        raise ImageLoadError(str(path), "file not found")

    img = cv2.imread(str(path))
    if img is None:
        raise ImageLoadError(str(path), "not a decodable image")

    return img


def to_grayscale(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
