"""
VIN Scan Recognition Module
===========================

Collaborator interfaces and adapters for text recognition, barcode
recognition and image quality analysis.
"""

from .backends import (
    ImageHandle,
    TextRecognition,
    BarcodeReading,
    ImageQuality,
    TextRecognizer,
    BarcodeScanner,
    QualityAnalyzer,
    load_image,
)
from .paddle_backend import PaddleConfig, PaddleTextRecognizer
from .barcode_backend import ZBarBarcodeScanner
from .quality import OpenCVQualityAnalyzer
from .factory import RecognizerFactory

__all__ = [
    "ImageHandle",
    "TextRecognition",
    "BarcodeReading",
    "ImageQuality",
    "TextRecognizer",
    "BarcodeScanner",
    "QualityAnalyzer",
    "load_image",
    "PaddleConfig",
    "PaddleTextRecognizer",
    "ZBarBarcodeScanner",
    "OpenCVQualityAnalyzer",
    "RecognizerFactory",
]
