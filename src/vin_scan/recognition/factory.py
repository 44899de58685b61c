"""
Recognizer Factory
==================

Registry of recognition adapters by name.

Usage:
    text = RecognizerFactory.create_text("paddleocr", lang="en")
    barcode = RecognizerFactory.create_barcode("zbar")
    quality = RecognizerFactory.create_quality("opencv")
"""

import logging
from typing import Dict, List, Type

from .backends import BarcodeScanner, QualityAnalyzer, TextRecognizer
from .barcode_backend import ZBarBarcodeScanner
from .paddle_backend import PaddleConfig, PaddleTextRecognizer
from .quality import OpenCVQualityAnalyzer

logger = logging.getLogger(__name__)


class RecognizerFactory:
    """Factory for creating recognition backends."""

    _text: Dict[str, Type[TextRecognizer]] = {"paddleocr": PaddleTextRecognizer}
    _barcode: Dict[str, Type[BarcodeScanner]] = {"zbar": ZBarBarcodeScanner}
    _quality: Dict[str, Type[QualityAnalyzer]] = {"opencv": OpenCVQualityAnalyzer}

    @staticmethod
    def _lookup(registry: Dict[str, type], name: str, kind: str) -> type:
        backend_class = registry.get(name.lower())
        if backend_class is None:
            raise ValueError(
                f"Unknown {kind} backend: '{name}'. Available: {sorted(registry)}"
            )
        return backend_class

    @classmethod
    def create_text(cls, name: str = "paddleocr", auto_initialize: bool = False, **kwargs) -> TextRecognizer:
        backend_class = cls._lookup(cls._text, name, "text")
        if backend_class is PaddleTextRecognizer:
            recognizer = backend_class(config=PaddleConfig(**kwargs))
        else:
            recognizer = backend_class(**kwargs)
        if auto_initialize and recognizer.is_available:
            recognizer.initialize()
        return recognizer

    @classmethod
    def create_barcode(cls, name: str = "zbar", auto_initialize: bool = False, **kwargs) -> BarcodeScanner:
        scanner = cls._lookup(cls._barcode, name, "barcode")(**kwargs)
        if auto_initialize and scanner.is_available:
            scanner.initialize()
        return scanner

    @classmethod
    def create_quality(cls, name: str = "opencv", **kwargs) -> QualityAnalyzer:
        return cls._lookup(cls._quality, name, "quality")(**kwargs)

    @classmethod
    def list_available(cls) -> Dict[str, List[str]]:
        """List registered backend names per kind."""
        return {
            "text": sorted(cls._text),
            "barcode": sorted(cls._barcode),
            "quality": sorted(cls._quality),
        }

    @classmethod
    def register(cls, kind: str, name: str, backend_class: type) -> None:
        """
        Register a new backend.

        Args:
            kind: 'text', 'barcode' or 'quality'
            name: Lookup name
            backend_class: Class implementing the matching interface
        """
        bases = {"text": TextRecognizer, "barcode": BarcodeScanner, "quality": QualityAnalyzer}
        if kind not in bases:
            raise ValueError(f"Unknown backend kind: '{kind}'. Available: {sorted(bases)}")
        if not issubclass(backend_class, bases[kind]):
            raise TypeError(
                f"Backend class must inherit from {bases[kind].__name__}, "
                f"got {backend_class.__name__}"
            )
        getattr(cls, f"_{kind}")[name.lower()] = backend_class
        logger.info(f"Registered {kind} backend: {name}")
